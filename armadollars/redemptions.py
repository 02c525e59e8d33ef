"""
Reward redemption workflow: pending -> approved | denied.

The reward cost is taken from the balance when the request is made and held
until an admin resolves it. Denial refunds the cost recorded on the
redemption, never the reward's current catalog cost.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from .errors import (
    RedemptionNotFoundError,
    RedemptionNotPendingError,
    RewardInactiveError,
    RewardNotFoundError,
)
from .ledger import BalanceLedger
from .models import Redemption, RedemptionStatus, Reward
from .security import require_manager
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)


class RedemptionWorkflow:
    def __init__(self, storage: InMemoryStorage, ledger: BalanceLedger):
        self.storage = storage
        self.ledger = ledger

    def request_redemption(self, employee_id: UUID, reward_id: UUID) -> Redemption:
        with self.storage.transaction():
            reward = self._get_active_reward(reward_id)
            redemption_id = uuid4()
            self.ledger.debit(employee_id, reward.cost, "redemption_request", str(redemption_id))

            redemption_data = {
                "id": redemption_id,
                "employee_id": employee_id,
                "reward_id": reward.id,
                "reward_name": reward.name,
                "cost": reward.cost,
                "status": RedemptionStatus.PENDING,
                "requested_at": datetime.now(timezone.utc),
                "resolved_at": None,
                "resolver_id": None,
                "notes": None,
            }
            self.storage.redemptions[redemption_id] = redemption_data

        logger.info(f"Employee {employee_id} requested {reward.name} for {reward.cost}")
        return Redemption(**redemption_data)

    def approve_redemption(
        self, redemption_id: UUID, resolver_id: UUID, notes: Optional[str] = None
    ) -> Redemption:
        with self.storage.transaction():
            redemption_data = self._resolve(redemption_id, resolver_id, RedemptionStatus.APPROVED, notes)

        logger.info(f"Redemption {redemption_id} approved by {resolver_id}")
        return Redemption(**redemption_data)

    def deny_redemption(
        self, redemption_id: UUID, resolver_id: UUID, notes: Optional[str] = None
    ) -> Redemption:
        with self.storage.transaction():
            redemption_data = self._resolve(redemption_id, resolver_id, RedemptionStatus.DENIED, notes)
            change = self.ledger.refund(
                redemption_data["employee_id"],
                redemption_data["cost"],
                "redemption_denied",
                str(redemption_id),
                title=f"Refund: {redemption_data['reward_name']}",
                description=notes or "",
            )

        logger.info(
            f"Redemption {redemption_id} denied by {resolver_id}"
            + ("" if change.applied else " (no refund for unlimited balance)")
        )
        return Redemption(**redemption_data)

    def get_redemption(self, redemption_id: UUID) -> Redemption:
        with self.storage.transaction():
            redemption_data = self.storage.redemptions.get(redemption_id)
        if redemption_data is None:
            raise RedemptionNotFoundError(f"Redemption {redemption_id} not found")
        return Redemption(**redemption_data)

    def list_redemptions(
        self,
        employee_id: Optional[UUID] = None,
        status: Optional[RedemptionStatus] = None,
    ) -> list[Redemption]:
        with self.storage.transaction():
            rows = list(self.storage.redemptions.values())
        redemptions = [
            Redemption(**row) for row in rows
            if (employee_id is None or row["employee_id"] == employee_id)
            and (status is None or row["status"] == status)
        ]
        redemptions.sort(key=lambda r: r.requested_at, reverse=True)
        return redemptions

    def _resolve(
        self,
        redemption_id: UUID,
        resolver_id: UUID,
        status: RedemptionStatus,
        notes: Optional[str],
    ) -> dict:
        redemption_data = self.storage.redemptions.get(redemption_id)
        if redemption_data is None:
            raise RedemptionNotFoundError(f"Redemption {redemption_id} not found")
        if redemption_data["status"] != RedemptionStatus.PENDING:
            logger.warning(f"Redemption {redemption_id} is already {redemption_data['status'].value}")
            raise RedemptionNotPendingError(
                f"Cannot resolve redemption in {redemption_data['status'].value} state"
            )
        require_manager(self.storage, resolver_id)

        redemption_data["status"] = status
        redemption_data["resolved_at"] = datetime.now(timezone.utc)
        redemption_data["resolver_id"] = resolver_id
        redemption_data["notes"] = notes
        return redemption_data

    def _get_active_reward(self, reward_id: UUID) -> Reward:
        row = self.storage.rewards.get(reward_id)
        if row is None:
            raise RewardNotFoundError(f"Reward {reward_id} not found")
        if not row["active"]:
            raise RewardInactiveError(f"Reward {reward_id} is no longer available")
        return Reward(**row)
