import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from .completions import TaskCompletionRecorder
from .config import get_settings
from .directory import DirectoryService
from .ledger import BalanceLedger
from .models import (
    Achievement,
    BalanceChange,
    CompletionResult,
    EmployeeBalance,
    LedgerHistory,
    Redemption,
    RedemptionStatus,
)
from .redemptions import RedemptionWorkflow
from .security import require_manager
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)


class ArmadollarsService:
    """Entry point for every operation; all components share one store."""

    def __init__(self, storage: Optional[InMemoryStorage] = None, timezone_name: Optional[str] = None):
        self.storage = storage or InMemoryStorage(seed=get_settings().SEED_DEMO_DATA)
        self.ledger = BalanceLedger(self.storage)
        self.completions = TaskCompletionRecorder(self.storage, self.ledger, timezone_name)
        self.redemptions = RedemptionWorkflow(self.storage, self.ledger)
        self.directory = DirectoryService(self.storage)

    def complete_task(
        self, employee_id: UUID, task_id: UUID, as_of: Optional[datetime] = None
    ) -> CompletionResult:
        return self.completions.complete_task(employee_id, task_id, as_of)

    def request_redemption(self, employee_id: UUID, reward_id: UUID) -> Redemption:
        return self.redemptions.request_redemption(employee_id, reward_id)

    def approve_redemption(
        self, redemption_id: UUID, resolver_id: UUID, notes: Optional[str] = None
    ) -> Redemption:
        return self.redemptions.approve_redemption(redemption_id, resolver_id, notes)

    def deny_redemption(
        self, redemption_id: UUID, resolver_id: UUID, notes: Optional[str] = None
    ) -> Redemption:
        return self.redemptions.deny_redemption(redemption_id, resolver_id, notes)

    def list_redemptions(
        self, employee_id: Optional[UUID] = None, status: Optional[RedemptionStatus] = None
    ) -> list[Redemption]:
        return self.redemptions.list_redemptions(employee_id, status)

    def award_bonus(
        self,
        employee_id: UUID,
        amount: Decimal,
        reason: str,
        awarded_by: UUID,
    ) -> BalanceChange:
        with self.storage.transaction():
            require_manager(self.storage, awarded_by)
            return self.ledger.award_bonus(employee_id, amount, reason)

    def get_balance(self, employee_id: UUID) -> EmployeeBalance:
        return self.ledger.get_balance(employee_id)

    def get_ledger_history(self, employee_id: UUID, limit: int = 50, offset: int = 0) -> LedgerHistory:
        return self.ledger.get_history(employee_id, limit, offset)

    def list_achievements(self, employee_id: UUID) -> list[Achievement]:
        return self.ledger.list_achievements(employee_id)

    def close(self) -> None:
        self.storage.close()
        logger.info("Storage closed")
