"""
Unit Tests for the Redemption Workflow

Tests cover:
1. Escrow at request time
2. Approve and deny transitions
3. Refund uses the recorded cost
4. No double resolution
5. Unlimited-balance employees
"""

import pytest
from decimal import Decimal
from uuid import UUID

from armadollars.errors import (
    InsufficientBalanceError,
    NotAuthorizedError,
    RedemptionNotFoundError,
    RedemptionNotPendingError,
    RewardInactiveError,
    RewardNotFoundError,
)
from armadollars.models import RedemptionStatus, UpdateRewardRequest
from armadollars.service import ArmadollarsService
from armadollars.storage import (
    SEED_ADMIN_ID,
    SEED_COOK_ID,
    SEED_OWNER_ID,
    SEED_REWARD_BREAK_ID,
    SEED_REWARD_MEAL_ID,
    SEED_REWARD_PARKING_ID,
    SEED_REWARD_RETIRED_ID,
    SEED_SERVER_ID,
)


class TestRequestRedemption:
    """Tests for requesting a redemption."""

    def test_request_debits_immediately(self):
        """Test the cost is held at request time and the redemption is pending."""
        service = ArmadollarsService()

        redemption = service.request_redemption(SEED_SERVER_ID, SEED_REWARD_MEAL_ID)

        assert redemption.status == RedemptionStatus.PENDING
        assert redemption.cost == 30
        assert redemption.reward_name == "Free Meal"
        assert redemption.resolved_at is None
        assert service.get_balance(SEED_SERVER_ID).balance == Decimal("20")

    def test_insufficient_balance(self):
        """Test a reward costing more than the balance is rejected with no pending row."""
        service = ArmadollarsService()

        with pytest.raises(InsufficientBalanceError):
            service.request_redemption(SEED_SERVER_ID, SEED_REWARD_PARKING_ID)

        assert service.list_redemptions() == []
        assert service.get_balance(SEED_SERVER_ID).balance == Decimal("50")

    def test_inactive_reward(self):
        """Test deactivated rewards cannot be redeemed."""
        service = ArmadollarsService()

        with pytest.raises(RewardInactiveError):
            service.request_redemption(SEED_SERVER_ID, SEED_REWARD_RETIRED_ID)

    def test_unknown_reward(self):
        """Test a missing reward fails."""
        service = ArmadollarsService()

        with pytest.raises(RewardNotFoundError):
            service.request_redemption(SEED_SERVER_ID, UUID("00000000-0000-0000-0000-000000000000"))

    def test_unlimited_employee_is_never_charged(self):
        """Test the unlimited account can redeem anything without a balance change."""
        service = ArmadollarsService()

        redemption = service.request_redemption(SEED_OWNER_ID, SEED_REWARD_PARKING_ID)

        assert redemption.status == RedemptionStatus.PENDING
        assert service.get_balance(SEED_OWNER_ID).balance == Decimal("0")


class TestResolveRedemption:
    """Tests for approving and denying."""

    def test_scenario_deny_restores_balance(self):
        """Test balance 50, cost 30: request → 20, deny → 50, approve afterwards fails."""
        service = ArmadollarsService()

        redemption = service.request_redemption(SEED_SERVER_ID, SEED_REWARD_MEAL_ID)
        assert service.get_balance(SEED_SERVER_ID).balance == Decimal("20")

        denied = service.deny_redemption(redemption.id, SEED_ADMIN_ID, "Out of stock")
        assert denied.status == RedemptionStatus.DENIED
        assert denied.resolver_id == SEED_ADMIN_ID
        assert denied.notes == "Out of stock"
        assert denied.resolved_at is not None
        assert service.get_balance(SEED_SERVER_ID).balance == Decimal("50")

        with pytest.raises(RedemptionNotPendingError):
            service.approve_redemption(redemption.id, SEED_ADMIN_ID)

    def test_approve_leaves_balance_unchanged(self):
        """Test approval does not charge a second time."""
        service = ArmadollarsService()

        redemption = service.request_redemption(SEED_SERVER_ID, SEED_REWARD_BREAK_ID)
        approved = service.approve_redemption(redemption.id, SEED_ADMIN_ID)

        assert approved.status == RedemptionStatus.APPROVED
        assert service.get_balance(SEED_SERVER_ID).balance == Decimal("30")

    def test_double_deny_refunds_once(self):
        """Test a second deny fails and issues no second refund."""
        service = ArmadollarsService()

        redemption = service.request_redemption(SEED_SERVER_ID, SEED_REWARD_MEAL_ID)
        service.deny_redemption(redemption.id, SEED_ADMIN_ID)
        with pytest.raises(RedemptionNotPendingError):
            service.deny_redemption(redemption.id, SEED_ADMIN_ID)

        assert service.get_balance(SEED_SERVER_ID).balance == Decimal("50")

    def test_double_approve_fails(self):
        """Test approvals are one-way."""
        service = ArmadollarsService()

        redemption = service.request_redemption(SEED_SERVER_ID, SEED_REWARD_MEAL_ID)
        service.approve_redemption(redemption.id, SEED_ADMIN_ID)
        with pytest.raises(RedemptionNotPendingError):
            service.approve_redemption(redemption.id, SEED_ADMIN_ID)

    def test_refund_uses_recorded_cost(self):
        """Test a reward price change between request and denial does not leak into the refund."""
        service = ArmadollarsService()

        redemption = service.request_redemption(SEED_SERVER_ID, SEED_REWARD_MEAL_ID)
        service.directory.update_reward(SEED_REWARD_MEAL_ID, UpdateRewardRequest(cost=45))
        service.deny_redemption(redemption.id, SEED_ADMIN_ID)

        balance = service.get_balance(SEED_SERVER_ID)
        assert balance.balance == Decimal("50")
        assert balance.ledger_total == Decimal("50")

    def test_deny_for_unlimited_employee_skips_refund(self):
        """Test denying the unlimited account's redemption is a no-op on balance."""
        service = ArmadollarsService()

        redemption = service.request_redemption(SEED_OWNER_ID, SEED_REWARD_MEAL_ID)
        denied = service.deny_redemption(redemption.id, SEED_ADMIN_ID)

        assert denied.status == RedemptionStatus.DENIED
        assert service.get_balance(SEED_OWNER_ID).balance == Decimal("0")
        assert service.get_balance(SEED_OWNER_ID).total_entries == 0

    def test_unknown_redemption(self):
        """Test resolving a missing redemption fails."""
        service = ArmadollarsService()

        with pytest.raises(RedemptionNotFoundError):
            service.approve_redemption(UUID("00000000-0000-0000-0000-000000000000"), SEED_ADMIN_ID)

    def test_non_manager_cannot_resolve(self):
        """Test a regular employee cannot resolve redemptions and the state is untouched."""
        service = ArmadollarsService()

        redemption = service.request_redemption(SEED_SERVER_ID, SEED_REWARD_MEAL_ID)
        with pytest.raises(NotAuthorizedError):
            service.deny_redemption(redemption.id, SEED_COOK_ID)

        assert service.redemptions.get_redemption(redemption.id).status == RedemptionStatus.PENDING
        assert service.get_balance(SEED_SERVER_ID).balance == Decimal("20")

    def test_failed_refund_keeps_redemption_pending(self):
        """Test the status change is rolled back when the refund fails."""
        service = ArmadollarsService()
        redemption = service.request_redemption(SEED_SERVER_ID, SEED_REWARD_MEAL_ID)

        def broken_refund(*args, **kwargs):
            raise RuntimeError("refund failed")

        service.ledger.refund = broken_refund
        with pytest.raises(RuntimeError):
            service.deny_redemption(redemption.id, SEED_ADMIN_ID)

        assert service.redemptions.get_redemption(redemption.id).status == RedemptionStatus.PENDING

    def test_deny_refunds_deactivated_employee(self):
        """Test a redemption requested before deactivation can still be denied and refunded."""
        service = ArmadollarsService()
        redemption = service.request_redemption(SEED_SERVER_ID, SEED_REWARD_MEAL_ID)

        service.directory.deactivate_employee(SEED_SERVER_ID)
        denied = service.deny_redemption(redemption.id, SEED_ADMIN_ID)

        assert denied.status == RedemptionStatus.DENIED
        balance = service.get_balance(SEED_SERVER_ID)
        assert balance.balance == Decimal("50")
        assert balance.ledger_total == Decimal("50")


class TestListRedemptions:
    """Tests for listing redemptions."""

    def test_filter_by_employee_and_status(self):
        """Test listing filters combine."""
        service = ArmadollarsService()

        first = service.request_redemption(SEED_SERVER_ID, SEED_REWARD_BREAK_ID)
        service.request_redemption(SEED_SERVER_ID, SEED_REWARD_BREAK_ID)
        service.request_redemption(SEED_OWNER_ID, SEED_REWARD_MEAL_ID)
        service.approve_redemption(first.id, SEED_ADMIN_ID)

        assert len(service.list_redemptions()) == 3
        assert len(service.list_redemptions(employee_id=SEED_SERVER_ID)) == 2
        pending = service.list_redemptions(employee_id=SEED_SERVER_ID, status=RedemptionStatus.PENDING)
        assert len(pending) == 1
        assert pending[0].id != first.id


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
