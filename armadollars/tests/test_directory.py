"""
Unit Tests for directory and catalog management
"""

import pytest
from datetime import date
from decimal import Decimal

from armadollars.errors import (
    AuthenticationFailedError,
    ComplaintAlreadyResolvedError,
    EmployeeNotFoundError,
    NotAuthorizedError,
    PasswordResetNotFoundError,
    ScheduleConflictError,
    ScheduleNotFoundError,
    ValidationFailedError,
)
from armadollars.models import (
    ComplaintStatus,
    CreateComplaintRequest,
    CreateEmployeeRequest,
    CreateRewardRequest,
    CreateScheduleRequest,
    CreateTaskRequest,
    PasswordResetStatus,
    UpdateEmployeeRequest,
)
from armadollars.service import ArmadollarsService
from armadollars.storage import (
    SEED_ADMIN_ID,
    SEED_COOK_ID,
    SEED_OWNER_ID,
    SEED_REWARD_MEAL_ID,
    SEED_SERVER_ID,
)


class TestEmployees:
    """Tests for the employee directory."""

    def test_create_employee_hashes_password(self):
        """Test new employees start at zero and never store the raw password."""
        service = ArmadollarsService()

        employee = service.directory.create_employee(CreateEmployeeRequest(
            name="Casey Park", role="Shift_Leader", password="s3cret",
        ))

        assert employee.balance == Decimal("0")
        assert employee.role == "shift leader"
        assert employee.unlimited is False
        row = service.storage.employees[employee.id]
        assert row["password_hash"] != "s3cret"
        assert "password_hash" not in employee.model_dump()

    def test_duplicate_active_name_is_rejected(self):
        """Test names are unique among active employees, ignoring case."""
        service = ArmadollarsService()

        with pytest.raises(ValidationFailedError):
            service.directory.create_employee(CreateEmployeeRequest(name="jamie rivera", password="x"))

    def test_deactivate_is_soft(self):
        """Test deactivated employees drop out of listings but keep their record."""
        service = ArmadollarsService()

        service.directory.deactivate_employee(SEED_COOK_ID)

        assert SEED_COOK_ID not in [e.id for e in service.directory.list_employees()]
        assert service.directory.get_employee(SEED_COOK_ID).active is False
        assert service.get_balance(SEED_COOK_ID).balance == Decimal("15")

    def test_update_employee(self):
        """Test editable fields are updated."""
        service = ArmadollarsService()

        employee = service.directory.update_employee(
            SEED_COOK_ID, UpdateEmployeeRequest(role="bartender", streak=3)
        )

        assert employee.role == "bartender"
        assert employee.streak == 3

    def test_leaderboard_excludes_admins(self):
        """Test top performers are ordered by balance without admin accounts."""
        service = ArmadollarsService()

        leaders = service.directory.leaderboard()

        assert [e.id for e in leaders] == [SEED_SERVER_ID, SEED_COOK_ID]

    def test_leaderboard_honours_limit(self):
        """Test an explicit limit caps the leaderboard and zero returns nobody."""
        service = ArmadollarsService()

        assert [e.id for e in service.directory.leaderboard(limit=1)] == [SEED_SERVER_ID]
        assert service.directory.leaderboard(limit=0) == []


class TestAuthentication:
    """Tests for login."""

    def test_login_with_valid_credentials(self):
        """Test names match case-insensitively."""
        service = ArmadollarsService()

        employee = service.directory.authenticate("  JAMIE rivera ", "server123")

        assert employee.id == SEED_SERVER_ID

    def test_login_with_wrong_password(self):
        """Test a bad password fails."""
        service = ArmadollarsService()

        with pytest.raises(AuthenticationFailedError):
            service.directory.authenticate("Jamie Rivera", "server124")

    def test_login_for_inactive_employee(self):
        """Test deactivated employees cannot log in."""
        service = ArmadollarsService()
        service.directory.deactivate_employee(SEED_SERVER_ID)

        with pytest.raises(AuthenticationFailedError):
            service.directory.authenticate("Jamie Rivera", "server123")

    def test_name_alone_grants_no_privilege(self):
        """Test an employee named like the house account gets no special treatment."""
        service = ArmadollarsService()
        service.directory.deactivate_employee(SEED_OWNER_ID)
        employee = service.directory.create_employee(
            CreateEmployeeRequest(name="House Account", password="pw")
        )

        assert employee.unlimited is False
        assert employee.is_admin is False


class TestPasswordResets:
    """Tests for the password reset queue."""

    def test_reset_flow(self):
        """Test a request is processed by an admin and the new password works."""
        service = ArmadollarsService()

        request = service.directory.request_password_reset("morgan lee")
        assert request.status == PasswordResetStatus.PENDING
        assert [r.id for r in service.directory.list_password_resets()] == [request.id]

        processed = service.directory.process_password_reset(request.id, "new-pass", SEED_ADMIN_ID)

        assert processed.status == PasswordResetStatus.PROCESSED
        assert processed.processed_by == SEED_ADMIN_ID
        assert service.directory.list_password_resets() == []
        assert service.directory.authenticate("Morgan Lee", "new-pass").id == SEED_COOK_ID

    def test_unknown_employee(self):
        """Test resets for unknown names fail."""
        service = ArmadollarsService()

        with pytest.raises(EmployeeNotFoundError):
            service.directory.request_password_reset("Nobody")

    def test_only_managers_process_resets(self):
        """Test a regular employee cannot reset passwords."""
        service = ArmadollarsService()
        request = service.directory.request_password_reset("Morgan Lee")

        with pytest.raises(NotAuthorizedError):
            service.directory.process_password_reset(request.id, "hijack", SEED_SERVER_ID)

        assert service.directory.authenticate("Morgan Lee", "cook123").id == SEED_COOK_ID

    def test_processed_request_cannot_be_reused(self):
        """Test a processed request is no longer pending."""
        service = ArmadollarsService()
        request = service.directory.request_password_reset("Morgan Lee")
        service.directory.process_password_reset(request.id, "a", SEED_ADMIN_ID)

        with pytest.raises(PasswordResetNotFoundError):
            service.directory.process_password_reset(request.id, "b", SEED_ADMIN_ID)


class TestCatalog:
    """Tests for tasks and rewards."""

    def test_create_task_by_manager(self):
        """Test managers can add tasks."""
        service = ArmadollarsService()

        task = service.directory.create_task(CreateTaskRequest(
            name="Bus tables", reward=Decimal("2.5"), created_by=SEED_ADMIN_ID,
        ))

        assert task.id in [t.id for t in service.directory.list_tasks()]

    def test_create_task_by_non_manager_is_rejected(self):
        """Test regular employees cannot add tasks."""
        service = ArmadollarsService()

        with pytest.raises(NotAuthorizedError):
            service.directory.create_task(CreateTaskRequest(
                name="Free points", reward=Decimal("100"), created_by=SEED_SERVER_ID,
            ))

    def test_rewards_sorted_by_cost(self):
        """Test active rewards are listed cheapest first."""
        service = ArmadollarsService()
        service.directory.create_reward(CreateRewardRequest(name="Sticker", cost=5))

        costs = [r.cost for r in service.directory.list_rewards()]

        assert costs == sorted(costs)
        assert costs[0] == 5

    def test_deactivated_reward_is_hidden(self):
        """Test deactivation removes a reward from the active list."""
        service = ArmadollarsService()

        service.directory.deactivate_reward(SEED_REWARD_MEAL_ID)

        assert SEED_REWARD_MEAL_ID not in [r.id for r in service.directory.list_rewards()]
        assert SEED_REWARD_MEAL_ID in [r.id for r in service.directory.list_rewards(active_only=False)]


class TestSchedules:
    """Tests for shift schedules."""

    def test_one_shift_per_day(self):
        """Test an employee cannot be scheduled twice on one date."""
        service = ArmadollarsService()
        request = CreateScheduleRequest(
            employee_id=SEED_SERVER_ID, date=date(2024, 3, 5),
            shift_type="dinner", start_time="16:00", end_time="22:00",
        )
        service.directory.add_schedule(request)

        with pytest.raises(ScheduleConflictError):
            service.directory.add_schedule(request)

    def test_list_and_delete(self):
        """Test upcoming schedules are ordered and can be removed."""
        service = ArmadollarsService()
        later = service.directory.add_schedule(CreateScheduleRequest(
            employee_id=SEED_SERVER_ID, date=date(2024, 3, 6),
            shift_type="lunch", start_time="10:00", end_time="15:00",
        ))
        earlier = service.directory.add_schedule(CreateScheduleRequest(
            employee_id=SEED_COOK_ID, date=date(2024, 3, 5),
            shift_type="dinner", start_time="16:00", end_time="22:00",
        ))

        assert [s.id for s in service.directory.list_schedules()] == [earlier.id, later.id]
        assert [s.id for s in service.directory.list_schedules(date(2024, 3, 6))] == [later.id]

        service.directory.delete_schedule(later.id)
        with pytest.raises(ScheduleNotFoundError):
            service.directory.delete_schedule(later.id)


class TestComplaints:
    """Tests for complaint intake."""

    def test_submit_and_resolve(self):
        """Test complaints open and resolve once."""
        service = ArmadollarsService()

        complaint = service.directory.submit_complaint(CreateComplaintRequest(
            employee_id=SEED_SERVER_ID, category="scheduling", body="Too many doubles",
        ))
        assert complaint.status == ComplaintStatus.OPEN

        resolved = service.directory.resolve_complaint(complaint.id)
        assert resolved.status == ComplaintStatus.RESOLVED
        assert service.directory.list_complaints(ComplaintStatus.OPEN) == []

        with pytest.raises(ComplaintAlreadyResolvedError):
            service.directory.resolve_complaint(complaint.id)

    def test_empty_complaint_is_rejected(self):
        """Test blank complaints are refused."""
        service = ArmadollarsService()

        with pytest.raises(ValidationFailedError):
            service.directory.submit_complaint(CreateComplaintRequest(employee_id=SEED_SERVER_ID, body="   "))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
