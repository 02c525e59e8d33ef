"""
Directory and catalog management.

Employees, tasks, rewards, schedules, complaints and password reset requests.
Plain records with soft delete via the ``active`` flag; none of these
operations touch balances.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from .config import get_settings
from .errors import (
    AuthenticationFailedError,
    ComplaintAlreadyResolvedError,
    ComplaintNotFoundError,
    EmployeeNotFoundError,
    PasswordResetNotFoundError,
    RewardNotFoundError,
    ScheduleConflictError,
    ScheduleNotFoundError,
    TaskInUseError,
    TaskNotFoundError,
    ValidationFailedError,
)
from .models import (
    Complaint,
    ComplaintStatus,
    CreateComplaintRequest,
    CreateEmployeeRequest,
    CreateRewardRequest,
    CreateScheduleRequest,
    CreateTaskRequest,
    Employee,
    PasswordResetRequest,
    PasswordResetStatus,
    Reward,
    Schedule,
    Task,
    UpdateEmployeeRequest,
    UpdateRewardRequest,
    UpdateTaskRequest,
    normalize_role,
)
from .security import get_password_hash, require_manager, verify_password
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)


class DirectoryService:
    def __init__(self, storage: InMemoryStorage):
        self.storage = storage

    # -----------------------------
    # Employees
    # -----------------------------
    def create_employee(self, request: CreateEmployeeRequest) -> Employee:
        name = request.name.strip()
        if not name:
            raise ValidationFailedError("Employee name is required")
        with self.storage.transaction():
            if self.storage.find_employee_by_name(name):
                raise ValidationFailedError(f"An active employee named {name!r} already exists")
            employee_data = {
                "id": uuid4(),
                "name": name,
                "role": normalize_role(request.role) or "server",
                "balance": Decimal("0"),
                "unlimited": request.unlimited,
                "active": True,
                "email": request.email,
                "streak": 0,
                "created_at": datetime.now(timezone.utc),
                "password_hash": get_password_hash(request.password),
            }
            self.storage.employees[employee_data["id"]] = employee_data
        logger.info(f"Created employee {employee_data['id']} ({name}, {employee_data['role']})")
        return Employee(**employee_data)

    def update_employee(self, employee_id: UUID, request: UpdateEmployeeRequest) -> Employee:
        with self.storage.transaction():
            row = self._employee_row(employee_id)
            if request.name is not None:
                name = request.name.strip()
                other = self.storage.find_employee_by_name(name)
                if not name or (other is not None and other["id"] != employee_id):
                    raise ValidationFailedError(f"Employee name {name!r} is empty or taken")
                row["name"] = name
            if request.role is not None:
                row["role"] = normalize_role(request.role)
            if request.email is not None:
                row["email"] = request.email
            if request.streak is not None:
                row["streak"] = request.streak
            return Employee(**row)

    def deactivate_employee(self, employee_id: UUID) -> Employee:
        with self.storage.transaction():
            row = self._employee_row(employee_id)
            row["active"] = False
        logger.info(f"Deactivated employee {employee_id}")
        return Employee(**row)

    def get_employee(self, employee_id: UUID) -> Employee:
        with self.storage.transaction():
            return Employee(**self._employee_row(employee_id, active_only=False))

    def list_employees(self, active_only: bool = True) -> list[Employee]:
        with self.storage.transaction():
            rows = [r for r in self.storage.employees.values() if r["active"] or not active_only]
            employees = [Employee(**r) for r in rows]
        employees.sort(key=lambda e: (-e.balance, e.name))
        return employees

    def leaderboard(self, limit: Optional[int] = None) -> list[Employee]:
        if limit is None:
            limit = get_settings().LEADERBOARD_SIZE
        return [e for e in self.list_employees() if not e.is_admin][:limit]

    def authenticate(self, name: str, password: str) -> Employee:
        row = self.storage.find_employee_by_name(name or "")
        if row is None or not verify_password(password or "", row["password_hash"]):
            logger.warning("Failed login attempt")
            raise AuthenticationFailedError("Invalid username or password")
        return Employee(**row)

    # -----------------------------
    # Tasks
    # -----------------------------
    def create_task(self, request: CreateTaskRequest) -> Task:
        with self.storage.transaction():
            require_manager(self.storage, request.created_by)
            task_data = {
                "id": uuid4(),
                "name": request.name.strip(),
                "description": request.description,
                "category": request.category,
                "reward": request.reward,
                "active": True,
                "created_by": request.created_by,
                "created_at": datetime.now(timezone.utc),
            }
            self.storage.tasks[task_data["id"]] = task_data
        return Task(**task_data)

    def update_task(self, task_id: UUID, request: UpdateTaskRequest) -> Task:
        with self.storage.transaction():
            row = self._task_row(task_id)
            if any(c["task_id"] == task_id for c in self.storage.task_completions.values()):
                raise TaskInUseError(f"Task {task_id} has completions and can no longer be edited")
            for field, value in request.model_dump(exclude_none=True).items():
                row[field] = value
            return Task(**row)

    def deactivate_task(self, task_id: UUID) -> Task:
        with self.storage.transaction():
            row = self._task_row(task_id)
            row["active"] = False
            return Task(**row)

    def list_tasks(self, active_only: bool = True) -> list[Task]:
        with self.storage.transaction():
            tasks = [Task(**r) for r in self.storage.tasks.values() if r["active"] or not active_only]
        tasks.sort(key=lambda t: t.created_at, reverse=True)
        return tasks

    # -----------------------------
    # Rewards
    # -----------------------------
    def create_reward(self, request: CreateRewardRequest) -> Reward:
        with self.storage.transaction():
            reward_data = {
                "id": uuid4(),
                "name": request.name.strip(),
                "description": request.description,
                "emoji": request.emoji,
                "cost": request.cost,
                "active": True,
                "created_at": datetime.now(timezone.utc),
            }
            self.storage.rewards[reward_data["id"]] = reward_data
        return Reward(**reward_data)

    def update_reward(self, reward_id: UUID, request: UpdateRewardRequest) -> Reward:
        with self.storage.transaction():
            row = self._reward_row(reward_id)
            for field, value in request.model_dump(exclude_none=True).items():
                row[field] = value
            return Reward(**row)

    def deactivate_reward(self, reward_id: UUID) -> Reward:
        with self.storage.transaction():
            row = self._reward_row(reward_id)
            row["active"] = False
            return Reward(**row)

    def list_rewards(self, active_only: bool = True) -> list[Reward]:
        with self.storage.transaction():
            rewards = [Reward(**r) for r in self.storage.rewards.values() if r["active"] or not active_only]
        rewards.sort(key=lambda r: (r.cost, r.name))
        return rewards

    # -----------------------------
    # Schedules
    # -----------------------------
    def add_schedule(self, request: CreateScheduleRequest) -> Schedule:
        with self.storage.transaction():
            self._employee_row(request.employee_id)
            for row in self.storage.schedules.values():
                if row["employee_id"] == request.employee_id and row["date"] == request.date:
                    raise ScheduleConflictError(
                        f"Employee {request.employee_id} is already scheduled on {request.date.isoformat()}"
                    )
            schedule_data = {"id": uuid4(), **request.model_dump()}
            self.storage.schedules[schedule_data["id"]] = schedule_data
        return Schedule(**schedule_data)

    def delete_schedule(self, schedule_id: UUID) -> None:
        with self.storage.transaction():
            if self.storage.schedules.pop(schedule_id, None) is None:
                raise ScheduleNotFoundError(f"Schedule {schedule_id} not found")

    def list_schedules(self, from_date: Optional[date] = None) -> list[Schedule]:
        with self.storage.transaction():
            schedules = [
                Schedule(**r) for r in self.storage.schedules.values()
                if from_date is None or r["date"] >= from_date
            ]
        schedules.sort(key=lambda s: (s.date, s.start_time))
        return schedules

    # -----------------------------
    # Complaints
    # -----------------------------
    def submit_complaint(self, request: CreateComplaintRequest) -> Complaint:
        if not request.body.strip():
            raise ValidationFailedError("Please enter your complaint details")
        with self.storage.transaction():
            self._employee_row(request.employee_id)
            complaint_data = {
                "id": uuid4(),
                "employee_id": request.employee_id,
                "category": request.category or "general",
                "body": request.body.strip(),
                "status": ComplaintStatus.OPEN,
                "created_at": datetime.now(timezone.utc),
                "resolved_at": None,
            }
            self.storage.complaints[complaint_data["id"]] = complaint_data
        return Complaint(**complaint_data)

    def resolve_complaint(self, complaint_id: UUID) -> Complaint:
        with self.storage.transaction():
            row = self.storage.complaints.get(complaint_id)
            if row is None:
                raise ComplaintNotFoundError(f"Complaint {complaint_id} not found")
            if row["status"] == ComplaintStatus.RESOLVED:
                raise ComplaintAlreadyResolvedError(f"Complaint {complaint_id} is already resolved")
            row["status"] = ComplaintStatus.RESOLVED
            row["resolved_at"] = datetime.now(timezone.utc)
            return Complaint(**row)

    def list_complaints(self, status: Optional[ComplaintStatus] = None) -> list[Complaint]:
        with self.storage.transaction():
            complaints = [
                Complaint(**r) for r in self.storage.complaints.values()
                if status is None or r["status"] == status
            ]
        complaints.sort(key=lambda c: c.created_at, reverse=True)
        return complaints

    # -----------------------------
    # Password resets
    # -----------------------------
    def request_password_reset(self, name: str) -> PasswordResetRequest:
        with self.storage.transaction():
            row = self.storage.find_employee_by_name(name or "")
            if row is None:
                raise EmployeeNotFoundError("Employee not found. Please check the name and try again.")
            request_data = {
                "id": uuid4(),
                "employee_id": row["id"],
                "employee_name": row["name"],
                "requested_at": datetime.now(timezone.utc),
                "status": PasswordResetStatus.PENDING,
                "processed_at": None,
                "processed_by": None,
            }
            self.storage.password_reset_requests[request_data["id"]] = request_data
        logger.info(f"Password reset requested for employee {row['id']}")
        return PasswordResetRequest(**request_data)

    def list_password_resets(self, pending_only: bool = True) -> list[PasswordResetRequest]:
        with self.storage.transaction():
            requests = [
                PasswordResetRequest(**r) for r in self.storage.password_reset_requests.values()
                if not pending_only or r["status"] == PasswordResetStatus.PENDING
            ]
        requests.sort(key=lambda r: r.requested_at, reverse=True)
        return requests

    def process_password_reset(
        self, request_id: UUID, new_password: str, processed_by: UUID
    ) -> PasswordResetRequest:
        with self.storage.transaction():
            request_data = self.storage.password_reset_requests.get(request_id)
            if request_data is None or request_data["status"] != PasswordResetStatus.PENDING:
                raise PasswordResetNotFoundError(f"No pending password reset {request_id}")
            require_manager(self.storage, processed_by)
            employee = self._employee_row(request_data["employee_id"], active_only=False)
            employee["password_hash"] = get_password_hash(new_password)
            request_data["status"] = PasswordResetStatus.PROCESSED
            request_data["processed_at"] = datetime.now(timezone.utc)
            request_data["processed_by"] = processed_by
        logger.info(f"Password reset {request_id} processed by {processed_by}")
        return PasswordResetRequest(**request_data)

    # -----------------------------
    # Row lookups
    # -----------------------------
    def _employee_row(self, employee_id: UUID, active_only: bool = True) -> dict:
        row = self.storage.employees.get(employee_id)
        if row is None or (active_only and not row["active"]):
            raise EmployeeNotFoundError(f"Employee {employee_id} not found")
        return row

    def _task_row(self, task_id: UUID) -> dict:
        row = self.storage.tasks.get(task_id)
        if row is None:
            raise TaskNotFoundError(f"Task {task_id} not found")
        return row

    def _reward_row(self, reward_id: UUID) -> dict:
        row = self.storage.rewards.get(reward_id)
        if row is None:
            raise RewardNotFoundError(f"Reward {reward_id} not found")
        return row
