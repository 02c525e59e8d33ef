import logging
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

from .config import get_settings
from .errors import EmployeeNotFoundError, TaskInactiveError, TaskNotFoundError
from .ledger import BalanceLedger
from .models import AchievementType, CompletionResult, Task, TaskCompletion
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)


class TaskCompletionRecorder:
    """Grants one credit per (employee, task, calendar day)."""

    def __init__(self, storage: InMemoryStorage, ledger: BalanceLedger, timezone_name: Optional[str] = None):
        self.storage = storage
        self.ledger = ledger
        self.tz = ZoneInfo(timezone_name or get_settings().REFERENCE_TIMEZONE)

    def calendar_day(self, moment: datetime) -> date:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.tz).date()

    def complete_task(
        self, employee_id: UUID, task_id: UUID, as_of: Optional[datetime] = None
    ) -> CompletionResult:
        completed_at = as_of or datetime.now(timezone.utc)
        if completed_at.tzinfo is None:
            completed_at = completed_at.replace(tzinfo=timezone.utc)
        day = self.calendar_day(completed_at)

        with self.storage.transaction():
            task = self._get_active_task(task_id)
            employee = self.storage.employees.get(employee_id)
            if employee is None or not employee["active"]:
                raise EmployeeNotFoundError(f"Employee {employee_id} not found")

            completion_data = self.storage.insert_completion(
                {
                    "id": uuid4(),
                    "employee_id": employee_id,
                    "task_id": task_id,
                    "completed_at": completed_at,
                    "points_awarded": task.reward,
                },
                day,
            )
            change = self.ledger.credit(
                employee_id,
                task.reward,
                "task_completion",
                str(completion_data["id"]),
                title=f"Completed: {task.name}",
                description=task.description,
                achievement_type=AchievementType.TASK_COMPLETION,
            )

        logger.info(f"Employee {employee_id} completed task {task_id} on {day.isoformat()} for {task.reward}")
        return CompletionResult(
            completion=TaskCompletion(**completion_data),
            new_balance=change.new_balance,
            achievement=change.achievement,
        )

    def list_completions(
        self, employee_id: Optional[UUID] = None, day: Optional[date] = None
    ) -> list[TaskCompletion]:
        with self.storage.transaction():
            rows = list(self.storage.task_completions.values())
        completions = [
            TaskCompletion(**row) for row in rows
            if (employee_id is None or row["employee_id"] == employee_id)
            and (day is None or self.calendar_day(row["completed_at"]) == day)
        ]
        completions.sort(key=lambda c: c.completed_at, reverse=True)
        return completions

    def completions_today(self) -> list[TaskCompletion]:
        return self.list_completions(day=self.calendar_day(datetime.now(timezone.utc)))

    def _get_active_task(self, task_id: UUID) -> Task:
        row = self.storage.tasks.get(task_id)
        if row is None:
            raise TaskNotFoundError(f"Task {task_id} not found")
        if not row["active"]:
            raise TaskInactiveError(f"Task {task_id} is no longer active")
        return Task(**row)
