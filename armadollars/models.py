from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict


class EntryType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    REFUND = "refund"


class AchievementType(str, Enum):
    TASK_COMPLETION = "task_completion"
    BONUS = "bonus"
    REFUND = "refund"


class RedemptionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class ComplaintStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class PasswordResetStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class Employee(BaseModel):
    id: UUID
    name: str
    role: str
    balance: Decimal
    unlimited: bool = False
    active: bool = True
    email: Optional[str] = None
    streak: int = 0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_admin(self) -> bool:
        return normalize_role(self.role) == "admin"


class Task(BaseModel):
    id: UUID
    name: str
    description: str = ""
    category: str = "general"
    reward: Decimal
    active: bool = True
    created_by: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TaskCompletion(BaseModel):
    id: UUID
    employee_id: UUID
    task_id: UUID
    completed_at: datetime
    points_awarded: Decimal

    model_config = ConfigDict(from_attributes=True)


class Reward(BaseModel):
    id: UUID
    name: str
    description: str = ""
    emoji: str = ""
    cost: int
    active: bool = True
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Redemption(BaseModel):
    id: UUID
    employee_id: UUID
    reward_id: UUID
    reward_name: str
    cost: int
    status: RedemptionStatus
    requested_at: datetime
    resolved_at: Optional[datetime] = None
    resolver_id: Optional[UUID] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    def is_pending(self) -> bool:
        return self.status == RedemptionStatus.PENDING


class Achievement(BaseModel):
    id: UUID
    employee_id: UUID
    type: AchievementType
    title: str
    description: str = ""
    points: Decimal
    source_ref: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LedgerEntry(BaseModel):
    id: UUID
    employee_id: UUID
    entry_type: EntryType
    amount: Decimal
    balance_after: Decimal
    reason: str
    reference_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Complaint(BaseModel):
    id: UUID
    employee_id: UUID
    category: str
    body: str
    status: ComplaintStatus
    created_at: datetime
    resolved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PasswordResetRequest(BaseModel):
    id: UUID
    employee_id: UUID
    employee_name: str
    requested_at: datetime
    status: PasswordResetStatus
    processed_at: Optional[datetime] = None
    processed_by: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class Schedule(BaseModel):
    id: UUID
    employee_id: UUID
    date: date
    shift_type: str
    start_time: str
    end_time: str
    notes: str = ""

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    name: str
    password: str


class PasswordResetCreateRequest(BaseModel):
    name: str


class ProcessPasswordResetRequest(BaseModel):
    new_password: str = Field(..., min_length=1)
    processed_by: UUID


class CreateEmployeeRequest(BaseModel):
    name: str = Field(..., min_length=1)
    role: str = "server"
    password: str = Field(..., min_length=1)
    email: Optional[str] = None
    unlimited: bool = False

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Jamie Rivera",
            "role": "server",
            "password": "change-me",
            "email": "jamie@example.com",
        }
    })


class UpdateEmployeeRequest(BaseModel):
    name: Optional[str] = None
    role: Optional[str] = None
    email: Optional[str] = None
    streak: Optional[int] = Field(default=None, ge=0)


class CreateTaskRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    category: str = "general"
    reward: Decimal = Field(..., gt=0)
    created_by: UUID


class UpdateTaskRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    reward: Optional[Decimal] = Field(default=None, gt=0)


class CompleteTaskRequest(BaseModel):
    employee_id: UUID


class CreateRewardRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    emoji: str = ""
    cost: int = Field(..., gt=0)


class UpdateRewardRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    emoji: Optional[str] = None
    cost: Optional[int] = Field(default=None, gt=0)


class RedemptionCreateRequest(BaseModel):
    employee_id: UUID
    reward_id: UUID


class ResolveRedemptionRequest(BaseModel):
    resolver_id: UUID
    notes: Optional[str] = None


class AwardBonusRequest(BaseModel):
    amount: Decimal
    reason: str = ""
    awarded_by: UUID


class CreateScheduleRequest(BaseModel):
    employee_id: UUID
    date: date
    shift_type: str
    start_time: str
    end_time: str
    notes: str = ""


class CreateComplaintRequest(BaseModel):
    employee_id: UUID
    category: str = "general"
    body: str


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class BalanceChange(BaseModel):
    employee_id: UUID
    amount: Decimal
    new_balance: Decimal
    applied: bool = True
    entry: Optional[LedgerEntry] = None
    achievement: Optional[Achievement] = None


class CompletionResult(BaseModel):
    completion: TaskCompletion
    new_balance: Decimal
    achievement: Optional[Achievement] = None


class EmployeeBalance(BaseModel):
    employee_id: UUID
    balance: Decimal
    ledger_total: Decimal
    total_entries: int
    unlimited: bool
    last_transaction_at: Optional[datetime] = None


class LedgerHistory(BaseModel):
    employee_id: UUID
    entries: list[LedgerEntry]
    total_count: int
    current_balance: Decimal


def normalize_role(role: Optional[str]) -> str:
    return " ".join((role or "").replace("_", " ").lower().split())
