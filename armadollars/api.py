import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .errors import (
    AlreadyCompletedTodayError,
    ArmadollarsError,
    AuthenticationFailedError,
    ComplaintAlreadyResolvedError,
    ComplaintNotFoundError,
    EmployeeNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
    NotAuthorizedError,
    PasswordResetNotFoundError,
    RedemptionNotFoundError,
    RedemptionNotPendingError,
    RewardInactiveError,
    RewardNotFoundError,
    ScheduleConflictError,
    ScheduleNotFoundError,
    StorageUnavailableError,
    TaskInactiveError,
    TaskInUseError,
    TaskNotFoundError,
    ValidationFailedError,
)
from .models import (
    Achievement,
    AwardBonusRequest,
    BalanceChange,
    Complaint,
    ComplaintStatus,
    CompleteTaskRequest,
    CompletionResult,
    CreateComplaintRequest,
    CreateEmployeeRequest,
    CreateRewardRequest,
    CreateScheduleRequest,
    CreateTaskRequest,
    Employee,
    EmployeeBalance,
    LedgerHistory,
    LoginRequest,
    PasswordResetCreateRequest,
    PasswordResetRequest,
    ProcessPasswordResetRequest,
    Redemption,
    RedemptionCreateRequest,
    RedemptionStatus,
    ResolveRedemptionRequest,
    Reward,
    Schedule,
    Task,
    TaskCompletion,
    UpdateEmployeeRequest,
    UpdateRewardRequest,
    UpdateTaskRequest,
)
from .service import ArmadollarsService

settings = get_settings()
logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    TaskInactiveError: status.HTTP_409_CONFLICT,
    EmployeeNotFoundError: status.HTTP_404_NOT_FOUND,
    TaskNotFoundError: status.HTTP_404_NOT_FOUND,
    RewardNotFoundError: status.HTTP_404_NOT_FOUND,
    RedemptionNotFoundError: status.HTTP_404_NOT_FOUND,
    ScheduleNotFoundError: status.HTTP_404_NOT_FOUND,
    ComplaintNotFoundError: status.HTTP_404_NOT_FOUND,
    PasswordResetNotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyCompletedTodayError: status.HTTP_409_CONFLICT,
    RedemptionNotPendingError: status.HTTP_409_CONFLICT,
    RewardInactiveError: status.HTTP_409_CONFLICT,
    TaskInUseError: status.HTTP_409_CONFLICT,
    ScheduleConflictError: status.HTTP_409_CONFLICT,
    ComplaintAlreadyResolvedError: status.HTTP_409_CONFLICT,
    InvalidAmountError: status.HTTP_400_BAD_REQUEST,
    InsufficientBalanceError: status.HTTP_400_BAD_REQUEST,
    ValidationFailedError: status.HTTP_400_BAD_REQUEST,
    AuthenticationFailedError: status.HTTP_401_UNAUTHORIZED,
    NotAuthorizedError: status.HTTP_403_FORBIDDEN,
    StorageUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

armadollars_service = ArmadollarsService()


def get_service() -> ArmadollarsService:
    return armadollars_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    armadollars_service.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="Employee rewards: earn Armadollars for tasks, redeem them for rewards",
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def status_for(exc: ArmadollarsError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_400_BAD_REQUEST


@app.exception_handler(ArmadollarsError)
async def armadollars_error_handler(request: Request, exc: ArmadollarsError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=code, content={"error": exc.code, "detail": str(exc)})


@app.get("/health", tags=["System"])
def health_check(service: ArmadollarsService = Depends(get_service)):
    return {
        "status": "unavailable" if service.storage.closed else "healthy",
        "service": "armadollars",
    }


# -----------------------------
# Auth
# -----------------------------
@app.post("/auth/login", response_model=Employee, tags=["Auth"])
def login(request: LoginRequest, service: ArmadollarsService = Depends(get_service)) -> Employee:
    return service.directory.authenticate(request.name, request.password)


@app.post("/auth/password-reset", response_model=PasswordResetRequest,
          status_code=status.HTTP_201_CREATED, tags=["Auth"])
def request_password_reset(
    request: PasswordResetCreateRequest, service: ArmadollarsService = Depends(get_service)
) -> PasswordResetRequest:
    return service.directory.request_password_reset(request.name)


@app.get("/password-resets", response_model=list[PasswordResetRequest], tags=["Auth"])
def list_password_resets(service: ArmadollarsService = Depends(get_service)):
    return service.directory.list_password_resets()


@app.post("/password-resets/{request_id}/process", response_model=PasswordResetRequest, tags=["Auth"])
def process_password_reset(
    request_id: UUID, request: ProcessPasswordResetRequest, service: ArmadollarsService = Depends(get_service)
) -> PasswordResetRequest:
    return service.directory.process_password_reset(request_id, request.new_password, request.processed_by)


# -----------------------------
# Employees
# -----------------------------
@app.get("/employees", response_model=list[Employee], tags=["Employees"])
def list_employees(service: ArmadollarsService = Depends(get_service)):
    return service.directory.list_employees()


@app.post("/employees", response_model=Employee, status_code=status.HTTP_201_CREATED, tags=["Employees"])
def create_employee(request: CreateEmployeeRequest, service: ArmadollarsService = Depends(get_service)) -> Employee:
    return service.directory.create_employee(request)


@app.get("/employees/{employee_id}", response_model=Employee, tags=["Employees"])
def get_employee(employee_id: UUID, service: ArmadollarsService = Depends(get_service)) -> Employee:
    return service.directory.get_employee(employee_id)


@app.patch("/employees/{employee_id}", response_model=Employee, tags=["Employees"])
def update_employee(
    employee_id: UUID, request: UpdateEmployeeRequest, service: ArmadollarsService = Depends(get_service)
) -> Employee:
    return service.directory.update_employee(employee_id, request)


@app.delete("/employees/{employee_id}", response_model=Employee, tags=["Employees"])
def deactivate_employee(employee_id: UUID, service: ArmadollarsService = Depends(get_service)) -> Employee:
    return service.directory.deactivate_employee(employee_id)


@app.get("/employees/{employee_id}/balance", response_model=EmployeeBalance, tags=["Ledger"])
def get_balance(employee_id: UUID, service: ArmadollarsService = Depends(get_service)) -> EmployeeBalance:
    return service.get_balance(employee_id)


@app.get("/employees/{employee_id}/ledger", response_model=LedgerHistory, tags=["Ledger"])
def get_ledger(
    employee_id: UUID, limit: int = 50, offset: int = 0, service: ArmadollarsService = Depends(get_service)
) -> LedgerHistory:
    return service.get_ledger_history(employee_id, limit, offset)


@app.get("/employees/{employee_id}/achievements", response_model=list[Achievement], tags=["Ledger"])
def list_achievements(employee_id: UUID, service: ArmadollarsService = Depends(get_service)):
    return service.list_achievements(employee_id)


@app.post("/employees/{employee_id}/bonus", response_model=BalanceChange,
          status_code=status.HTTP_201_CREATED, tags=["Ledger"])
def award_bonus(
    employee_id: UUID, request: AwardBonusRequest, service: ArmadollarsService = Depends(get_service)
) -> BalanceChange:
    return service.award_bonus(employee_id, request.amount, request.reason, request.awarded_by)


@app.get("/leaderboard", response_model=list[Employee], tags=["Employees"])
def leaderboard(limit: Optional[int] = Query(default=None, ge=1), service: ArmadollarsService = Depends(get_service)):
    return service.directory.leaderboard(limit)


# -----------------------------
# Tasks
# -----------------------------
@app.get("/tasks", response_model=list[Task], tags=["Tasks"])
def list_tasks(service: ArmadollarsService = Depends(get_service)):
    return service.directory.list_tasks()


@app.post("/tasks", response_model=Task, status_code=status.HTTP_201_CREATED, tags=["Tasks"])
def create_task(request: CreateTaskRequest, service: ArmadollarsService = Depends(get_service)) -> Task:
    return service.directory.create_task(request)


@app.patch("/tasks/{task_id}", response_model=Task, tags=["Tasks"])
def update_task(task_id: UUID, request: UpdateTaskRequest, service: ArmadollarsService = Depends(get_service)) -> Task:
    return service.directory.update_task(task_id, request)


@app.delete("/tasks/{task_id}", response_model=Task, tags=["Tasks"])
def deactivate_task(task_id: UUID, service: ArmadollarsService = Depends(get_service)) -> Task:
    return service.directory.deactivate_task(task_id)


@app.post("/tasks/{task_id}/complete", response_model=CompletionResult,
          status_code=status.HTTP_201_CREATED, tags=["Tasks"])
def complete_task(
    task_id: UUID, request: CompleteTaskRequest, service: ArmadollarsService = Depends(get_service)
) -> CompletionResult:
    return service.complete_task(request.employee_id, task_id)


@app.get("/completions/today", response_model=list[TaskCompletion], tags=["Tasks"])
def completions_today(service: ArmadollarsService = Depends(get_service)):
    return service.completions.completions_today()


# -----------------------------
# Rewards & redemptions
# -----------------------------
@app.get("/rewards", response_model=list[Reward], tags=["Rewards"])
def list_rewards(service: ArmadollarsService = Depends(get_service)):
    return service.directory.list_rewards()


@app.post("/rewards", response_model=Reward, status_code=status.HTTP_201_CREATED, tags=["Rewards"])
def create_reward(request: CreateRewardRequest, service: ArmadollarsService = Depends(get_service)) -> Reward:
    return service.directory.create_reward(request)


@app.patch("/rewards/{reward_id}", response_model=Reward, tags=["Rewards"])
def update_reward(
    reward_id: UUID, request: UpdateRewardRequest, service: ArmadollarsService = Depends(get_service)
) -> Reward:
    return service.directory.update_reward(reward_id, request)


@app.delete("/rewards/{reward_id}", response_model=Reward, tags=["Rewards"])
def deactivate_reward(reward_id: UUID, service: ArmadollarsService = Depends(get_service)) -> Reward:
    return service.directory.deactivate_reward(reward_id)


@app.post("/redemptions", response_model=Redemption, status_code=status.HTTP_201_CREATED, tags=["Rewards"])
def request_redemption(
    request: RedemptionCreateRequest, service: ArmadollarsService = Depends(get_service)
) -> Redemption:
    return service.request_redemption(request.employee_id, request.reward_id)


@app.get("/redemptions", response_model=list[Redemption], tags=["Rewards"])
def list_redemptions(
    employee_id: Optional[UUID] = None,
    redemption_status: Optional[RedemptionStatus] = None,
    service: ArmadollarsService = Depends(get_service),
):
    return service.list_redemptions(employee_id, redemption_status)


@app.post("/redemptions/{redemption_id}/approve", response_model=Redemption, tags=["Rewards"])
def approve_redemption(
    redemption_id: UUID, request: ResolveRedemptionRequest, service: ArmadollarsService = Depends(get_service)
) -> Redemption:
    return service.approve_redemption(redemption_id, request.resolver_id, request.notes)


@app.post("/redemptions/{redemption_id}/deny", response_model=Redemption, tags=["Rewards"])
def deny_redemption(
    redemption_id: UUID, request: ResolveRedemptionRequest, service: ArmadollarsService = Depends(get_service)
) -> Redemption:
    return service.deny_redemption(redemption_id, request.resolver_id, request.notes)


# -----------------------------
# Schedules & complaints
# -----------------------------
@app.get("/schedules", response_model=list[Schedule], tags=["Schedules"])
def list_schedules(from_date: Optional[date] = None, service: ArmadollarsService = Depends(get_service)):
    return service.directory.list_schedules(from_date)


@app.post("/schedules", response_model=Schedule, status_code=status.HTTP_201_CREATED, tags=["Schedules"])
def add_schedule(request: CreateScheduleRequest, service: ArmadollarsService = Depends(get_service)) -> Schedule:
    return service.directory.add_schedule(request)


@app.delete("/schedules/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Schedules"])
def delete_schedule(schedule_id: UUID, service: ArmadollarsService = Depends(get_service)):
    service.directory.delete_schedule(schedule_id)


@app.get("/complaints", response_model=list[Complaint], tags=["Complaints"])
def list_complaints(
    complaint_status: Optional[ComplaintStatus] = None, service: ArmadollarsService = Depends(get_service)
):
    return service.directory.list_complaints(complaint_status)


@app.post("/complaints", response_model=Complaint, status_code=status.HTTP_201_CREATED, tags=["Complaints"])
def submit_complaint(request: CreateComplaintRequest, service: ArmadollarsService = Depends(get_service)) -> Complaint:
    return service.directory.submit_complaint(request)


@app.post("/complaints/{complaint_id}/resolve", response_model=Complaint, tags=["Complaints"])
def resolve_complaint(complaint_id: UUID, service: ArmadollarsService = Depends(get_service)) -> Complaint:
    return service.directory.resolve_complaint(complaint_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
