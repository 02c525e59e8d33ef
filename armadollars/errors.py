class ArmadollarsError(Exception):
    code = "ArmadollarsError"


class InvalidAmountError(ArmadollarsError):
    code = "InvalidAmount"


class InsufficientBalanceError(ArmadollarsError):
    code = "InsufficientBalance"


class AlreadyCompletedTodayError(ArmadollarsError):
    code = "AlreadyCompletedToday"


class EmployeeNotFoundError(ArmadollarsError):
    code = "EmployeeNotFound"


class TaskNotFoundError(ArmadollarsError):
    code = "TaskNotFound"


class TaskInactiveError(TaskNotFoundError):
    code = "TaskInactive"


class TaskInUseError(ArmadollarsError):
    code = "TaskInUse"


class RewardNotFoundError(ArmadollarsError):
    code = "RewardNotFound"


class RewardInactiveError(ArmadollarsError):
    code = "RewardInactive"


class RedemptionNotFoundError(ArmadollarsError):
    code = "RedemptionNotFound"


class RedemptionNotPendingError(ArmadollarsError):
    code = "RedemptionNotPending"


class ScheduleNotFoundError(ArmadollarsError):
    code = "ScheduleNotFound"


class ScheduleConflictError(ArmadollarsError):
    code = "ScheduleConflict"


class ComplaintNotFoundError(ArmadollarsError):
    code = "ComplaintNotFound"


class ComplaintAlreadyResolvedError(ArmadollarsError):
    code = "ComplaintAlreadyResolved"


class PasswordResetNotFoundError(ArmadollarsError):
    code = "PasswordResetNotFound"


class AuthenticationFailedError(ArmadollarsError):
    code = "AuthenticationFailed"


class NotAuthorizedError(ArmadollarsError):
    code = "NotAuthorized"


class ValidationFailedError(ArmadollarsError):
    code = "ValidationFailed"


class StorageUnavailableError(ArmadollarsError):
    code = "StorageUnavailable"
