from functools import lru_cache
from uuid import UUID

from passlib.context import CryptContext

from .config import get_settings
from .errors import EmployeeNotFoundError, NotAuthorizedError
from .models import normalize_role


@lru_cache()
def get_password_context() -> CryptContext:
    settings = get_settings()
    return CryptContext(schemes=settings.PASSWORD_SCHEMES, deprecated="auto")


def get_password_hash(password: str) -> str:
    return get_password_context().hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a stored hash.

    Unknown or malformed hashes never verify.
    """
    if not hashed_password:
        return False
    try:
        return get_password_context().verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def is_manager(role: str) -> bool:
    manager_roles = {normalize_role(r) for r in get_settings().MANAGER_ROLES}
    return normalize_role(role) in manager_roles


def require_manager(storage, employee_id: UUID) -> dict:
    """Return the active employee row for ``employee_id`` if it may administer."""
    row = storage.employees.get(employee_id)
    if row is None or not row["active"]:
        raise EmployeeNotFoundError(f"Employee {employee_id} not found")
    if not is_manager(row["role"]):
        raise NotAuthorizedError(f"Employee {employee_id} is not allowed to do this")
    return row
