"""
Balance ledger.

The only code path allowed to change an employee's balance. Every change is
written as a ledger entry together with the delta applied by the store, so
the cached balance always equals the sum of the employee's entries. Credits
and refunds also append an Achievement for the audit trail.

Employees flagged ``unlimited`` are exempt from debits and refunds.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from .errors import (
    EmployeeNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
)
from .models import (
    Achievement,
    AchievementType,
    BalanceChange,
    Employee,
    EmployeeBalance,
    EntryType,
    LedgerEntry,
    LedgerHistory,
)
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)


def _positive(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except ArithmeticError:
        raise InvalidAmountError(f"Amount {amount!r} is not a number")
    if not value.is_finite() or value <= 0:
        raise InvalidAmountError(f"Amount must be positive, got {amount}")
    return value


class BalanceLedger:
    def __init__(self, storage: InMemoryStorage):
        self.storage = storage

    def credit(
        self,
        employee_id: UUID,
        amount,
        reason: str,
        source_ref: Optional[str] = None,
        *,
        title: Optional[str] = None,
        description: str = "",
        achievement_type: AchievementType = AchievementType.BONUS,
    ) -> BalanceChange:
        amount = _positive(amount)
        with self.storage.transaction():
            self._get_employee(employee_id)
            entry = self._apply(employee_id, EntryType.CREDIT, amount, reason, source_ref)
            achievement = self._record_achievement(
                employee_id, achievement_type, title or reason, description, amount, source_ref
            )
        logger.info(f"Credited {amount} to employee {employee_id} ({reason}), balance {entry.balance_after}")
        return BalanceChange(
            employee_id=employee_id,
            amount=amount,
            new_balance=entry.balance_after,
            entry=entry,
            achievement=achievement,
        )

    def debit(
        self,
        employee_id: UUID,
        amount,
        reason: str,
        reference_id: Optional[str] = None,
    ) -> BalanceChange:
        amount = _positive(amount)
        with self.storage.transaction():
            employee = self._get_employee(employee_id)
            if employee.unlimited:
                logger.info(f"Skipped debit of {amount} for unlimited employee {employee_id} ({reason})")
                return BalanceChange(
                    employee_id=employee_id,
                    amount=amount,
                    new_balance=employee.balance,
                    applied=False,
                )
            if amount > employee.balance:
                logger.warning(
                    f"Rejected debit of {amount} for employee {employee_id}: balance {employee.balance}"
                )
                raise InsufficientBalanceError(
                    f"Employee {employee_id} needs {amount} but only has {employee.balance}"
                )
            entry = self._apply(employee_id, EntryType.DEBIT, -amount, reason, reference_id)
        logger.info(f"Debited {amount} from employee {employee_id} ({reason}), balance {entry.balance_after}")
        return BalanceChange(
            employee_id=employee_id,
            amount=amount,
            new_balance=entry.balance_after,
            entry=entry,
        )

    def refund(
        self,
        employee_id: UUID,
        amount,
        reason: str,
        reference_id: Optional[str] = None,
        *,
        title: str = "Refund",
        description: str = "",
    ) -> BalanceChange:
        amount = _positive(amount)
        with self.storage.transaction():
            employee = self._get_employee(employee_id, active_only=False)
            if employee.unlimited:
                return BalanceChange(
                    employee_id=employee_id,
                    amount=amount,
                    new_balance=employee.balance,
                    applied=False,
                )
            entry = self._apply(employee_id, EntryType.REFUND, amount, reason, reference_id)
            achievement = self._record_achievement(
                employee_id, AchievementType.REFUND, title, description, amount, reference_id
            )
        logger.info(f"Refunded {amount} to employee {employee_id} ({reason}), balance {entry.balance_after}")
        return BalanceChange(
            employee_id=employee_id,
            amount=amount,
            new_balance=entry.balance_after,
            entry=entry,
            achievement=achievement,
        )

    def award_bonus(self, employee_id: UUID, amount, reason: str = "") -> BalanceChange:
        return self.credit(
            employee_id,
            amount,
            "bonus",
            title="Admin Bonus",
            description=reason,
            achievement_type=AchievementType.BONUS,
        )

    def get_balance(self, employee_id: UUID) -> EmployeeBalance:
        with self.storage.transaction():
            employee = self._get_employee(employee_id, active_only=False)
            entries = [
                e for e in self.storage.ledger_entries.values()
                if e["employee_id"] == employee_id
            ]
        last_entry = max(entries, key=lambda e: e["created_at"]) if entries else None
        return EmployeeBalance(
            employee_id=employee_id,
            balance=employee.balance,
            ledger_total=sum((e["amount"] for e in entries), Decimal("0")),
            total_entries=len(entries),
            unlimited=employee.unlimited,
            last_transaction_at=last_entry["created_at"] if last_entry else None,
        )

    def get_history(self, employee_id: UUID, limit: int = 50, offset: int = 0) -> LedgerHistory:
        with self.storage.transaction():
            employee = self._get_employee(employee_id, active_only=False)
            all_entries = [
                LedgerEntry(**e) for e in self.storage.ledger_entries.values()
                if e["employee_id"] == employee_id
            ]
        all_entries.sort(key=lambda e: e.created_at, reverse=True)
        return LedgerHistory(
            employee_id=employee_id,
            entries=all_entries[offset:offset + limit],
            total_count=len(all_entries),
            current_balance=employee.balance,
        )

    def list_achievements(self, employee_id: UUID) -> list[Achievement]:
        with self.storage.transaction():
            achievements = [
                Achievement(**a) for a in self.storage.achievements.values()
                if a["employee_id"] == employee_id
            ]
        achievements.sort(key=lambda a: a.created_at, reverse=True)
        return achievements

    def _get_employee(self, employee_id: UUID, active_only: bool = True) -> Employee:
        row = self.storage.employees.get(employee_id)
        if row is None or (active_only and not row["active"]):
            raise EmployeeNotFoundError(f"Employee {employee_id} not found")
        return Employee(**row)

    def _apply(
        self,
        employee_id: UUID,
        entry_type: EntryType,
        delta: Decimal,
        reason: str,
        reference_id: Optional[str],
    ) -> LedgerEntry:
        new_balance = self.storage.apply_balance_delta(employee_id, delta)
        entry_data = {
            "id": uuid4(),
            "employee_id": employee_id,
            "entry_type": entry_type,
            "amount": delta,
            "balance_after": new_balance,
            "reason": reason,
            "reference_id": str(reference_id) if reference_id is not None else None,
            "created_at": datetime.now(timezone.utc),
        }
        self.storage.ledger_entries[entry_data["id"]] = entry_data
        return LedgerEntry(**entry_data)

    def _record_achievement(
        self,
        employee_id: UUID,
        achievement_type: AchievementType,
        title: str,
        description: str,
        points: Decimal,
        source_ref: Optional[str],
    ) -> Achievement:
        achievement_data = {
            "id": uuid4(),
            "employee_id": employee_id,
            "type": achievement_type,
            "title": title,
            "description": description or "",
            "points": points,
            "source_ref": str(source_ref) if source_ref is not None else None,
            "created_at": datetime.now(timezone.utc),
        }
        self.storage.achievements[achievement_data["id"]] = achievement_data
        return Achievement(**achievement_data)
