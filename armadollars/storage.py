"""
In-process storage for the Armadollars tables.

Every table is a dict of row dicts keyed by id. The store owns a re-entrant
lock; ``transaction()`` holds it for a whole unit of work and restores every
table if the block raises, so callers get all-or-nothing writes. Balance
changes go through ``apply_balance_delta`` which adds a delta to the stored
value under the lock instead of writing a caller-computed literal.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterator, Optional
from uuid import UUID, uuid4

from .errors import (
    AlreadyCompletedTodayError,
    EmployeeNotFoundError,
    InsufficientBalanceError,
    StorageUnavailableError,
)
from .security import get_password_hash

logger = logging.getLogger(__name__)

SEED_ADMIN_ID = UUID("550e8400-e29b-41d4-a716-446655440000")
SEED_OWNER_ID = UUID("550e8400-e29b-41d4-a716-446655440001")
SEED_SERVER_ID = UUID("660e8400-e29b-41d4-a716-446655440000")
SEED_COOK_ID = UUID("660e8400-e29b-41d4-a716-446655440001")

SEED_TASK_SILVERWARE_ID = UUID("11111111-1111-1111-1111-111111111111")
SEED_TASK_DEEP_CLEAN_ID = UUID("11111111-1111-1111-1111-111111111112")
SEED_TASK_RETIRED_ID = UUID("11111111-1111-1111-1111-111111111113")

SEED_REWARD_MEAL_ID = UUID("22222222-2222-2222-2222-222222222221")
SEED_REWARD_BREAK_ID = UUID("22222222-2222-2222-2222-222222222222")
SEED_REWARD_PARKING_ID = UUID("22222222-2222-2222-2222-222222222223")
SEED_REWARD_RETIRED_ID = UUID("22222222-2222-2222-2222-222222222224")

TABLES = (
    "employees",
    "tasks",
    "task_completions",
    "rewards",
    "redemptions",
    "achievements",
    "ledger_entries",
    "complaints",
    "password_reset_requests",
    "schedules",
    "completion_index",
)


class InMemoryStorage:
    def __init__(self, seed: bool = True):
        self.employees: dict[UUID, dict] = {}
        self.tasks: dict[UUID, dict] = {}
        self.task_completions: dict[UUID, dict] = {}
        self.rewards: dict[UUID, dict] = {}
        self.redemptions: dict[UUID, dict] = {}
        self.achievements: dict[UUID, dict] = {}
        self.ledger_entries: dict[UUID, dict] = {}
        self.complaints: dict[UUID, dict] = {}
        self.password_reset_requests: dict[UUID, dict] = {}
        self.schedules: dict[UUID, dict] = {}
        # (employee_id, task_id, calendar day) -> completion id
        self.completion_index: dict[tuple[UUID, UUID, date], UUID] = {}

        self._lock = threading.RLock()
        self._depth = 0
        self._closed = False

        if seed:
            self._seed_data()

    # -----------------------------
    # Transactions
    # -----------------------------
    @contextmanager
    def transaction(self) -> Iterator["InMemoryStorage"]:
        if self._closed:
            raise StorageUnavailableError("Storage is closed")
        with self._lock:
            snapshot = self._snapshot() if self._depth == 0 else None
            self._depth += 1
            try:
                yield self
            except BaseException:
                if snapshot is not None:
                    self._restore(snapshot)
                    logger.debug("Transaction rolled back")
                raise
            finally:
                self._depth -= 1

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _snapshot(self) -> dict:
        return {name: copy.deepcopy(getattr(self, name)) for name in TABLES}

    def _restore(self, snapshot: dict) -> None:
        for name, table in snapshot.items():
            setattr(self, name, table)

    # -----------------------------
    # Atomic updates
    # -----------------------------
    def apply_balance_delta(self, employee_id: UUID, delta: Decimal) -> Decimal:
        """
        Add ``delta`` to the stored balance and return the new value.

        Raises InsufficientBalanceError instead of letting the balance drop
        below zero.
        """
        with self.transaction():
            row = self.employees.get(employee_id)
            if row is None:
                raise EmployeeNotFoundError(f"Employee {employee_id} not found")
            new_balance = row["balance"] + delta
            if new_balance < 0:
                raise InsufficientBalanceError(
                    f"Employee {employee_id} has {row['balance']} but {-delta} is required"
                )
            row["balance"] = new_balance
            return new_balance

    def insert_completion(self, data: dict, day: date) -> dict:
        with self.transaction():
            key = (data["employee_id"], data["task_id"], day)
            if key in self.completion_index:
                raise AlreadyCompletedTodayError(
                    f"Task {data['task_id']} already completed on {day.isoformat()}"
                )
            self.task_completions[data["id"]] = data
            self.completion_index[key] = data["id"]
            return data

    # -----------------------------
    # Seed data
    # -----------------------------
    def _seed_data(self):
        now = datetime.now(timezone.utc)

        employees = [
            (SEED_ADMIN_ID, "Admin", "admin", "admin123", Decimal("0"), False),
            (SEED_OWNER_ID, "House Account", "admin", "house123", Decimal("0"), True),
            (SEED_SERVER_ID, "Jamie Rivera", "server", "server123", Decimal("50"), False),
            (SEED_COOK_ID, "Morgan Lee", "cook", "cook123", Decimal("15"), False),
        ]
        for employee_id, name, role, password, opening, unlimited in employees:
            self.employees[employee_id] = {
                "id": employee_id, "name": name, "role": role,
                "balance": Decimal("0"), "unlimited": unlimited, "active": True,
                "email": None, "streak": 0, "created_at": now,
                "password_hash": get_password_hash(password),
            }
            if opening > 0:
                self._seed_opening_balance(employee_id, opening, now)

        tasks = [
            (SEED_TASK_SILVERWARE_ID, "Roll silverware", "Roll 50 sets before open", "side work", Decimal("5"), True),
            (SEED_TASK_DEEP_CLEAN_ID, "Deep clean station", "Degrease and restock your station", "cleaning", Decimal("10"), True),
            (SEED_TASK_RETIRED_ID, "Peanut bucket refill", "Retired task", "side work", Decimal("3"), False),
        ]
        for task_id, name, description, category, reward, active in tasks:
            self.tasks[task_id] = {
                "id": task_id, "name": name, "description": description,
                "category": category, "reward": reward, "active": active,
                "created_by": SEED_ADMIN_ID, "created_at": now,
            }

        rewards = [
            (SEED_REWARD_MEAL_ID, "Free Meal", "One entree on your next shift", "\U0001F37D", 30, True),
            (SEED_REWARD_BREAK_ID, "Extra Break", "An extra 15 minute break", "☕", 20, True),
            (SEED_REWARD_PARKING_ID, "Premium Parking", "Reserved spot for a week", "\U0001F697", 100, True),
            (SEED_REWARD_RETIRED_ID, "Old T-Shirt", "Retired merchandise", "\U0001F455", 10, False),
        ]
        for reward_id, name, description, emoji, cost, active in rewards:
            self.rewards[reward_id] = {
                "id": reward_id, "name": name, "description": description,
                "emoji": emoji, "cost": cost, "active": active, "created_at": now,
            }

    def _seed_opening_balance(self, employee_id: UUID, amount: Decimal, now: datetime):
        self.employees[employee_id]["balance"] += amount
        entry_id = uuid4()
        self.ledger_entries[entry_id] = {
            "id": entry_id, "employee_id": employee_id, "entry_type": "credit",
            "amount": amount, "balance_after": self.employees[employee_id]["balance"],
            "reason": "opening_balance", "reference_id": None, "created_at": now,
        }

    # -----------------------------
    # Lookups
    # -----------------------------
    def find_employee_by_name(self, name: str, active_only: bool = True) -> Optional[dict]:
        wanted = name.strip().lower()
        with self.transaction():
            for row in self.employees.values():
                if active_only and not row["active"]:
                    continue
                if row["name"].strip().lower() == wanted:
                    return row
        return None
