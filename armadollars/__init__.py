"""
Armadollars: employee rewards for a restaurant location

This module provides:
- A balance ledger where every change is an entry and balance = sum of entries
- Once-per-day task completion credits
- Reward redemption lifecycle: pending → approved / denied (refunded)
- Directory and catalog management with soft delete
"""

from .models import (
    EntryType,
    AchievementType,
    RedemptionStatus,
    Employee,
    Task,
    TaskCompletion,
    Reward,
    Redemption,
    Achievement,
    LedgerEntry,
)
from .service import ArmadollarsService

__all__ = [
    "EntryType",
    "AchievementType",
    "RedemptionStatus",
    "Employee",
    "Task",
    "TaskCompletion",
    "Reward",
    "Redemption",
    "Achievement",
    "LedgerEntry",
    "ArmadollarsService",
]
