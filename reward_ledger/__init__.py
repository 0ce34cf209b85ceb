"""
Single-Authority Reward Ledger

This module provides:
- Monotonic reward id allocation, never reused
- Authority-only minting, single and batched (up to 100 items)
- Owner-gated burn and transfer, with burn as a terminal state
- Point updates and deductions on live rewards
- Tagged results carrying stable numeric error codes
"""

from .models import (
    ErrorCode,
    LedgerResult,
    Reward,
    LedgerStats,
)
from .service import LedgerService, LedgerState

__all__ = [
    "ErrorCode",
    "LedgerResult",
    "Reward",
    "LedgerStats",
    "LedgerService",
    "LedgerState",
]
