"""Exchange lifecycle management.

This module provides the lifecycle of time-based skill exchanges:
creation, scheduling, completion with time-credit transfer, and
cancellation.

Public API:
- ExchangeService: Main service for exchange operations
- Exchange: Data model for an exchange record
- ExchangeStatus: Enum for exchange status values
- ProgressSummary: Per-user progress read model
- SessionDetails: Exchange plus both parties' profiles
- SkillProgress, Achievement: Progress dashboard records
"""

from skillswap.directory.models import Exchange, ExchangeStatus
from skillswap.exchange.models import (
    Achievement,
    ProgressSummary,
    SessionDetails,
    SkillProgress,
)
from skillswap.exchange.service import ExchangeService

__all__ = [
    "ExchangeService",
    "Exchange",
    "ExchangeStatus",
    "ProgressSummary",
    "SessionDetails",
    "SkillProgress",
    "Achievement",
]
