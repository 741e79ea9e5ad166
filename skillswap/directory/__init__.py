"""User and skill directory.

This module provides the persistence layer the matcher and the exchange
lifecycle read from and write to.

Public API:
- DirectoryRepository: Async SQLite store for profiles, skills and exchanges
- SkillCatalogService: Catalog listing, filtering and search
- ProfileLoader, import_profiles: Bulk profile import from YAML or JSON
- UserProfile: Data model for a platform user
- SkillCatalogEntry: Data model for a catalog skill
- Exchange: Data model for a teacher/student exchange
- ExchangeStatus: Enum for exchange lifecycle status
"""

from skillswap.directory.catalog import SkillCatalogService, seed_catalog
from skillswap.directory.models import (
    Exchange,
    ExchangeStatus,
    SkillCatalogEntry,
    UserProfile,
)
from skillswap.directory.profiles import ProfileLoader, import_profiles
from skillswap.directory.repository import DirectoryRepository

__all__ = [
    "DirectoryRepository",
    "SkillCatalogService",
    "seed_catalog",
    "ProfileLoader",
    "import_profiles",
    "UserProfile",
    "SkillCatalogEntry",
    "Exchange",
    "ExchangeStatus",
]
