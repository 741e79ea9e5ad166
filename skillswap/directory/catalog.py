"""Read access to the skill catalog.

The catalog is reference data for filter choices. Exchanges are not
validated against it.
"""

import uuid

from skillswap.directory.models import SkillCatalogEntry
from skillswap.directory.repository import DirectoryRepository
from skillswap.directory.seed_data import SAMPLE_SKILLS, SKILL_CATEGORIES
from skillswap.utils.logging import get_logger

logger = get_logger("directory.catalog")


class SkillCatalogService:
    """Queries over the skill catalog."""

    def __init__(self, repository: DirectoryRepository):
        self.repository = repository

    async def get_all_skills(self) -> list[SkillCatalogEntry]:
        """Return every catalog entry, newest first."""
        return await self.repository.list_skills()

    async def get_skills_by_category(self, category: str) -> list[SkillCatalogEntry]:
        """Return entries in the given category (exact match), newest first."""
        skills = await self.repository.list_skills()
        return [skill for skill in skills if skill.category == category]

    async def search_skills(self, keyword: str) -> list[SkillCatalogEntry]:
        """Return entries whose name or description contains the keyword.

        Matching is case-insensitive. A blank keyword returns every entry.
        """
        needle = keyword.strip().lower()
        skills = await self.repository.list_skills()
        if not needle:
            return skills
        return [
            skill
            for skill in skills
            if needle in skill.name.lower() or needle in skill.description.lower()
        ]

    async def categories(self) -> list[str]:
        """Return the distinct categories present, in first-seen order."""
        seen: dict[str, None] = {}
        for skill in await self.repository.list_skills():
            if skill.category:
                seen.setdefault(skill.category, None)
        return list(seen)


async def seed_catalog(repository: DirectoryRepository) -> int:
    """Load the sample skills into the catalog.

    Entries whose name already exists are left untouched.

    Returns:
        Number of entries added.
    """
    added = 0
    for data in SAMPLE_SKILLS:
        entry = SkillCatalogEntry(skill_id=uuid.uuid4().hex, **data)
        if await repository.add_skill(entry):
            added += 1
            logger.debug(f"Added skill: {entry.name}")

    logger.info(
        f"Seeded {added} skills across {len(SKILL_CATEGORIES)} categories"
    )
    return added
