"""Skill matching service.

Pairs a requester's learning interests against every other user's
teaching skills. There is no index or ranking: each call re-reads the
whole directory and returns candidates in store order.
"""

from skillswap.directory.repository import DirectoryRepository
from skillswap.errors import SkillSwapError
from skillswap.matching.matchers import first_matching_skill
from skillswap.matching.models import MatchResult
from skillswap.utils.logging import get_logger

logger = get_logger("matching.service")


class SkillMatcher:
    """Finds users who can teach what a requester wants to learn."""

    def __init__(self, repository: DirectoryRepository):
        """Initialize the matcher.

        Args:
            repository: The DirectoryRepository used to read profiles.
        """
        self.repository = repository

    async def find_matches(self, requester_id: str) -> list[MatchResult]:
        """Return candidate teachers for the requester.

        Each candidate appears at most once, carrying the first of the
        requester's interests that overlaps one of the candidate's teaching
        skills. The requester is never included.

        Args:
            requester_id: Profile id of the user looking for teachers.

        Returns:
            Match results in directory order; empty when the requester has
            no learning interests or nobody matches.

        Raises:
            NotFoundError: If the requester does not exist.
            DataAccessError: If the directory cannot be read.
        """
        try:
            requester = await self.repository.get_user(requester_id)
        except SkillSwapError as e:
            logger.error(f"Could not load requester {requester_id}: {e}")
            raise

        interests = requester.learning_interests
        if not interests:
            logger.debug(f"User {requester_id} has no learning interests")
            return []

        try:
            population = await self.repository.get_all_users()
        except SkillSwapError as e:
            logger.error(f"Could not read directory for {requester_id}: {e}")
            raise

        matches: list[MatchResult] = []
        for candidate in population:
            if candidate.user_id == requester_id:
                continue
            skill = first_matching_skill(interests, candidate.teaching_skills)
            if skill is not None:
                matches.append(MatchResult.from_profile(candidate, skill))

        logger.info(
            f"Found {len(matches)} matches for {requester_id} "
            f"among {len(population)} profiles"
        )
        return matches


def filter_matches(
    matches: list[MatchResult], skill: str | None
) -> list[MatchResult]:
    """Keep the matches whose matching skill equals the selected skill.

    A None or blank selection keeps every match.
    """
    if not skill or not skill.strip():
        return list(matches)
    return [match for match in matches if match.matching_skill == skill]
