"""Skill matching.

Public API:
- SkillMatcher: Finds candidate teachers for a requester
- MatchResult: A candidate teacher with its matching skill
- skills_overlap: Case-insensitive two-way substring predicate
- first_matching_skill: First interest overlapping a list of taught skills
- filter_matches: Narrow results to one selected skill
"""

from skillswap.matching.matchers import first_matching_skill, skills_overlap
from skillswap.matching.models import MatchResult
from skillswap.matching.service import SkillMatcher, filter_matches

__all__ = [
    "SkillMatcher",
    "MatchResult",
    "skills_overlap",
    "first_matching_skill",
    "filter_matches",
]
