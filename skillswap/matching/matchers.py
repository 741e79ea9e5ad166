"""Skill matching predicates for teacher discovery."""

from __future__ import annotations

from collections.abc import Iterable


def normalize_skill(skill: str) -> str:
    """Case-fold a skill name for comparison.

    Case folding is the only normalization: whitespace, punctuation and
    spelling are compared as written.
    """
    return skill.casefold()


def skills_overlap(desired: str, taught: str) -> bool:
    """Return True if either skill name contains the other.

    The comparison is case-insensitive, so "javascript" matches
    "JavaScript Programming" (and, loosely, "Java" matches "JavaScript").
    Blank or whitespace-only names never match.
    """
    if not desired.strip() or not taught.strip():
        return False
    wanted = normalize_skill(desired)
    offered = normalize_skill(taught)
    return wanted in offered or offered in wanted


def first_matching_skill(
    interests: Iterable[str], taught_skills: Iterable[str]
) -> str | None:
    """Return the first interest that overlaps any taught skill.

    Interests are tried in order; for each one the taught skills are
    scanned in order. The interest is returned as the requester wrote it.
    """
    taught = list(taught_skills)
    for desired in interests:
        if any(skills_overlap(desired, skill) for skill in taught):
            return desired
    return None
