"""Pytest configuration and shared fixtures."""

import pytest

from skillswap.config.settings import reset_settings
from skillswap.directory.models import UserProfile
from skillswap.directory.repository import DirectoryRepository
from skillswap.utils.logging import reset_logging


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Give every test fresh settings and logging state."""
    yield
    reset_settings()
    reset_logging()


@pytest.fixture
async def repo(tmp_path):
    """Create an initialized repository backed by a temporary database."""
    repository = DirectoryRepository(tmp_path / "skillswap.db")
    await repository.initialize()
    yield repository
    await repository.close()


@pytest.fixture
async def people(repo):
    """Register a small population of users.

    alice wants to learn Guitar and JavaScript; bob teaches guitar; carol
    teaches "JavaScript Programming"; dave teaches nothing alice wants.
    """
    profiles = [
        UserProfile(
            user_id="alice",
            name="Alice",
            teaching_skills=["Italian Cooking"],
            learning_interests=["Guitar", "JavaScript"],
            time_balance=10,
        ),
        UserProfile(
            user_id="bob",
            name="Bob",
            bio="Session guitarist",
            rating=4.5,
            completed_exchanges=3,
            teaching_skills=["guitar lessons", "Music Theory"],
            learning_interests=["Italian Cooking"],
            time_balance=10,
        ),
        UserProfile(
            user_id="carol",
            name="Carol",
            teaching_skills=["JavaScript Programming", "Guitar"],
            learning_interests=["Yoga"],
            time_balance=10,
        ),
        UserProfile(
            user_id="dave",
            name="Dave",
            teaching_skills=["Yoga for Beginners"],
            learning_interests=[],
            time_balance=10,
        ),
    ]
    for profile in profiles:
        await repo.insert_user(profile)
    return {p.user_id: p for p in profiles}
