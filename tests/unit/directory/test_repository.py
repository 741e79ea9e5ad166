"""Tests for the DirectoryRepository database layer."""

import asyncio
from datetime import UTC, datetime

import aiosqlite
import pytest

from skillswap.directory.models import (
    Exchange,
    ExchangeStatus,
    SkillCatalogEntry,
    UserProfile,
)
from skillswap.errors import (
    DataAccessError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)


def make_exchange(exchange_id="ex1", status=ExchangeStatus.PENDING, **overrides):
    data = {
        "exchange_id": exchange_id,
        "teacher_id": "bob",
        "student_id": "alice",
        "skill": "Guitar",
        "duration": 2,
        "credits": 2,
        "status": status,
        "created_at": datetime(2025, 1, 1, 9, 0, tzinfo=UTC),
    }
    data.update(overrides)
    return Exchange(**data)


class TestDatabaseInitialization:
    """Test database initialization."""

    @pytest.mark.asyncio
    async def test_creates_database_file_if_not_exists(self, tmp_path):
        """Should create database file (and parent directory) if missing."""
        from skillswap.directory.repository import DirectoryRepository

        db_path = tmp_path / "nested" / "skillswap.db"
        assert not db_path.exists()

        repo = DirectoryRepository(db_path)
        await repo.initialize()

        assert db_path.exists()
        await repo.close()

    @pytest.mark.asyncio
    async def test_creates_tables(self, repo):
        """Should create the users, skills and exchanges tables."""
        async with repo._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            )
            tables = {row[0] for row in await cursor.fetchall()}

        assert {"users", "skills", "exchanges"} <= tables

    @pytest.mark.asyncio
    async def test_handles_existing_database_gracefully(self, tmp_path):
        """Should not error when database already exists."""
        from skillswap.directory.repository import DirectoryRepository

        db_path = tmp_path / "skillswap.db"

        repo1 = DirectoryRepository(db_path)
        await repo1.initialize()
        await repo1.close()

        repo2 = DirectoryRepository(db_path)
        await repo2.initialize()
        await repo2.close()


class TestUsers:
    """Test profile reads and writes."""

    @pytest.mark.asyncio
    async def test_get_user_returns_inserted_profile(self, repo, people):
        """get_user should return the stored profile with its lists intact."""
        bob = await repo.get_user("bob")

        assert bob.name == "Bob"
        assert bob.teaching_skills == ["guitar lessons", "Music Theory"]
        assert bob.rating == 4.5
        assert bob.time_balance == 10
        assert bob.created_at is not None

    @pytest.mark.asyncio
    async def test_get_user_raises_not_found(self, repo):
        """get_user should raise NotFoundError for unknown ids."""
        with pytest.raises(NotFoundError) as exc_info:
            await repo.get_user("ghost")

        assert exc_info.value.entity_id == "ghost"

    @pytest.mark.asyncio
    async def test_find_user_returns_none_when_missing(self, repo):
        """find_user should return None instead of raising."""
        assert await repo.find_user("ghost") is None

    @pytest.mark.asyncio
    async def test_insert_user_rejects_duplicate_id(self, repo, people):
        """insert_user should refuse to overwrite an existing profile."""
        with pytest.raises(ValidationError):
            await repo.insert_user(UserProfile(user_id="alice"))

    @pytest.mark.asyncio
    async def test_get_all_users_preserves_insertion_order(self, repo, people):
        """get_all_users should return every profile in insertion order."""
        users = await repo.get_all_users()

        assert [u.user_id for u in users] == ["alice", "bob", "carol", "dave"]

    @pytest.mark.asyncio
    async def test_patch_user_merges_fields(self, repo, people):
        """patch_user should change only the given fields."""
        updated = await repo.patch_user("bob", {"bio": "Jazz guitarist"})

        assert updated.bio == "Jazz guitarist"
        assert updated.name == "Bob"
        assert updated.teaching_skills == ["guitar lessons", "Music Theory"]
        assert updated.time_balance == 10

    @pytest.mark.asyncio
    async def test_patch_user_creates_missing_profile(self, tmp_path):
        """patch_user should create the profile with the initial balance."""
        from skillswap.directory.repository import DirectoryRepository

        repo = DirectoryRepository(tmp_path / "db.sqlite", initial_time_balance=5)
        await repo.initialize()
        try:
            profile = await repo.patch_user("erin", {"name": "Erin"})

            assert profile.name == "Erin"
            assert profile.time_balance == 5
            assert (await repo.get_user("erin")).name == "Erin"
        finally:
            await repo.close()

    @pytest.mark.asyncio
    async def test_patch_user_refuses_time_balance(self, repo, people):
        """patch_user must not be a way to change balances."""
        with pytest.raises(ValidationError):
            await repo.patch_user("alice", {"time_balance": 1000})

        assert (await repo.get_user("alice")).time_balance == 10

    @pytest.mark.asyncio
    async def test_patch_user_deduplicates_skill_lists(self, repo, people):
        """Skill lists behave as sets; exact repeats are dropped."""
        profile = await repo.patch_user(
            "dave", {"learning_interests": ["Guitar", "Guitar", "Piano"]}
        )

        assert profile.learning_interests == ["Guitar", "Piano"]

    @pytest.mark.asyncio
    async def test_patch_user_stores_skill_names_verbatim(self, repo):
        """Skill names are stored exactly as written, padding included."""
        await repo.patch_user("erin", {"teaching_skills": ["  Guitar  ", "guitar"]})

        stored = await repo.get_user("erin")
        assert stored.teaching_skills == ["  Guitar  ", "guitar"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fields",
        [
            {"teaching_skills": "Guitar"},
            {"learning_interests": ["Guitar", 7]},
            {"rating": "excellent"},
            {"total_reviews": -1},
            {"settings": ["dark-mode"]},
        ],
    )
    async def test_patch_user_rejects_wrongly_typed_values(self, repo, people, fields):
        """A scalar where a list belongs must not be split into characters."""
        with pytest.raises(ValidationError):
            await repo.patch_user("bob", fields)

        stored = await repo.get_user("bob")
        assert stored.teaching_skills == ["guitar lessons", "Music Theory"]
        assert stored.rating == 4.5

    @pytest.mark.asyncio
    async def test_append_user_skills_adds_only_new_names(self, repo, people):
        """append_user_skills should union new skills into the list."""
        profile = await repo.append_user_skills(
            "bob", "teaching_skills", ["Music Theory", "Piano"]
        )

        assert profile.teaching_skills == ["guitar lessons", "Music Theory", "Piano"]

    @pytest.mark.asyncio
    async def test_append_user_skills_rejects_other_fields(self, repo, people):
        """Only the two skill lists can be appended to."""
        with pytest.raises(ValidationError):
            await repo.append_user_skills("bob", "settings", ["x"])


class TestExchanges:
    """Test exchange persistence."""

    @pytest.mark.asyncio
    async def test_create_and_get_exchange(self, repo, people):
        """create_exchange should persist every field."""
        exchange_id = await repo.create_exchange(make_exchange())

        stored = await repo.get_exchange(exchange_id)
        assert stored.teacher_id == "bob"
        assert stored.student_id == "alice"
        assert stored.status == ExchangeStatus.PENDING
        assert stored.credits == 2
        assert stored.scheduled_for is None
        assert stored.created_at == datetime(2025, 1, 1, 9, 0, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_get_exchange_raises_not_found(self, repo):
        """get_exchange should raise NotFoundError for unknown ids."""
        with pytest.raises(NotFoundError):
            await repo.get_exchange("missing")

    @pytest.mark.asyncio
    async def test_store_rejects_self_exchange(self, repo, people):
        """The schema refuses an exchange where teacher is the student."""
        with pytest.raises(DataAccessError):
            await repo.create_exchange(make_exchange(student_id="bob"))

    @pytest.mark.asyncio
    async def test_patch_exchange_with_expected_status(self, repo, people):
        """patch_exchange should write when the expected status holds."""
        await repo.create_exchange(make_exchange())
        when = datetime(2025, 2, 1, 10, 0, tzinfo=UTC)

        await repo.patch_exchange(
            "ex1",
            {"status": ExchangeStatus.SCHEDULED, "scheduled_for": when},
            expected_status=ExchangeStatus.PENDING,
        )

        stored = await repo.get_exchange("ex1")
        assert stored.status == ExchangeStatus.SCHEDULED
        assert stored.scheduled_for == when

    @pytest.mark.asyncio
    async def test_patch_exchange_guard_rejects_stale_status(self, repo, people):
        """patch_exchange should not overwrite when the status moved on."""
        await repo.create_exchange(make_exchange(status=ExchangeStatus.SCHEDULED))

        with pytest.raises(InvalidStateTransition):
            await repo.patch_exchange(
                "ex1",
                {"status": ExchangeStatus.CANCELLED},
                expected_status=ExchangeStatus.PENDING,
            )

        assert (await repo.get_exchange("ex1")).status == ExchangeStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_patch_exchange_rejects_immutable_fields(self, repo, people):
        """credits and parties cannot be patched."""
        await repo.create_exchange(make_exchange())

        with pytest.raises(ValidationError):
            await repo.patch_exchange("ex1", {"credits": 99})

    @pytest.mark.asyncio
    async def test_patch_exchange_missing_raises_not_found(self, repo):
        """patch_exchange on an unknown id should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await repo.patch_exchange("nope", {"status": ExchangeStatus.SCHEDULED})

    @pytest.mark.asyncio
    async def test_list_exchanges_for_user_covers_both_roles(self, repo, people):
        """Exchanges are listed whether the user teaches or learns."""
        await repo.create_exchange(make_exchange("ex1"))
        await repo.create_exchange(
            make_exchange("ex2", teacher_id="alice", student_id="carol")
        )
        await repo.create_exchange(
            make_exchange("ex3", teacher_id="carol", student_id="dave")
        )

        ids = {e.exchange_id for e in await repo.list_exchanges_for_user("alice")}

        assert ids == {"ex1", "ex2"}


class TestCompleteExchange:
    """Test the transactional completion."""

    @pytest.mark.asyncio
    async def test_moves_credits_and_marks_completed(self, repo, people):
        """Teacher gains and student loses exactly the exchange credits."""
        await repo.create_exchange(
            make_exchange(credits=3, duration=3, status=ExchangeStatus.SCHEDULED)
        )
        done_at = datetime(2025, 3, 1, tzinfo=UTC)

        completed = await repo.complete_exchange("ex1", done_at)

        assert completed.status == ExchangeStatus.COMPLETED
        assert (await repo.get_user("bob")).time_balance == 13
        assert (await repo.get_user("alice")).time_balance == 7
        stored = await repo.get_exchange("ex1")
        assert stored.status == ExchangeStatus.COMPLETED
        assert stored.completed_at == done_at

    @pytest.mark.asyncio
    async def test_rejects_exchange_that_is_not_scheduled(self, repo, people):
        """Completion is only valid from scheduled."""
        await repo.create_exchange(make_exchange())

        with pytest.raises(InvalidStateTransition):
            await repo.complete_exchange("ex1", datetime.now(UTC))

        assert (await repo.get_user("bob")).time_balance == 10

    @pytest.mark.asyncio
    async def test_missing_student_rolls_back_everything(self, repo, people):
        """If the debit cannot be applied, the credit and status are undone."""
        await repo.create_exchange(make_exchange(status=ExchangeStatus.SCHEDULED))
        async with repo._get_connection() as conn:
            await conn.execute("DELETE FROM users WHERE user_id = 'alice'")
            await conn.commit()

        with pytest.raises(NotFoundError):
            await repo.complete_exchange("ex1", datetime.now(UTC))

        assert (await repo.get_user("bob")).time_balance == 10
        assert (await repo.get_exchange("ex1")).status == ExchangeStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_store_failure_rolls_back_everything(self, repo, people):
        """A driver error on the debit leaves no partial transfer behind."""
        await repo.create_exchange(make_exchange(status=ExchangeStatus.SCHEDULED))
        async with repo._get_connection() as conn:
            await conn.execute(
                """
                CREATE TRIGGER fail_debit BEFORE UPDATE OF time_balance ON users
                WHEN NEW.user_id = 'alice'
                BEGIN
                    SELECT RAISE(ABORT, 'quota exceeded');
                END
                """
            )
            await conn.commit()

        with pytest.raises(DataAccessError) as exc_info:
            await repo.complete_exchange("ex1", datetime.now(UTC))

        assert isinstance(exc_info.value.__cause__, aiosqlite.Error)
        assert exc_info.value.operation == "complete_exchange"
        assert (await repo.get_user("bob")).time_balance == 10
        assert (await repo.get_user("alice")).time_balance == 10
        assert (await repo.get_exchange("ex1")).status == ExchangeStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_concurrent_readers_never_see_a_half_transfer(self, repo, people):
        """Readers sharing the connection see balances before or after a transfer."""
        for n in range(30):
            await repo.create_exchange(
                make_exchange(
                    exchange_id=f"ex{n}",
                    credits=1,
                    duration=1,
                    status=ExchangeStatus.SCHEDULED,
                )
            )
        totals = []
        done = asyncio.Event()

        async def read_totals():
            while not done.is_set():
                row = await repo._fetch(
                    "sum_balances",
                    "SELECT SUM(time_balance) AS total FROM users "
                    "WHERE user_id IN ('alice', 'bob')",
                )
                totals.append(row["total"])
                await asyncio.sleep(0)

        async def complete_all():
            try:
                for n in range(30):
                    await repo.complete_exchange(f"ex{n}", datetime.now(UTC))
            finally:
                done.set()

        await asyncio.gather(read_totals(), complete_all())

        assert totals
        assert set(totals) == {20}
        assert (await repo.get_user("bob")).time_balance == 40
        assert (await repo.get_user("alice")).time_balance == -20


class TestReadRetry:
    """Test transparent retry of idempotent reads."""

    @pytest.mark.asyncio
    async def test_read_is_retried_once(self, repo, people, monkeypatch):
        """A single transient failure on a read is absorbed."""
        async with repo._get_connection() as conn:
            original = conn.execute
            calls = {"n": 0}

            async def flaky_execute(sql, params=None):
                calls["n"] += 1
                if calls["n"] == 1:
                    raise aiosqlite.OperationalError("database is locked")
                return await original(sql, params)

            monkeypatch.setattr(conn, "execute", flaky_execute)

        users = await repo.get_all_users()

        assert len(users) == 4
        assert calls["n"] == 2

    @pytest.mark.asyncio
    async def test_persistent_read_failure_raises_data_access_error(
        self, repo, people, monkeypatch
    ):
        """Reads that keep failing surface as DataAccessError."""
        async with repo._get_connection() as conn:

            async def broken_execute(sql, params=None):
                raise aiosqlite.OperationalError("disk I/O error")

            monkeypatch.setattr(conn, "execute", broken_execute)

        with pytest.raises(DataAccessError) as exc_info:
            await repo.get_user("alice")

        assert exc_info.value.operation == "get_user"
        assert exc_info.value.entity_id == "alice"


class TestSkills:
    """Test the skill catalog table."""

    @pytest.mark.asyncio
    async def test_add_skill_ignores_duplicate_names(self, repo):
        """Names are unique regardless of case."""
        first = SkillCatalogEntry(skill_id="s1", name="Guitar Lessons")
        second = SkillCatalogEntry(skill_id="s2", name="guitar lessons")

        assert await repo.add_skill(first) is True
        assert await repo.add_skill(second) is False
        assert [s.skill_id for s in await repo.list_skills()] == ["s1"]

    @pytest.mark.asyncio
    async def test_list_skills_newest_first(self, repo):
        """list_skills orders by creation time, newest first."""
        await repo.add_skill(
            SkillCatalogEntry(
                skill_id="old",
                name="Piano",
                created_at=datetime(2024, 1, 1, tzinfo=UTC),
            )
        )
        await repo.add_skill(
            SkillCatalogEntry(
                skill_id="new",
                name="Yoga",
                created_at=datetime(2025, 1, 1, tzinfo=UTC),
            )
        )

        assert [s.skill_id for s in await repo.list_skills()] == ["new", "old"]


class TestProgressRecords:
    """Test per-skill progress and achievements on profiles."""

    @pytest.mark.asyncio
    async def test_set_skill_progress_replaces_one_entry(self, repo, people):
        """Each skill has one entry; other skills are untouched."""
        await repo.set_skill_progress("alice", "Guitar", {"progress": 10})
        await repo.set_skill_progress("alice", "JavaScript", {"progress": 5})
        progress = await repo.set_skill_progress("alice", "Guitar", {"progress": 40})

        assert progress == {"Guitar": {"progress": 40}, "JavaScript": {"progress": 5}}
        stored = await repo.get_user("alice")
        assert stored.skill_progress == progress

    @pytest.mark.asyncio
    async def test_add_achievement_skips_repeats(self, repo, people):
        """Achievements behave as a set of distinct badges, in earned order."""
        first = {"title": "First lesson", "description": "", "icon": "*"}
        second = {"title": "Regular", "description": "", "icon": "+"}

        assert await repo.add_achievement("alice", first) is True
        assert await repo.add_achievement("alice", second) is True
        assert await repo.add_achievement("alice", dict(first)) is False

        stored = await repo.get_user("alice")
        assert stored.achievements == [first, second]

    @pytest.mark.asyncio
    async def test_progress_updates_require_existing_profile(self, repo):
        with pytest.raises(NotFoundError):
            await repo.set_skill_progress("ghost", "Guitar", {"progress": 1})
        with pytest.raises(NotFoundError):
            await repo.add_achievement("ghost", {"title": "Nope"})

    @pytest.mark.asyncio
    async def test_patch_user_keeps_progress_records(self, repo, people):
        """Profile patches never overwrite progress or achievements."""
        await repo.set_skill_progress("bob", "Italian Cooking", {"progress": 50})
        await repo.add_achievement("bob", {"title": "Mentor"})

        await repo.patch_user("bob", {"bio": "Still teaching"})

        stored = await repo.get_user("bob")
        assert stored.skill_progress == {"Italian Cooking": {"progress": 50}}
        assert stored.achievements == [{"title": "Mentor"}]

    @pytest.mark.asyncio
    async def test_patch_user_refuses_progress_fields(self, repo, people):
        with pytest.raises(ValidationError):
            await repo.patch_user("bob", {"achievements": [{"title": "Self-awarded"}]})
