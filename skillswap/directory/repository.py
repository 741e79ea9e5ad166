"""Database repository for the user and skill directory.

This module provides async SQLite database operations for user profiles,
the skill catalog and exchange records. It is the only place that talks
to the store; services above it see NotFoundError / DataAccessError
instead of driver exceptions.
"""

import asyncio
import json
from collections.abc import AsyncGenerator, Callable, Iterable
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from skillswap.directory.models import (
    Exchange,
    ExchangeStatus,
    ProfilePatch,
    SkillCatalogEntry,
    UserProfile,
    parse_datetime,
    unique_skills,
    validate_model,
)
from skillswap.errors import (
    DataAccessError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from skillswap.utils.logging import get_logger

logger = get_logger("directory.repository")

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    name TEXT,
    bio TEXT,
    location TEXT,
    avatar TEXT,
    teaching_skills TEXT NOT NULL DEFAULT '[]',
    learning_interests TEXT NOT NULL DEFAULT '[]',
    rating REAL NOT NULL DEFAULT 0,
    total_reviews INTEGER NOT NULL DEFAULT 0,
    time_balance INTEGER NOT NULL DEFAULT 0,
    completed_exchanges INTEGER NOT NULL DEFAULT 0,
    settings TEXT NOT NULL DEFAULT '{}',
    availability TEXT NOT NULL DEFAULT '{}',
    preferences TEXT NOT NULL DEFAULT '{}',
    skill_progress TEXT NOT NULL DEFAULT '{}',
    achievements TEXT NOT NULL DEFAULT '[]',
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS skills (
    skill_id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    description TEXT NOT NULL DEFAULT '',
    category TEXT NOT NULL DEFAULT '',
    estimated_hours INTEGER,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS exchanges (
    exchange_id TEXT PRIMARY KEY,
    teacher_id TEXT NOT NULL,
    student_id TEXT NOT NULL,
    skill TEXT NOT NULL,
    duration INTEGER NOT NULL,
    credits INTEGER NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    scheduled_for TEXT,
    completed_at TEXT,
    cancelled_at TEXT,
    CHECK (teacher_id <> student_id),
    CHECK (duration > 0)
);
"""

CREATE_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_exchanges_teacher ON exchanges(teacher_id);
CREATE INDEX IF NOT EXISTS idx_exchanges_student ON exchanges(student_id);
CREATE INDEX IF NOT EXISTS idx_exchanges_status ON exchanges(status);
CREATE INDEX IF NOT EXISTS idx_skills_category ON skills(category);
"""

# Profile fields callers may patch. time_balance is absent:
# balances only move through complete_exchange.
PATCHABLE_USER_FIELDS = frozenset(ProfilePatch.model_fields)

SKILL_LIST_FIELDS = frozenset({"teaching_skills", "learning_interests"})

PATCHABLE_EXCHANGE_FIELDS = frozenset(
    {"status", "scheduled_for", "completed_at", "cancelled_at"}
)

_USER_COLUMNS = (
    "user_id",
    "name",
    "bio",
    "location",
    "avatar",
    "teaching_skills",
    "learning_interests",
    "rating",
    "total_reviews",
    "time_balance",
    "completed_exchanges",
    "settings",
    "availability",
    "preferences",
    "skill_progress",
    "achievements",
    "created_at",
)

# Columns an upsert may overwrite on an existing profile.
_USER_UPSERT_COLUMNS = tuple(c for c in _USER_COLUMNS if c in PATCHABLE_USER_FIELDS)


class DirectoryRepository:
    """Async SQLite repository for profiles, skills and exchanges.

    Reads are idempotent and retried transparently (read_retries times);
    writes are never retried. Reads and writes share one connection, so
    every statement runs under a lock: a reader never sees a transaction
    that has not been committed yet.
    """

    def __init__(
        self,
        db_path: Path | str,
        *,
        read_retries: int = 1,
        initial_time_balance: int = 0,
    ):
        """Initialize the repository.

        Args:
            db_path: Path to the SQLite database file.
            read_retries: Extra attempts for a failed read.
            initial_time_balance: Balance given to profiles created by patch_user.
        """
        self.db_path = Path(db_path)
        self.read_retries = read_retries
        self.initial_time_balance = initial_time_balance
        self._connection: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _get_connection(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        """Get a database connection.

        Yields:
            An aiosqlite connection.
        """
        if self._connection is None:
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
        yield self._connection

    async def initialize(self) -> None:
        """Initialize the database, creating tables if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            async with self._get_connection() as conn:
                await conn.executescript(CREATE_TABLES_SQL)
                await conn.executescript(CREATE_INDEX_SQL)
                await conn.commit()
        except aiosqlite.Error as e:
            raise DataAccessError(
                f"could not initialize database: {e}", operation="initialize"
            ) from e

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    # ------------------------------------------------------------------
    # Low-level helpers

    async def _fetch(
        self,
        operation: str,
        sql: str,
        params: Iterable[Any] = (),
        *,
        entity_id: str | None = None,
        many: bool = False,
    ) -> Any:
        """Run a read query, retrying on driver errors."""
        params = tuple(params)
        attempts = self.read_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                async with self._lock, self._get_connection() as conn:
                    cursor = await conn.execute(sql, params)
                    if many:
                        return await cursor.fetchall()
                    return await cursor.fetchone()
            except aiosqlite.Error as e:
                if attempt >= attempts:
                    raise DataAccessError(
                        str(e), operation=operation, entity_id=entity_id
                    ) from e
                logger.warning(
                    f"{operation} failed (attempt {attempt}/{attempts}), retrying: {e}"
                )

    async def _execute_write(
        self,
        operation: str,
        sql: str,
        params: Iterable[Any],
        *,
        entity_id: str | None = None,
    ) -> int:
        """Run a single write statement and commit it.

        Returns:
            Number of rows affected.
        """
        async with self._lock:
            async with self._get_connection() as conn:
                try:
                    cursor = await conn.execute(sql, tuple(params))
                    await conn.commit()
                except aiosqlite.Error as e:
                    await conn.rollback()
                    raise DataAccessError(
                        str(e), operation=operation, entity_id=entity_id
                    ) from e
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Users

    async def insert_user(self, profile: UserProfile) -> None:
        """Insert a complete profile, as written at registration.

        Raises:
            ValidationError: If a profile with the same id already exists.
        """
        if profile.created_at is None:
            profile = replace(profile, created_at=datetime.now(UTC))
        row = self._profile_to_row(profile)
        placeholders = ", ".join("?" for _ in _USER_COLUMNS)

        try:
            await self._execute_write(
                "insert_user",
                f"INSERT INTO users ({', '.join(_USER_COLUMNS)}) "
                f"VALUES ({placeholders})",
                [row[c] for c in _USER_COLUMNS],
                entity_id=profile.user_id,
            )
        except DataAccessError as e:
            if isinstance(e.__cause__, aiosqlite.IntegrityError):
                raise ValidationError(
                    "user already exists",
                    operation="insert_user",
                    entity_id=profile.user_id,
                ) from e.__cause__
            raise

    async def get_user(self, user_id: str) -> UserProfile:
        """Get a profile by id.

        Raises:
            NotFoundError: If no profile has this id.
        """
        row = await self._fetch(
            "get_user",
            "SELECT * FROM users WHERE user_id = ?",
            (user_id,),
            entity_id=user_id,
        )
        if row is None:
            raise NotFoundError(
                "user not found", operation="get_user", entity_id=user_id
            )
        return self._row_to_profile(row)

    async def find_user(self, user_id: str) -> UserProfile | None:
        """Get a profile by id, or None if it does not exist."""
        try:
            return await self.get_user(user_id)
        except NotFoundError:
            return None

    async def get_all_users(self) -> list[UserProfile]:
        """Return every profile in insertion order."""
        rows = await self._fetch(
            "get_all_users", "SELECT * FROM users ORDER BY rowid", many=True
        )
        return [self._row_to_profile(row) for row in rows]

    async def patch_user(self, user_id: str, fields: dict[str, Any]) -> UserProfile:
        """Merge fields into a profile, creating it if absent.

        Args:
            user_id: Profile to update.
            fields: Mapping of profile field names to new values.

        Returns:
            The profile as stored after the patch.

        Raises:
            ValidationError: On unknown fields, an attempt to set time_balance,
                or values of the wrong type.
        """
        unknown = set(fields) - PATCHABLE_USER_FIELDS
        if unknown:
            raise ValidationError(
                f"cannot patch fields: {', '.join(sorted(unknown))}",
                operation="patch_user",
                entity_id=user_id,
            )
        fields = validate_model(
            ProfilePatch, fields, operation="patch_user", entity_id=user_id
        ).changes()

        existing = await self.find_user(user_id)
        if existing is None:
            existing = UserProfile(
                user_id=user_id,
                time_balance=self.initial_time_balance,
                created_at=datetime.now(UTC),
            )
        profile = replace(existing, **fields)
        row = self._profile_to_row(profile)

        placeholders = ", ".join("?" for _ in _USER_COLUMNS)
        updates = ", ".join(f"{c} = excluded.{c}" for c in _USER_UPSERT_COLUMNS)
        await self._execute_write(
            "patch_user",
            f"""
            INSERT INTO users ({', '.join(_USER_COLUMNS)}) VALUES ({placeholders})
            ON CONFLICT(user_id) DO UPDATE SET {updates}
            """,
            [row[c] for c in _USER_COLUMNS],
            entity_id=user_id,
        )
        return await self.get_user(user_id)

    async def append_user_skills(
        self, user_id: str, field_name: str, skills: list[str]
    ) -> UserProfile:
        """Add skills to one of a profile's skill lists, ignoring ones already present.

        Raises:
            ValidationError: If field_name is not a skill list.
            NotFoundError: If the profile does not exist.
        """
        if field_name not in SKILL_LIST_FIELDS:
            raise ValidationError(
                f"{field_name} is not a skill list",
                operation="append_user_skills",
                entity_id=user_id,
            )
        profile = await self.get_user(user_id)
        merged = unique_skills(getattr(profile, field_name) + list(skills))
        return await self.patch_user(user_id, {field_name: merged})

    async def _update_user_json(
        self,
        operation: str,
        user_id: str,
        column: str,
        update: Callable[[Any], Any],
    ) -> Any:
        """Read a JSON column, apply update to it and write it back atomically.

        Returns:
            The new column value.

        Raises:
            NotFoundError: If the profile does not exist.
        """
        async with self._lock:
            async with self._get_connection() as conn:
                try:
                    cursor = await conn.execute(
                        f"SELECT {column} FROM users WHERE user_id = ?", (user_id,)
                    )
                    row = await cursor.fetchone()
                    if row is None:
                        raise NotFoundError(
                            "user not found", operation=operation, entity_id=user_id
                        )
                    value = update(json.loads(row[column]))
                    await conn.execute(
                        f"UPDATE users SET {column} = ? WHERE user_id = ?",
                        (json.dumps(value), user_id),
                    )
                    await conn.commit()
                except aiosqlite.Error as e:
                    await conn.rollback()
                    raise DataAccessError(
                        str(e), operation=operation, entity_id=user_id
                    ) from e
        return value

    async def set_skill_progress(
        self, user_id: str, skill: str, entry: dict[str, Any]
    ) -> dict[str, dict[str, Any]]:
        """Replace the progress entry for one skill.

        Returns:
            The profile's full skill progress map after the update.
        """

        def _update(progress: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
            progress[skill] = entry
            return progress

        return await self._update_user_json(
            "set_skill_progress", user_id, "skill_progress", _update
        )

    async def add_achievement(self, user_id: str, achievement: dict[str, Any]) -> bool:
        """Append an achievement unless an identical one is already recorded.

        Returns:
            True if the achievement was added.
        """
        added = False

        def _update(achievements: list[dict[str, Any]]) -> list[dict[str, Any]]:
            nonlocal added
            if achievement not in achievements:
                achievements.append(achievement)
                added = True
            return achievements

        await self._update_user_json(
            "add_achievement", user_id, "achievements", _update
        )
        return added

    # ------------------------------------------------------------------
    # Skill catalog

    async def add_skill(self, entry: SkillCatalogEntry) -> bool:
        """Add a catalog entry unless one with the same name exists.

        Returns:
            True if the entry was inserted.
        """
        created_at = entry.created_at or datetime.now(UTC)
        inserted = await self._execute_write(
            "add_skill",
            """
            INSERT OR IGNORE INTO skills (
                skill_id, name, description, category, estimated_hours, created_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                entry.skill_id,
                entry.name,
                entry.description,
                entry.category,
                entry.estimated_hours,
                created_at.isoformat(),
            ),
            entity_id=entry.skill_id,
        )
        return inserted > 0

    async def list_skills(self) -> list[SkillCatalogEntry]:
        """Return all catalog entries, newest first."""
        rows = await self._fetch(
            "list_skills",
            "SELECT * FROM skills ORDER BY created_at DESC, rowid DESC",
            many=True,
        )
        return [self._row_to_skill(row) for row in rows]

    # ------------------------------------------------------------------
    # Exchanges

    async def create_exchange(self, exchange: Exchange) -> str:
        """Persist a new exchange record.

        Returns:
            The exchange id.
        """
        await self._execute_write(
            "create_exchange",
            """
            INSERT INTO exchanges (
                exchange_id, teacher_id, student_id, skill, duration, credits,
                status, created_at, scheduled_for, completed_at, cancelled_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                exchange.exchange_id,
                exchange.teacher_id,
                exchange.student_id,
                exchange.skill,
                exchange.duration,
                exchange.credits,
                exchange.status.value,
                exchange.created_at.isoformat(),
                _iso(exchange.scheduled_for),
                _iso(exchange.completed_at),
                _iso(exchange.cancelled_at),
            ),
            entity_id=exchange.exchange_id,
        )
        return exchange.exchange_id

    async def get_exchange(self, exchange_id: str) -> Exchange:
        """Get an exchange by id.

        Raises:
            NotFoundError: If no exchange has this id.
        """
        row = await self._fetch(
            "get_exchange",
            "SELECT * FROM exchanges WHERE exchange_id = ?",
            (exchange_id,),
            entity_id=exchange_id,
        )
        if row is None:
            raise NotFoundError(
                "exchange not found", operation="get_exchange", entity_id=exchange_id
            )
        return self._row_to_exchange(row)

    async def patch_exchange(
        self,
        exchange_id: str,
        fields: dict[str, Any],
        *,
        expected_status: ExchangeStatus | None = None,
    ) -> None:
        """Update mutable exchange fields.

        Args:
            exchange_id: Exchange to update.
            fields: Subset of status / scheduled_for / completed_at / cancelled_at.
            expected_status: If given, only write when the stored status matches.

        Raises:
            ValidationError: On fields that are not mutable.
            NotFoundError: If the exchange does not exist.
            InvalidStateTransition: If expected_status no longer holds.
        """
        unknown = set(fields) - PATCHABLE_EXCHANGE_FIELDS
        if unknown or not fields:
            raise ValidationError(
                f"cannot patch fields: {', '.join(sorted(unknown)) or '(none)'}",
                operation="patch_exchange",
                entity_id=exchange_id,
            )

        columns = sorted(fields)
        values = [_to_column(fields[c]) for c in columns]
        sql = (
            f"UPDATE exchanges SET {', '.join(f'{c} = ?' for c in columns)} "
            "WHERE exchange_id = ?"
        )
        params = [*values, exchange_id]
        if expected_status is not None:
            sql += " AND status = ?"
            params.append(expected_status.value)

        updated = await self._execute_write(
            "patch_exchange", sql, params, entity_id=exchange_id
        )
        if updated == 0:
            current = await self.get_exchange(exchange_id)
            expected = expected_status.value if expected_status else "any"
            raise InvalidStateTransition(
                f"expected status {expected}, found {current.status.value}",
                operation="patch_exchange",
                entity_id=exchange_id,
            )

    async def list_exchanges_for_user(self, user_id: str) -> list[Exchange]:
        """Return exchanges where the user is the teacher or the student."""
        rows = await self._fetch(
            "list_exchanges_for_user",
            """
            SELECT * FROM exchanges
            WHERE teacher_id = ? OR student_id = ?
            ORDER BY rowid
            """,
            (user_id, user_id),
            entity_id=user_id,
            many=True,
        )
        return [self._row_to_exchange(row) for row in rows]

    async def complete_exchange(
        self, exchange_id: str, completed_at: datetime
    ) -> Exchange:
        """Mark a scheduled exchange completed and move its credits.

        The status change, the teacher credit and the student debit are
        one transaction: any failure rolls back all three.

        Raises:
            NotFoundError: If the exchange or either profile is missing.
            InvalidStateTransition: If the exchange is not scheduled.
            DataAccessError: If the store fails mid-transaction.
        """
        operation = "complete_exchange"

        async with self._lock:
            async with self._get_connection() as conn:
                try:
                    cursor = await conn.execute(
                        "SELECT * FROM exchanges WHERE exchange_id = ?",
                        (exchange_id,),
                    )
                    row = await cursor.fetchone()
                    if row is None:
                        raise NotFoundError(
                            "exchange not found",
                            operation=operation,
                            entity_id=exchange_id,
                        )
                    exchange = self._row_to_exchange(row)

                    cursor = await conn.execute(
                        """
                        UPDATE exchanges SET status = ?, completed_at = ?
                        WHERE exchange_id = ? AND status = ?
                        """,
                        (
                            ExchangeStatus.COMPLETED.value,
                            completed_at.isoformat(),
                            exchange_id,
                            ExchangeStatus.SCHEDULED.value,
                        ),
                    )
                    if cursor.rowcount == 0:
                        raise InvalidStateTransition(
                            f"cannot complete a {exchange.status.value} exchange",
                            operation=operation,
                            entity_id=exchange_id,
                        )

                    for user_id, delta in (
                        (exchange.teacher_id, exchange.credits),
                        (exchange.student_id, -exchange.credits),
                    ):
                        cursor = await conn.execute(
                            "UPDATE users SET time_balance = time_balance + ? "
                            "WHERE user_id = ?",
                            (delta, user_id),
                        )
                        if cursor.rowcount == 0:
                            raise NotFoundError(
                                "user not found", operation=operation, entity_id=user_id
                            )

                    await conn.commit()
                except aiosqlite.Error as e:
                    await conn.rollback()
                    raise DataAccessError(
                        str(e), operation=operation, entity_id=exchange_id
                    ) from e
                except Exception:
                    await conn.rollback()
                    raise

        return replace(
            exchange, status=ExchangeStatus.COMPLETED, completed_at=completed_at
        )

    # ------------------------------------------------------------------
    # Row conversion

    def _profile_to_row(self, profile: UserProfile) -> dict[str, Any]:
        data = profile.to_dict()
        for key in (
            "teaching_skills",
            "learning_interests",
            "settings",
            "availability",
            "preferences",
            "skill_progress",
            "achievements",
        ):
            data[key] = json.dumps(data[key])
        return data

    def _row_to_profile(self, row: aiosqlite.Row) -> UserProfile:
        """Convert a database row to a UserProfile."""
        return UserProfile(
            user_id=row["user_id"],
            name=row["name"],
            bio=row["bio"],
            location=row["location"],
            avatar=row["avatar"],
            teaching_skills=json.loads(row["teaching_skills"] or "[]"),
            learning_interests=json.loads(row["learning_interests"] or "[]"),
            rating=float(row["rating"] or 0.0),
            total_reviews=int(row["total_reviews"] or 0),
            time_balance=int(row["time_balance"] or 0),
            completed_exchanges=int(row["completed_exchanges"] or 0),
            settings=json.loads(row["settings"] or "{}"),
            availability=json.loads(row["availability"] or "{}"),
            preferences=json.loads(row["preferences"] or "{}"),
            skill_progress=json.loads(row["skill_progress"] or "{}"),
            achievements=json.loads(row["achievements"] or "[]"),
            created_at=parse_datetime(row["created_at"]),
        )

    def _row_to_skill(self, row: aiosqlite.Row) -> SkillCatalogEntry:
        return SkillCatalogEntry(
            skill_id=row["skill_id"],
            name=row["name"],
            description=row["description"],
            category=row["category"],
            estimated_hours=row["estimated_hours"],
            created_at=parse_datetime(row["created_at"]),
        )

    def _row_to_exchange(self, row: aiosqlite.Row) -> Exchange:
        """Convert a database row to an Exchange."""
        return Exchange(
            exchange_id=row["exchange_id"],
            teacher_id=row["teacher_id"],
            student_id=row["student_id"],
            skill=row["skill"],
            duration=row["duration"],
            credits=row["credits"],
            status=ExchangeStatus(row["status"]),
            created_at=parse_datetime(row["created_at"]),
            scheduled_for=parse_datetime(row["scheduled_for"]),
            completed_at=parse_datetime(row["completed_at"]),
            cancelled_at=parse_datetime(row["cancelled_at"]),
        )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _to_column(value: Any) -> Any:
    if isinstance(value, ExchangeStatus):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value
