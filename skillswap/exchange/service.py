"""Business logic service for the exchange lifecycle.

This module provides the ExchangeService class which handles:
- Exchange creation between a teacher and a student
- Scheduling, completion (with time-credit transfer) and cancellation
- Per-user exchange listings, session details and progress summaries
- Per-skill learning progress and achievements

Status flow: pending -> scheduled -> completed, with cancelled reachable
from pending or scheduled. Every operation takes the acting user's id
explicitly; there is no ambient current user.
"""

import asyncio
import uuid
from collections import Counter
from dataclasses import replace
from datetime import UTC, datetime

from skillswap.directory.models import Exchange, ExchangeStatus, validate_model
from skillswap.directory.repository import DirectoryRepository
from skillswap.errors import InvalidStateTransition, SkillSwapError, ValidationError
from skillswap.exchange.models import (
    Achievement,
    ProgressSummary,
    SessionDetails,
    SkillProgress,
)
from skillswap.exchange.validation import (
    combine_date_time,
    parse_timestamp,
    validate_duration,
    validate_parties,
    validate_skill_name,
)
from skillswap.utils.logging import get_logger

logger = get_logger("exchange.service")

CANCELLABLE_STATUSES = frozenset({ExchangeStatus.PENDING, ExchangeStatus.SCHEDULED})


class ExchangeService:
    """Business logic service for skill exchanges.

    This class validates requests, enforces the status machine and
    delegates persistence (including the atomic credit transfer) to the
    DirectoryRepository. Writes are not idempotent and are never retried
    here; callers should re-read the exchange before retrying.
    """

    def __init__(
        self,
        repository: DirectoryRepository,
        *,
        max_exchange_hours: int | None = None,
    ):
        """Initialize the service.

        Args:
            repository: The DirectoryRepository instance for data access.
            max_exchange_hours: Optional upper bound on exchange duration.
        """
        self.repository = repository
        self.max_exchange_hours = max_exchange_hours

    async def create_exchange(
        self,
        teacher_id: str,
        student_id: str,
        skill: str,
        duration_hours: int,
    ) -> str:
        """Create a pending exchange.

        Args:
            teacher_id: Profile id of the teacher.
            student_id: Profile id of the student (normally the requester).
            skill: Skill name, stored verbatim.
            duration_hours: Length in hours; also the credits transferred.

        Returns:
            The id of the new exchange.

        Raises:
            ValidationError: On identical parties, blank skill or bad duration.
            NotFoundError: If either party does not exist.
        """
        validate_parties(teacher_id, student_id)
        validate_skill_name(skill)
        duration = validate_duration(duration_hours, max_hours=self.max_exchange_hours)

        # Both lookups are independent reads
        await asyncio.gather(
            self.repository.get_user(teacher_id),
            self.repository.get_user(student_id),
        )

        exchange = Exchange(
            exchange_id=uuid.uuid4().hex,
            teacher_id=teacher_id,
            student_id=student_id,
            skill=skill,
            duration=duration,
            credits=duration,
            status=ExchangeStatus.PENDING,
            created_at=datetime.now(UTC),
        )
        exchange_id = await self.repository.create_exchange(exchange)

        logger.info(
            f"Created exchange {exchange_id}: {student_id} learns '{skill}' "
            f"from {teacher_id} for {duration}h"
        )
        return exchange_id

    async def get_exchange(self, exchange_id: str) -> Exchange:
        """Get an exchange by id.

        Raises:
            NotFoundError: If the exchange does not exist.
        """
        return await self.repository.get_exchange(exchange_id)

    async def schedule_exchange(
        self,
        exchange_id: str,
        when: str | datetime,
        *,
        actor_id: str | None = None,
    ) -> Exchange:
        """Schedule a pending exchange.

        Args:
            exchange_id: Exchange to schedule.
            when: ISO-8601 timestamp (or datetime); naive values are UTC.
            actor_id: Acting user; must be a party to the exchange if given.

        Returns:
            The exchange as scheduled.

        Raises:
            ValidationError: If the timestamp is invalid or the actor is not a party.
            NotFoundError: If the exchange does not exist.
            InvalidStateTransition: If the exchange is not pending.
        """
        scheduled_for = parse_timestamp(when)
        exchange = await self.repository.get_exchange(exchange_id)
        self._check_actor(exchange, actor_id, "schedule_exchange")
        self._require_status(exchange, ExchangeStatus.PENDING, "schedule_exchange")

        await self.repository.patch_exchange(
            exchange_id,
            {"status": ExchangeStatus.SCHEDULED, "scheduled_for": scheduled_for},
            expected_status=ExchangeStatus.PENDING,
        )

        logger.info(f"Scheduled exchange {exchange_id} for {scheduled_for.isoformat()}")
        return replace(
            exchange, status=ExchangeStatus.SCHEDULED, scheduled_for=scheduled_for
        )

    async def schedule_exchange_at(
        self,
        exchange_id: str,
        date_str: str,
        time_str: str,
        *,
        actor_id: str | None = None,
    ) -> Exchange:
        """Schedule a pending exchange from separate date and time inputs.

        Args:
            exchange_id: Exchange to schedule.
            date_str: Date as YYYY-MM-DD.
            time_str: Time as HH:MM or HH:MM:SS.
            actor_id: Acting user; must be a party to the exchange if given.
        """
        scheduled_for = combine_date_time(date_str, time_str)
        return await self.schedule_exchange(
            exchange_id, scheduled_for, actor_id=actor_id
        )

    async def complete_exchange(
        self,
        exchange_id: str,
        *,
        actor_id: str | None = None,
    ) -> Exchange:
        """Complete a scheduled exchange and transfer its credits.

        The teacher gains and the student loses exactly `credits`; either
        both balance changes and the status change are applied or none is.

        Raises:
            NotFoundError: If the exchange or a party's profile is missing.
            InvalidStateTransition: If the exchange is not scheduled.
            DataAccessError: If the store fails; nothing is applied.
        """
        exchange = await self.repository.get_exchange(exchange_id)
        self._check_actor(exchange, actor_id, "complete_exchange")
        self._require_status(exchange, ExchangeStatus.SCHEDULED, "complete_exchange")

        try:
            completed = await self.repository.complete_exchange(
                exchange_id, datetime.now(UTC)
            )
        except SkillSwapError as e:
            logger.error(f"Failed to complete exchange {exchange_id}: {e}")
            raise

        logger.info(
            f"Completed exchange {exchange_id}: {completed.credits} credits "
            f"{completed.student_id} -> {completed.teacher_id}"
        )
        return completed

    async def cancel_exchange(
        self,
        exchange_id: str,
        *,
        actor_id: str | None = None,
    ) -> Exchange:
        """Cancel a pending or scheduled exchange. No credits move.

        Raises:
            NotFoundError: If the exchange does not exist.
            InvalidStateTransition: If the exchange is completed or cancelled.
        """
        exchange = await self.repository.get_exchange(exchange_id)
        self._check_actor(exchange, actor_id, "cancel_exchange")
        if exchange.status not in CANCELLABLE_STATUSES:
            raise InvalidStateTransition(
                f"cannot cancel a {exchange.status.value} exchange",
                operation="cancel_exchange",
                entity_id=exchange_id,
            )

        cancelled_at = datetime.now(UTC)
        await self.repository.patch_exchange(
            exchange_id,
            {"status": ExchangeStatus.CANCELLED, "cancelled_at": cancelled_at},
            expected_status=exchange.status,
        )

        logger.info(f"Cancelled exchange {exchange_id} (was {exchange.status.value})")
        return replace(
            exchange, status=ExchangeStatus.CANCELLED, cancelled_at=cancelled_at
        )

    async def get_user_exchanges(self, user_id: str) -> list[Exchange]:
        """Return every exchange the user takes part in, newest first.

        Ordering uses scheduled_for when set, otherwise created_at.

        Raises:
            NotFoundError: If the user does not exist.
        """
        await self.repository.get_user(user_id)
        exchanges = await self.repository.list_exchanges_for_user(user_id)
        return sorted(exchanges, key=lambda e: e.sort_key, reverse=True)

    async def get_upcoming_sessions(
        self, user_id: str, now: datetime | None = None
    ) -> list[Exchange]:
        """Return the user's scheduled exchanges still in the future, soonest first.

        Raises:
            NotFoundError: If the user does not exist.
        """
        now = now or datetime.now(UTC)
        await self.repository.get_user(user_id)
        exchanges = await self.repository.list_exchanges_for_user(user_id)
        upcoming = [
            e
            for e in exchanges
            if e.status == ExchangeStatus.SCHEDULED
            and e.scheduled_for is not None
            and e.scheduled_for > now
        ]
        return sorted(upcoming, key=lambda e: e.scheduled_for)

    async def get_session_details(self, exchange_id: str) -> SessionDetails:
        """Return an exchange with both parties' profiles."""
        exchange = await self.repository.get_exchange(exchange_id)
        teacher, student = await asyncio.gather(
            self.repository.find_user(exchange.teacher_id),
            self.repository.find_user(exchange.student_id),
        )
        return SessionDetails(exchange=exchange, teacher=teacher, student=student)

    async def get_time_balance(self, user_id: str) -> int:
        """Return the user's current time credits."""
        profile = await self.repository.get_user(user_id)
        return profile.time_balance

    async def update_skill_progress(
        self,
        user_id: str,
        skill: str,
        progress: SkillProgress | dict,
    ) -> SkillProgress:
        """Record the user's progress on one skill, replacing any earlier entry.

        Args:
            user_id: Learner whose progress changes.
            skill: Skill name, used verbatim as the key.
            progress: Level, percent complete, hours and sessions.

        Raises:
            ValidationError: If the skill is blank or the progress is malformed.
            NotFoundError: If the user does not exist.
        """
        validate_skill_name(skill)
        if isinstance(progress, SkillProgress):
            progress = progress.model_dump()
        entry = validate_model(
            SkillProgress,
            progress,
            operation="update_skill_progress",
            entity_id=user_id,
        )

        await self.repository.set_skill_progress(user_id, skill, entry.model_dump())
        logger.info(f"Progress for {user_id} on '{skill}': {entry.progress}%")
        return entry

    async def get_skill_progress(self, user_id: str) -> dict[str, SkillProgress]:
        """Return the user's progress per skill.

        Raises:
            NotFoundError: If the user does not exist.
        """
        profile = await self.repository.get_user(user_id)
        return {
            skill: SkillProgress.model_validate(entry)
            for skill, entry in profile.skill_progress.items()
        }

    async def add_achievement(
        self, user_id: str, achievement: Achievement | dict
    ) -> bool:
        """Award an achievement; awarding the same one twice has no effect.

        Returns:
            True if the achievement was new for this user.

        Raises:
            ValidationError: If the achievement is malformed.
            NotFoundError: If the user does not exist.
        """
        if isinstance(achievement, Achievement):
            achievement = achievement.model_dump()
        badge = validate_model(
            Achievement, achievement, operation="add_achievement", entity_id=user_id
        )

        added = await self.repository.add_achievement(user_id, badge.model_dump())
        if added:
            logger.info(f"Achievement '{badge.title}' awarded to {user_id}")
        else:
            logger.debug(f"{user_id} already holds achievement '{badge.title}'")
        return added

    async def get_user_progress(self, user_id: str) -> ProgressSummary:
        """Summarize a user's skills, balance and exchange history."""
        profile, exchanges = await asyncio.gather(
            self.repository.get_user(user_id),
            self.repository.list_exchanges_for_user(user_id),
        )
        counts = Counter(e.status.value for e in exchanges)
        return ProgressSummary(
            user_id=profile.user_id,
            teaching_skills=profile.teaching_skills,
            learning_interests=profile.learning_interests,
            completed_exchanges=profile.completed_exchanges,
            time_balance=profile.time_balance,
            rating=profile.rating,
            exchange_counts={s.value: counts.get(s.value, 0) for s in ExchangeStatus},
            skill_progress=profile.skill_progress,
            achievements=profile.achievements,
        )

    def _check_actor(
        self, exchange: Exchange, actor_id: str | None, operation: str
    ) -> None:
        if actor_id is not None and not exchange.involves(actor_id):
            raise ValidationError(
                f"user {actor_id} is not a party to this exchange",
                operation=operation,
                entity_id=exchange.exchange_id,
            )

    def _require_status(
        self, exchange: Exchange, status: ExchangeStatus, operation: str
    ) -> None:
        if exchange.status != status:
            raise InvalidStateTransition(
                f"exchange is {exchange.status.value}, expected {status.value}",
                operation=operation,
                entity_id=exchange.exchange_id,
            )
