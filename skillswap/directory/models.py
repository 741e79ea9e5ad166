"""Data models for the user and skill directory."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from skillswap.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 value stored by the directory."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def unique_skills(skills: list[str] | None) -> list[str]:
    """Drop exact repeats of a skill name, keeping first occurrences in order.

    Names are stored verbatim: no trimming and no case folding.
    """
    return list(dict.fromkeys(skills or []))


def validate_model(
    model: type[ModelT],
    data: Any,
    *,
    operation: str,
    entity_id: str | None = None,
) -> ModelT:
    """Validate data against a pydantic model, raising the domain ValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(
            f"invalid {model.__name__}: {problems}",
            operation=operation,
            entity_id=entity_id,
        ) from e


class ProfilePatch(BaseModel):
    """Profile fields a caller may set through patch_user or a profile file.

    time_balance, skill_progress and achievements are not patchable; they
    change only through their own operations.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    bio: str | None = None
    location: str | None = None
    avatar: str | None = None
    teaching_skills: list[str] = Field(default_factory=list)
    learning_interests: list[str] = Field(default_factory=list)
    rating: float = Field(default=0.0, ge=0.0)
    total_reviews: int = Field(default=0, ge=0)
    completed_exchanges: int = Field(default=0, ge=0)
    settings: dict[str, Any] = Field(default_factory=dict)
    availability: dict[str, Any] = Field(default_factory=dict)
    preferences: dict[str, Any] = Field(default_factory=dict)

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller supplied."""
        return self.model_dump(exclude_unset=True)


@dataclass
class UserProfile:
    """A user of the skill exchange platform.

    Attributes:
        user_id: Opaque unique id owned by the authentication service.
        name: Display name.
        bio: Short self-description.
        location: Free-text location.
        avatar: Reference to the avatar image.
        teaching_skills: Skills this user can teach.
        learning_interests: Skills this user wants to learn.
        rating: Running average of review ratings.
        total_reviews: Number of reviews behind the rating.
        time_balance: Time credits held; changed only by completed exchanges.
        completed_exchanges: Number of exchanges the user has finished.
        settings: Opaque settings blob.
        availability: Opaque availability blob.
        preferences: Opaque preferences blob.
        skill_progress: Per-skill learning progress, keyed by skill name.
        achievements: Earned badges, without repeats.
        created_at: When the profile was first written.
    """

    user_id: str
    name: str | None = None
    bio: str | None = None
    location: str | None = None
    avatar: str | None = None
    teaching_skills: list[str] = field(default_factory=list)
    learning_interests: list[str] = field(default_factory=list)
    rating: float = 0.0
    total_reviews: int = 0
    time_balance: int = 0
    completed_exchanges: int = 0
    settings: dict[str, Any] = field(default_factory=dict)
    availability: dict[str, Any] = field(default_factory=dict)
    preferences: dict[str, Any] = field(default_factory=dict)
    skill_progress: dict[str, dict[str, Any]] = field(default_factory=dict)
    achievements: list[dict[str, Any]] = field(default_factory=list)
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        self.teaching_skills = unique_skills(self.teaching_skills)
        self.learning_interests = unique_skills(self.learning_interests)

    def to_dict(self) -> dict:
        """Serialize the profile to a dictionary."""
        return {
            "user_id": self.user_id,
            "name": self.name,
            "bio": self.bio,
            "location": self.location,
            "avatar": self.avatar,
            "teaching_skills": list(self.teaching_skills),
            "learning_interests": list(self.learning_interests),
            "rating": self.rating,
            "total_reviews": self.total_reviews,
            "time_balance": self.time_balance,
            "completed_exchanges": self.completed_exchanges,
            "settings": dict(self.settings),
            "availability": dict(self.availability),
            "preferences": dict(self.preferences),
            "skill_progress": {k: dict(v) for k, v in self.skill_progress.items()},
            "achievements": [dict(a) for a in self.achievements],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        """Deserialize a profile from a dictionary."""
        return cls(
            user_id=data["user_id"],
            name=data.get("name"),
            bio=data.get("bio"),
            location=data.get("location"),
            avatar=data.get("avatar"),
            teaching_skills=list(data.get("teaching_skills") or []),
            learning_interests=list(data.get("learning_interests") or []),
            rating=float(data.get("rating") or 0.0),
            total_reviews=int(data.get("total_reviews") or 0),
            time_balance=int(data.get("time_balance") or 0),
            completed_exchanges=int(data.get("completed_exchanges") or 0),
            settings=dict(data.get("settings") or {}),
            availability=dict(data.get("availability") or {}),
            preferences=dict(data.get("preferences") or {}),
            skill_progress=dict(data.get("skill_progress") or {}),
            achievements=list(data.get("achievements") or []),
            created_at=parse_datetime(data.get("created_at")),
        )


@dataclass
class SkillCatalogEntry:
    """Reference data describing a skill that can be exchanged."""

    skill_id: str
    name: str
    description: str = ""
    category: str = ""
    estimated_hours: int | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        """Serialize the entry to a dictionary."""
        return {
            "skill_id": self.skill_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "estimated_hours": self.estimated_hours,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SkillCatalogEntry":
        """Deserialize an entry from a dictionary."""
        return cls(
            skill_id=data["skill_id"],
            name=data["name"],
            description=data.get("description") or "",
            category=data.get("category") or "",
            estimated_hours=data.get("estimated_hours"),
            created_at=parse_datetime(data.get("created_at")),
        )


class ExchangeStatus(str, Enum):
    """Lifecycle status of an exchange."""

    PENDING = "pending"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class Exchange:
    """A teacher/student pairing around one skill for a fixed duration.

    Attributes:
        exchange_id: Unique id assigned at creation.
        teacher_id: Profile id of the user teaching the skill.
        student_id: Profile id of the user learning the skill.
        skill: Free-text skill name, stored verbatim.
        duration: Length of the exchange in hours.
        credits: Time credits moved on completion; equal to duration.
        status: Current lifecycle status.
        created_at: When the exchange was requested.
        scheduled_for: Agreed session time, set once scheduled.
        completed_at: When the exchange was completed.
        cancelled_at: When the exchange was cancelled.
    """

    exchange_id: str
    teacher_id: str
    student_id: str
    skill: str
    duration: int
    credits: int
    status: ExchangeStatus
    created_at: datetime
    scheduled_for: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    def involves(self, user_id: str) -> bool:
        """Return True if the user is the teacher or the student."""
        return user_id in (self.teacher_id, self.student_id)

    def role_of(self, user_id: str) -> str | None:
        """Return "teacher", "student" or None for the given user."""
        if user_id == self.teacher_id:
            return "teacher"
        if user_id == self.student_id:
            return "student"
        return None

    @property
    def sort_key(self) -> datetime:
        """Timestamp used to order a user's exchanges."""
        return self.scheduled_for or self.created_at

    def to_dict(self) -> dict:
        """Serialize the exchange to a dictionary."""
        return {
            "exchange_id": self.exchange_id,
            "teacher_id": self.teacher_id,
            "student_id": self.student_id,
            "skill": self.skill,
            "duration": self.duration,
            "credits": self.credits,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "scheduled_for": self.scheduled_for.isoformat()
            if self.scheduled_for
            else None,
            "completed_at": self.completed_at.isoformat()
            if self.completed_at
            else None,
            "cancelled_at": self.cancelled_at.isoformat()
            if self.cancelled_at
            else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Exchange":
        """Deserialize an exchange from a dictionary."""
        return cls(
            exchange_id=data["exchange_id"],
            teacher_id=data["teacher_id"],
            student_id=data["student_id"],
            skill=data["skill"],
            duration=int(data["duration"]),
            credits=int(data["credits"]),
            status=ExchangeStatus(data["status"]),
            created_at=parse_datetime(data["created_at"]),
            scheduled_for=parse_datetime(data.get("scheduled_for")),
            completed_at=parse_datetime(data.get("completed_at")),
            cancelled_at=parse_datetime(data.get("cancelled_at")),
        )
