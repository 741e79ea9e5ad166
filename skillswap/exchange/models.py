"""Read models built by the exchange service."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from skillswap.directory.models import Exchange, UserProfile


class SkillProgress(BaseModel):
    """How far a user has come with one skill they are learning."""

    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="Beginner", min_length=1)
    progress: int = Field(default=0, ge=0, le=100, description="Percent complete")
    hours_learned: int = Field(default=0, ge=0)
    sessions_completed: int = Field(default=0, ge=0)


class Achievement(BaseModel):
    """A badge shown on the progress dashboard."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1)
    description: str = ""
    icon: str = ""


class ProgressSummary(BaseModel):
    """A user's learning and teaching progress."""

    user_id: str = Field(..., description="Profile id")
    teaching_skills: list[str] = Field(default_factory=list)
    learning_interests: list[str] = Field(default_factory=list)
    completed_exchanges: int = Field(default=0, ge=0)
    time_balance: int = Field(default=0, description="Current time credits")
    rating: float = Field(default=0.0, ge=0.0)
    exchange_counts: dict[str, int] = Field(
        default_factory=dict, description="Number of exchanges per status"
    )
    skill_progress: dict[str, SkillProgress] = Field(default_factory=dict)
    achievements: list[Achievement] = Field(default_factory=list)

    def to_dict(self) -> dict:
        """Serialize to a dictionary."""
        return self.model_dump(mode="json")


@dataclass
class SessionDetails:
    """An exchange together with both parties' profiles.

    A party whose profile no longer exists is None.
    """

    exchange: Exchange
    teacher: UserProfile | None
    student: UserProfile | None

    def to_dict(self) -> dict:
        return {
            **self.exchange.to_dict(),
            "teacher": self.teacher.to_dict() if self.teacher else None,
            "student": self.student.to_dict() if self.student else None,
        }
