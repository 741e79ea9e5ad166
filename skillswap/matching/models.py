"""Data models for skill matching results."""

from __future__ import annotations

from pydantic import BaseModel, Field

from skillswap.directory.models import UserProfile


class MatchResult(BaseModel):
    """A candidate teacher surfaced for a requester."""

    user_id: str = Field(..., description="Candidate profile id")
    name: str | None = Field(default=None, description="Candidate display name")
    bio: str | None = Field(default=None, description="Candidate bio")
    avatar: str | None = Field(default=None, description="Candidate avatar reference")
    rating: float = Field(default=0.0, ge=0.0, description="Average review rating")
    matching_skill: str = Field(
        ..., description="Requester interest that justified this match"
    )
    completed_exchanges: int = Field(
        default=0, ge=0, description="Exchanges the candidate has completed"
    )

    @classmethod
    def from_profile(cls, profile: UserProfile, matching_skill: str) -> MatchResult:
        """Build a result from the candidate's public profile fields."""
        return cls(
            user_id=profile.user_id,
            name=profile.name,
            bio=profile.bio,
            avatar=profile.avatar,
            rating=profile.rating,
            matching_skill=matching_skill,
            completed_exchanges=profile.completed_exchanges,
        )

    def to_dict(self) -> dict:
        """Serialize to a dictionary."""
        return self.model_dump(mode="json")
