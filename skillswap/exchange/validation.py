"""Input validation for exchange operations."""

from datetime import UTC, date, datetime, time

from skillswap.errors import ValidationError


def validate_duration(value: object, *, max_hours: int | None = None) -> int:
    """Return the duration if it is a positive whole number of hours.

    Raises:
        ValidationError: If the value is not an int, is not positive, or
            exceeds max_hours.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"duration must be a whole number of hours, got {value!r}",
            operation="validate_duration",
        )
    if value <= 0:
        raise ValidationError(
            f"duration must be positive, got {value}", operation="validate_duration"
        )
    if max_hours is not None and value > max_hours:
        raise ValidationError(
            f"duration must be at most {max_hours} hours, got {value}",
            operation="validate_duration",
        )
    return value


def validate_skill_name(value: object) -> str:
    """Return the skill name unchanged if it is a non-blank string."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("skill is required", operation="validate_skill_name")
    return value


def validate_parties(teacher_id: object, student_id: object) -> None:
    """Check that teacher and student are two distinct, non-blank ids."""
    for role, value in (("teacher", teacher_id), ("student", student_id)):
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(
                f"{role} id is required", operation="validate_parties"
            )
    if teacher_id == student_id:
        raise ValidationError(
            "teacher and student must be different users",
            operation="validate_parties",
            entity_id=str(teacher_id),
        )


def _as_utc(value: datetime, operation: str = "parse_timestamp") -> datetime:
    # Naive values carry no zone information; treat them as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    try:
        return value.astimezone(UTC)
    except OverflowError as e:
        raise ValidationError(
            f"timestamp out of range in UTC: {value.isoformat()}", operation=operation
        ) from e


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 date-time into an aware UTC datetime.

    Accepts a trailing "Z". A bare date without a time of day is rejected.

    Raises:
        ValidationError: If the value cannot be parsed or falls outside the
            representable range once converted to UTC.
    """
    if isinstance(value, datetime):
        return _as_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("timestamp is required", operation="parse_timestamp")

    text = value.strip()
    if len(text) <= len("YYYY-MM-DD"):
        raise ValidationError(
            f"timestamp needs a time of day: {value!r}", operation="parse_timestamp"
        )
    try:
        parsed = datetime.fromisoformat(text)
    except (ValueError, OverflowError) as e:
        raise ValidationError(
            f"invalid timestamp: {value!r}", operation="parse_timestamp"
        ) from e
    return _as_utc(parsed)


def combine_date_time(date_str: str, time_str: str) -> datetime:
    """Combine a YYYY-MM-DD date and an HH:MM[:SS] time into a UTC datetime.

    Raises:
        ValidationError: If either part is blank or unparseable.
    """
    if not date_str or not date_str.strip() or not time_str or not time_str.strip():
        raise ValidationError(
            "both date and time are required", operation="combine_date_time"
        )
    try:
        day = date.fromisoformat(date_str.strip())
        moment = time.fromisoformat(time_str.strip())
    except ValueError as e:
        raise ValidationError(
            f"invalid date/time: {date_str!r} {time_str!r}",
            operation="combine_date_time",
        ) from e
    return _as_utc(datetime.combine(day, moment), "combine_date_time")
