"""Error taxonomy for SkillSwap core operations."""


class SkillSwapError(Exception):
    """Base error for SkillSwap core operations.

    Attributes:
        operation: Name of the operation that failed (e.g. "complete_exchange").
        entity_id: Id of the user or exchange involved, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        entity_id: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.entity_id = entity_id

    def __str__(self) -> str:
        if self.operation and self.entity_id:
            return f"{self.operation} ({self.entity_id}): {self.message}"
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class NotFoundError(SkillSwapError):
    """A referenced user or exchange does not exist."""


class ValidationError(SkillSwapError):
    """Input was malformed (bad duration, unparseable timestamp, blank field)."""


class InvalidStateTransition(SkillSwapError):
    """The exchange's current status does not permit the requested operation."""


class DataAccessError(SkillSwapError):
    """The underlying store failed; the original error is chained as __cause__."""
