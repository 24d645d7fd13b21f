"""
ITDA — Domain exceptions.

Services raise these for conditions the caller cannot recover from locally;
``app.main`` maps each one to an HTTP status and the ``{"error": ...}``
envelope.
"""

from __future__ import annotations


class ItdaError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EntityNotFoundError(ItdaError):
    """A required influencer, campaign, match, or room does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class PermissionDeniedError(ItdaError):
    status_code = 403


class DailyLimitExceededError(ItdaError):
    status_code = 429

    def __init__(self, limit: int, reset_at: object) -> None:
        super().__init__(f"Daily swipe limit of {limit} reached")
        self.limit = limit
        self.reset_at = reset_at


class InvalidStateError(ItdaError):
    """The entity exists but is not in a state that allows the operation."""

    status_code = 409
