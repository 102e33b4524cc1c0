"""
pulseplush.exceptions: Domain exception hierarchy.

Services raise these instead of DRF exceptions so the matching core stays
usable from Celery tasks and management commands.  The API maps them to
HTTP responses in ``pulseplush.exception_handler``.

    DomainError            400
    ValidationError        400
      InvalidReaction      400
      InvalidLocation      400
    PermissionDenied       403
    NotFound               404
    StoreUnavailable       503 (retryable)

``DispatchPartialFailure`` is never raised out of a dispatch; it is carried
on the ``DispatchResult`` so the originating request stays valid.
"""
from __future__ import annotations


class DomainError(Exception):
    """Base class for all business-rule errors."""

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class ValidationError(DomainError):
    """Malformed or missing input."""

    def __init__(self, message: str = "Invalid input.") -> None:
        super().__init__(message)


class InvalidReaction(ValidationError):
    def __init__(self, reaction=None) -> None:
        super().__init__(
            f"Invalid response type '{reaction}'. "
            f"Valid response types are: interested, confirmed, declined."
        )
        self.reaction = reaction


class InvalidLocation(ValidationError):
    """Non-finite or out-of-range coordinates handed to a geo operation."""

    def __init__(self, latitude=None, longitude=None, reason: str | None = None) -> None:
        message = f"Invalid location ({latitude}, {longitude})"
        if reason:
            message += f": {reason}"
        super().__init__(message + ".")
        self.latitude = latitude
        self.longitude = longitude


class PermissionDenied(DomainError):
    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The resource does not exist, or is not owned by the caller.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class StoreUnavailable(DomainError):
    """
    The backing store failed (connection lost, timeout, lock wait).

    The core does not retry; callers may.
    """

    retryable = True

    def __init__(self, message: str = "The data store is temporarily unavailable.") -> None:
        super().__init__(message)


class DispatchPartialFailure(DomainError):
    """Some notifications of a dispatch batch could not be stored."""

    def __init__(self, attempted: int, created: int, errors: list[str] | None = None) -> None:
        self.attempted = attempted
        self.created = created
        self.errors = list(errors or [])
        super().__init__(
            f"Created {created} of {attempted} notifications."
        )
