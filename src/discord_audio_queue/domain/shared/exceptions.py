"""Base exception classes for domain-level errors."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class InvalidQueryError(DomainError):
    """Raised when a request query is empty or cannot be understood."""

    def __init__(self, query: str, message: str | None = None) -> None:
        super().__init__(message or f"Invalid query: '{query}'", code="INVALID_QUERY")
        self.query = query


# =============================================================================
# Resolution
# =============================================================================


class ResolutionError(DomainError):
    """Base class for failures while turning a query into a playable track.

    ``specificity`` orders the subclasses so a fallback chain can surface the
    most informative failure it saw. Higher wins.
    """

    specificity: int = 0
    default_code: str = "RESOLUTION_FAILED"

    def __init__(self, message: str, source: str | None = None) -> None:
        super().__init__(message, code=self.default_code)
        self.source = source


class ResolutionTimeoutError(ResolutionError):
    """Raised when a resolution strategy does not answer in time."""

    specificity = 1
    default_code = "RESOLUTION_TIMEOUT"


class TrackNotFoundError(ResolutionError):
    """Raised when no candidate matches the query."""

    specificity = 2
    default_code = "TRACK_NOT_FOUND"


class ResolutionUnavailableError(ResolutionError):
    """Raised when the media exists but is removed or otherwise unplayable."""

    specificity = 3
    default_code = "RESOLUTION_UNAVAILABLE"


class RestrictedContentError(ResolutionError):
    """Raised for private, age-gated or region-blocked media."""

    specificity = 4
    default_code = "RESTRICTED_CONTENT"


class ShortFormRejectedError(DomainError):
    """Raised when a resolved track is short-form content."""

    def __init__(self, title: str, duration_seconds: int) -> None:
        super().__init__(
            f"'{title}' looks like short-form content ({duration_seconds}s)",
            code="SHORT_FORM_REJECTED",
        )
        self.title = title
        self.duration_seconds = duration_seconds


class DurationExceededError(DomainError):
    """Raised when a resolved track is longer than the configured maximum."""

    def __init__(self, title: str, duration_seconds: int, max_seconds: int) -> None:
        super().__init__(
            f"'{title}' is {duration_seconds}s long, the maximum is {max_seconds}s",
            code="DURATION_EXCEEDED",
        )
        self.title = title
        self.duration_seconds = duration_seconds
        self.max_seconds = max_seconds


# =============================================================================
# Voice / queue
# =============================================================================


class ConnectionDeniedError(DomainError):
    """Raised when the voice transport refuses a connection."""

    def __init__(self, channel_id: int, reason: str | None = None) -> None:
        msg = f"Could not connect to voice channel {channel_id}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg, code="CONNECTION_DENIED")
        self.channel_id = channel_id
        self.reason = reason


class NotInSameChannelError(DomainError):
    """Raised when a user issues a control command from another channel."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "You must be in the same voice channel", code="NOT_IN_SAME_CHANNEL")


class QueueEmptyError(DomainError):
    """Raised when an operation needs a current track and there is none."""

    def __init__(self, guild_id: int) -> None:
        super().__init__(f"Queue for guild {guild_id} is empty", code="QUEUE_EMPTY")
        self.guild_id = guild_id


class InvalidPositionError(DomainError):
    """Raised when a 1-based queue position is out of range."""

    def __init__(self, position: int, queue_length: int, message: str | None = None) -> None:
        msg = message or f"Position {position} is out of range (queue has {queue_length} tracks)"
        super().__init__(msg, code="INVALID_POSITION")
        self.position = position
        self.queue_length = queue_length


# =============================================================================
# Search sessions
# =============================================================================


class SessionExpiredError(DomainError):
    """Raised when a search session is unknown, consumed or expired."""

    def __init__(self, session_id: str) -> None:
        super().__init__("This search session has expired", code="SESSION_EXPIRED")
        self.session_id = session_id


class SessionUnauthorizedError(DomainError):
    """Raised when someone other than the owner touches a search session."""

    def __init__(self, session_id: str) -> None:
        super().__init__("This search session belongs to someone else", code="SESSION_UNAUTHORIZED")
        self.session_id = session_id


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state
