"""Exception hierarchy for training analytics."""

from .constants import ServiceFailure


class TrainlyticsError(Exception):
    """Base class for every recoverable error raised by the package."""


class FileReadError(TrainlyticsError):
    """The bytes of the uploaded file could not be read."""


class ParseError(TrainlyticsError):
    """The spreadsheet could not be decoded into a grid of rows."""


class EmptySheetError(ParseError):
    """The selected worksheet contains no rows."""


class InvalidTransitionError(TrainlyticsError):
    """A session event is not allowed in the current step."""


class NarrativeServiceError(TrainlyticsError):
    """The narrative service call failed.

    Attributes:
        retryable: True when repeating the same request may succeed
            (rate limits, timeouts, connection drops).
    """

    def __init__(self, message: str, *, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


def describe_service_failure(raw_message: str) -> tuple[str, bool]:
    """Map a raw failure message to a user-readable cause.

    Args:
        raw_message: Text of the underlying exception.

    Returns:
        tuple[str, bool]: The user-facing message and whether retrying makes sense.
    """
    if "SAFETY" in raw_message:
        return ServiceFailure.CONTENT_FILTERED, False
    if "429" in raw_message:
        return ServiceFailure.RATE_LIMITED, True
    if "403" in raw_message:
        return ServiceFailure.PERMISSION_DENIED, False
    return ServiceFailure.GENERIC, False
