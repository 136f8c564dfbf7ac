"""Closed error taxonomy for update processing.

Every failure-prone operation raises a :class:`BotError` subclass that
carries its :class:`ErrorKind`, so the error boundary never has to inspect
message text to decide how to respond.
"""

import enum

import requests


class ErrorKind(str, enum.Enum):
    """Kinds of failure the error boundary knows how to answer."""

    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    USER_BANNED = "USER_BANNED"
    NETWORK_ERROR = "NETWORK_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# Kinds that additionally page the operators.
SEVERE_KINDS: frozenset[ErrorKind] = frozenset({
    ErrorKind.CONFIGURATION_ERROR,
    ErrorKind.UNKNOWN_ERROR,
})


class BotError(Exception):
    """Base class for typed bot failures.

    Attributes:
        kind: The :class:`ErrorKind` the boundary reports for this failure.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN_ERROR


class RateLimitExceeded(BotError):
    """A user exceeded the request budget of the current window."""

    kind = ErrorKind.RATE_LIMIT_EXCEEDED


class UserBanned(BotError):
    """A banned user reached a code path that requires an allowed user."""

    kind = ErrorKind.USER_BANNED


class NetworkError(BotError):
    """An outbound HTTP call (Telegram or backend) failed in transport."""

    kind = ErrorKind.NETWORK_ERROR


class ConfigurationError(BotError):
    """A required setting is missing or unusable."""

    kind = ErrorKind.CONFIGURATION_ERROR


class IllegalStateTransition(BotError):
    """A handler asked the session store for a transition the table forbids."""

    def __init__(self, user_id: int, current: str, target: str) -> None:
        self.user_id = user_id
        self.current = current
        self.target = target
        super().__init__(f"Illegal session transition {current} -> {target} for user {user_id}")


def classify(exc: BaseException) -> ErrorKind:
    """Return the :class:`ErrorKind` for *exc*.

    Typed bot errors report their own kind.  Raw ``requests`` transport
    errors that escaped wrapping count as network errors; everything else
    is unknown.
    """
    if isinstance(exc, BotError):
        return exc.kind
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return ErrorKind.NETWORK_ERROR
    return ErrorKind.UNKNOWN_ERROR
