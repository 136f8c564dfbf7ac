"""Core engine — sessions, rate limiting, error taxonomy, identity and logging.

This package is framework-agnostic. It must NEVER import from ``bot/``,
``sdk/`` or ``services/``.
"""

from core.errors import ErrorKind, BotError, classify
from core.identity import get_chat_id, get_identity
from core.logger import QuantaLogger
from core.rate_limiter import RateLimiter, RateWindow
from core.session import Session, SessionStore, UserState

__all__ = [
    "get_identity",
    "get_chat_id",
    "QuantaLogger",
    "ErrorKind",
    "BotError",
    "classify",
    "RateLimiter",
    "RateWindow",
    "Session",
    "SessionStore",
    "UserState",
]
