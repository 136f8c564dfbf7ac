"""Telegram Bot API types — Pydantic models and the API exception.

Usage::

    from sdk import APIException
    from sdk.models import Update, Message, CallbackQuery
"""

from sdk.exceptions import APIException

__all__ = [
    "APIException",
]
