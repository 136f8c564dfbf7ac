"""Telegram bot application layer — polling, routing, handlers, error boundary.

This package may import from ``core/``, ``sdk/``, ``services/`` and ``config``.
"""

from bot.callbacks import handle_callback_query, parse_callback_data
from bot.context import AppContext, build_context
from bot.dispatcher import process_update, run
from bot.error_boundary import handle_error, notify_admins
from bot.handlers import (
    handle_about,
    handle_broadcast,
    handle_cancel,
    handle_debug,
    handle_help,
    handle_logs,
    handle_settings,
    handle_start,
    handle_stats,
)
from bot.telegram import answer_callback_query, edit_message_text, get_updates, send_message

__all__ = [
    # Dispatcher
    "run",
    "process_update",
    "AppContext",
    "build_context",
    # Command handlers
    "handle_start",
    "handle_help",
    "handle_settings",
    "handle_about",
    "handle_cancel",
    "handle_stats",
    "handle_broadcast",
    "handle_logs",
    "handle_debug",
    # Callback handlers
    "handle_callback_query",
    "parse_callback_data",
    # Error boundary
    "handle_error",
    "notify_admins",
    # Telegram API helpers
    "get_updates",
    "send_message",
    "edit_message_text",
    "answer_callback_query",
]
