"""Command, text and media handlers.

Each command handler is bound to its slash-command with
``@registry.register`` and receives ``(app, message, session)``.  Handlers
change session state only through :class:`core.session.SessionStore` so
every write is serialised per user and checked against the transition
table.
"""

import html
import json
from datetime import datetime, timezone

from bot import keyboards, messages
from bot.context import AppContext
from bot.registry import parse_command, registry
from bot.telegram import send_message
from core.errors import ErrorKind
from core.logger import QuantaLogger
from core.session import Session, UserState
from sdk.models import Message

logger = QuantaLogger.get_logger()

PENDING_INVITER = "inviter_id"
PENDING_BROADCAST = "broadcast_confirm"
BROADCAST_DRAFT_KEY = "broadcast_draft"
BROADCAST_STAMP_KEY = "broadcast_stamp"

ACTIVE_WINDOW_MS = 24 * 60 * 60 * 1000
LOG_TAIL_LINES = 10


def drop_broadcast_draft(session: Session) -> None:
    session.extras.pop(BROADCAST_DRAFT_KEY, None)
    session.extras.pop(BROADCAST_STAMP_KEY, None)


async def abandon_flow(app: AppContext, user_id: int) -> Session:
    """Drop any pending broadcast draft and return the user to idle."""
    await app.sessions.update(user_id, drop_broadcast_draft)
    return await app.sessions.reset(user_id)


async def register_with_inviter(app: AppContext, chat_id: int, user_id: int, inviter_id: str) -> bool:
    """Register *user_id* under *inviter_id* with the backend and reply.

    Returns ``True`` when the backend created the registration.
    """
    result = await app.backend.sign_up(inviter_id, user_id)
    if result.created:
        await send_message(chat_id, messages.WELCOME, reply_markup=keyboards.mini_app(app.mini_app_url), parse_mode="HTML")
        logger.info("User registered", extra={"user_id": user_id, "inviter_id": inviter_id})
    else:
        reply = html.escape(result.message) if result.message else messages.ERROR_REPLIES[ErrorKind.UNKNOWN_ERROR]
        await send_message(chat_id, reply, parse_mode="HTML")
        logger.info("Registration rejected", extra={"user_id": user_id, "inviter_id": inviter_id, "status_code": result.status})
    return result.created


# ── Public commands ──────────────────────────────────────────────────────────


@registry.register("/start", description="Start the bot")
async def handle_start(app: AppContext, message: Message, session: Session) -> None:
    """Handle /start [inviter_id] — register with the backend or ask for the inviter."""
    chat_id = message.chat.id
    user_id = session.user_id
    _, inviter_id = parse_command(message.text or "")
    logger.info("User invoked /start", extra={"user_id": user_id, "chat_id": chat_id, "command": "/start", "has_inviter": bool(inviter_id)})

    # Re-entering /start abandons whatever flow was in progress.
    if session.user_state is not UserState.IDLE:
        await abandon_flow(app, user_id)

    if not inviter_id:
        await app.sessions.transition(user_id, UserState.WAITING_INPUT, pending_action=PENDING_INVITER)
        await send_message(chat_id, messages.ENTER_INVITER, parse_mode="HTML")
        return

    await register_with_inviter(app, chat_id, user_id, inviter_id)


@registry.register("/help", description="Show help information")
async def handle_help(app: AppContext, message: Message, session: Session) -> None:
    logger.info("User invoked /help", extra={"user_id": session.user_id, "command": "/help"})
    await send_message(message.chat.id, messages.HELP, reply_markup=keyboards.main_menu(), parse_mode="HTML")


def render_settings(session: Session) -> str:
    """Settings menu text reflecting the session's current preferences."""
    return messages.SETTINGS_MENU.format(
        language=messages.LANGUAGES.get(session.language_code, session.language_code),
        notifications="Enabled" if session.notifications_enabled else "Disabled",
    )


@registry.register("/settings", description="Bot settings")
async def handle_settings(app: AppContext, message: Message, session: Session) -> None:
    logger.info("User invoked /settings", extra={"user_id": session.user_id, "command": "/settings"})
    await send_message(message.chat.id, render_settings(session), reply_markup=keyboards.settings_menu(), parse_mode="HTML")


@registry.register("/about", description="About this bot")
async def handle_about(app: AppContext, message: Message, session: Session) -> None:
    logger.info("User invoked /about", extra={"user_id": session.user_id, "command": "/about"})
    await send_message(message.chat.id, messages.ABOUT, reply_markup=keyboards.back_button(), parse_mode="HTML")


@registry.register("/cancel", description="Cancel current operation")
async def handle_cancel(app: AppContext, message: Message, session: Session) -> None:
    """Handle /cancel — drop any pending flow and return to idle."""
    logger.info("User invoked /cancel", extra={"user_id": session.user_id, "command": "/cancel", "from_state": session.user_state.value})
    await abandon_flow(app, session.user_id)
    await send_message(message.chat.id, messages.CANCELLED, reply_markup=keyboards.main_menu())


# ── Admin commands ───────────────────────────────────────────────────────────


@registry.register("/stats", description="Bot statistics", admin_only=True)
async def handle_stats(app: AppContext, message: Message, session: Session) -> None:
    """Handle /stats — snapshot of sessions, traffic and uptime."""
    logger.info("User invoked /stats", extra={"user_id": session.user_id, "command": "/stats"})
    stats = app.sessions.stats(ACTIVE_WINDOW_MS)
    uptime_s = app.uptime_ms() // 1000
    text = messages.STATS.format(
        total_users=stats.total_users,
        active_users=stats.active_users,
        total_messages=stats.total_messages,
        hours=uptime_s // 3600,
        minutes=(uptime_s % 3600) // 60,
        rate_windows=len(app.limiter),
        updated=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
    )
    await send_message(message.chat.id, text, parse_mode="HTML")


@registry.register("/broadcast", description="Broadcast a message", admin_only=True)
async def handle_broadcast(app: AppContext, message: Message, session: Session) -> None:
    """Handle /broadcast <text> — show a preview and wait for confirmation."""
    chat_id = message.chat.id
    user_id = session.user_id
    _, text = parse_command(message.text or "")
    logger.info("User invoked /broadcast", extra={"user_id": user_id, "command": "/broadcast", "text_length": len(text)})

    if not text:
        await send_message(chat_id, messages.BROADCAST_USAGE, parse_mode="HTML")
        return

    if session.user_state is UserState.WAITING_INPUT:
        await abandon_flow(app, user_id)

    stamp = app.clock()

    def store_draft(s: Session) -> None:
        s.extras[BROADCAST_DRAFT_KEY] = text
        s.extras[BROADCAST_STAMP_KEY] = str(stamp)

    await app.sessions.update(user_id, store_draft)
    await app.sessions.transition(user_id, UserState.IN_CONVERSATION, pending_action=PENDING_BROADCAST)
    await send_message(
        chat_id,
        messages.BROADCAST_PREVIEW.format(text=html.escape(text)),
        reply_markup=keyboards.broadcast_confirm(stamp),
        parse_mode="HTML",
    )


def _render_log_line(line: str) -> str:
    try:
        entry = json.loads(line)
    except ValueError:
        return html.escape(line)
    return html.escape(f"{entry.get('timestamp', '')[11:19]} {entry.get('level', '')} {entry.get('message', '')}")


@registry.register("/logs", description="Recent log lines", admin_only=True)
async def handle_logs(app: AppContext, message: Message, session: Session) -> None:
    """Handle /logs — tail of the in-memory log buffer."""
    logger.info("User invoked /logs", extra={"user_id": session.user_id, "command": "/logs"})
    recent = QuantaLogger.recent(LOG_TAIL_LINES)
    lines = "\n".join(f"• {_render_log_line(line)}" for line in recent) or f"• {messages.LOGS_EMPTY}"
    await send_message(message.chat.id, messages.LOGS.format(lines=lines), parse_mode="HTML")


@registry.register("/debug", description="Debug information", admin_only=True, dev_only=True)
async def handle_debug(app: AppContext, message: Message, session: Session) -> None:
    """Handle /debug — dump the caller's session and process info (development only)."""
    logger.info("User invoked /debug", extra={"user_id": session.user_id, "command": "/debug"})
    payload = {
        "user_id": session.user_id,
        "session": session.model_dump(mode="json"),
        "environment": app.environment,
        "uptime_s": app.uptime_ms() // 1000,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    text = messages.DEBUG.format(payload=html.escape(json.dumps(payload, indent=2, ensure_ascii=False)))
    await send_message(message.chat.id, text, parse_mode="HTML")


# ── Non-command messages ─────────────────────────────────────────────────────


async def handle_text(app: AppContext, message: Message, session: Session) -> None:
    """Handle plain text according to the session state."""
    chat_id = message.chat.id
    user_id = session.user_id
    text = (message.text or "").strip()
    logger.info("Text message received", extra={"user_id": user_id, "message_length": len(text), "user_state": session.user_state.value})

    if session.user_state is UserState.WAITING_INPUT:
        if session.pending_action == PENDING_INVITER and text:
            await register_with_inviter(app, chat_id, user_id, text)
            await app.sessions.reset(user_id)
            return
        await send_message(chat_id, messages.INPUT_RECEIVED)
        return

    await send_message(chat_id, messages.TEXT_RECEIVED, reply_markup=keyboards.text_fallback())


async def handle_media(app: AppContext, message: Message, session: Session, kind: str) -> None:
    """Acknowledge a photo, document, sticker or voice message without processing it."""
    logger.info("Media received", extra={"user_id": session.user_id, "media_kind": kind})
    await send_message(message.chat.id, messages.MEDIA_REPLIES[kind])
