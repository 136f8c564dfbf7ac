"""Update dispatcher and main polling loop.

Each update runs the same pipeline inside the error boundary::

    identity -> ban check -> session touch -> rate limit -> route -> handler

Routing precedence is slash-command, callback query, plain text, media,
then anything else (logged and ignored).  The polling loop spawns one task
per update, so handlers for different users interleave freely while the
session store and rate limiter serialise work for the same user.
"""

import asyncio
import signal

from pydantic import ValidationError

from config import BOT_TOKEN
from sdk.models import Message, Update
from core.errors import ConfigurationError
from core.identity import get_chat_id, get_identity
from core.logger import QuantaLogger
from core.session import Session
from bot import keyboards, messages
from bot.callbacks import handle_callback_query
from bot.context import AppContext, build_context
from bot.error_boundary import handle_error
from bot.registry import command_target, parse_command, registry
from bot.telegram import get_me, get_updates, send_message, set_my_commands

# Import handlers module so @registry.register decorators execute.
from bot.handlers import handle_media, handle_text

logger = QuantaLogger.get_logger()

MEDIA_KINDS: tuple[str, ...] = ("photo", "document", "sticker", "voice")
RETRY_DELAY_S = 5


async def process_update(app: AppContext, update: dict) -> None:
    """Process one raw Telegram update.  Never raises."""
    try:
        await _process(app, update)
    except Exception as exc:
        try:
            await handle_error(app, update, exc)
        except Exception:
            logger.exception("Error boundary failed", extra={"update_id": update.get("update_id")})


async def _process(app: AppContext, update: dict) -> None:
    update_id = update.get("update_id")

    user_id = get_identity(update)
    if user_id is None:
        logger.debug("Could not resolve identity, skipping", extra={"update_id": update_id})
        return

    try:
        sdk_update = Update.model_validate(update)
    except ValidationError as exc:
        logger.warning("Failed to parse update into SDK model", extra={"update_id": update_id, "error": str(exc)})
        return

    chat_id = get_chat_id(update) or user_id

    # ── User validation ──────────────────────────────────────────────────
    if app.is_banned(user_id):
        logger.info("Banned user attempted to use bot", extra={"user_id": user_id, "update_id": update_id})
        await send_message(chat_id, messages.BANNED)
        return

    query = sdk_update.callback_query
    message = sdk_update.message
    profile = query.from_field if query else (message.from_field if message else None)
    session = await app.sessions.touch(user_id, profile)

    # ── Rate limiter gate ────────────────────────────────────────────────
    if not await app.limiter.admit(user_id):
        await send_message(chat_id, messages.RATE_LIMITED)
        return

    await route(app, sdk_update, session)


async def route(app: AppContext, update: Update, session: Session) -> None:
    """Send a validated, admitted update to exactly one handler."""
    message = update.message
    text = message.text if message else None

    if message is not None and text and text.startswith("/"):
        await dispatch_command(app, message, session)
        return

    if update.callback_query is not None:
        await handle_callback_query(app, update.callback_query, session)
        return

    if message is not None and text:
        await handle_text(app, message, session)
        return

    if message is not None:
        for kind in MEDIA_KINDS:
            if getattr(message, kind):
                await handle_media(app, message, session, kind)
                return

    logger.debug("Unrecognised update ignored", extra={"update_id": update.update_id, "user_id": session.user_id})


async def dispatch_command(app: AppContext, message: Message, session: Session) -> None:
    """Check a slash-command against the allow-list and admin gate, then run it."""
    chat_id = message.chat.id
    user_id = session.user_id
    command, _ = parse_command(message.text or "")

    target = command_target(message.text or "")
    if not app.is_addressed_to_me(target):
        logger.debug("Command addressed to another bot, ignoring", extra={"command": command, "bot_target": target, "chat_id": chat_id})
        return

    entry = registry.lookup(command, development=app.is_development)
    if entry is None:
        logger.info("Invalid command received", extra={"command": command or message.text, "user_id": user_id, "chat_id": chat_id})
        await send_message(chat_id, messages.UNKNOWN_COMMAND, reply_markup=keyboards.help_button())
        return

    if entry.admin_only and not app.is_admin(user_id):
        logger.warning("Non-admin attempted to use admin command", extra={"command": command, "user_id": user_id})
        await send_message(chat_id, messages.PERMISSION_DENIED)
        return

    logger.debug("Dispatching command", extra={"command": command, "user_id": user_id})
    await entry.handler(app, message, session)


# ── Polling loop ─────────────────────────────────────────────────────────────


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops: Ctrl+C surfaces as KeyboardInterrupt instead.
            logger.debug("Signal handlers unavailable", extra={"signal": sig.name})


async def _wait_or_stop(stop: asyncio.Event, delay: float) -> None:
    try:
        await asyncio.wait_for(stop.wait(), timeout=delay)
    except asyncio.TimeoutError:
        pass


async def run(app: AppContext | None = None, stop: asyncio.Event | None = None) -> None:
    """Start the async long-polling loop and run until *stop* is set.

    Each update is spawned as an independent task.  On SIGINT/SIGTERM (or
    when *stop* is set) no new updates are fetched, in-flight tasks are
    awaited and the context's in-memory state is released.

    Raises:
        ConfigurationError: If ``BOT_TOKEN`` is not set.
    """
    if not BOT_TOKEN:
        raise ConfigurationError("BOT_TOKEN environment variable is not set or is empty.")

    app = app or build_context()
    stop = stop or asyncio.Event()
    _install_signal_handlers(stop)

    await set_my_commands(registry.menu())
    me = await get_me()
    logger.info("Bot info retrieved", extra={"bot_id": me.get("id"), "bot_username": me.get("username")})
    if app.bot_username is None and me.get("username"):
        app.bot_username = me["username"]

    in_flight: set[asyncio.Task] = set()
    offset: int | None = None

    logger.info("Bot is running. Polling for updates...", extra={"environment": app.environment})
    try:
        while not stop.is_set():
            poll = asyncio.create_task(get_updates(offset))
            stopper = asyncio.create_task(stop.wait())
            done, _ = await asyncio.wait({poll, stopper}, return_when=asyncio.FIRST_COMPLETED)
            stopper.cancel()
            if poll not in done:
                poll.cancel()
                break

            data = poll.result()
            if not data.get("ok"):
                logger.warning("getUpdates returned ok=false, retrying", extra={"api_endpoint": "getUpdates", "retry_in_s": RETRY_DELAY_S})
                await _wait_or_stop(stop, RETRY_DELAY_S)
                continue

            updates = data.get("result", [])
            if updates:
                logger.debug("Received updates", extra={"count": len(updates)})
            for update in updates:
                task = asyncio.create_task(process_update(app, update))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)
                offset = update["update_id"] + 1
    finally:
        logger.info("Shutting down, waiting for in-flight updates", extra={"in_flight": len(in_flight)})
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)
        app.close()
        logger.info("Bot stopped")
