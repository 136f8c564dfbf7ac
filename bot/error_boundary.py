"""Error boundary for per-update processing.

Every handler failure ends up in :func:`handle_error` exactly once.  The
failure is logged with its :class:`core.errors.ErrorKind`, the user gets a
short apology with retry/support buttons, and configuration or unknown
failures are additionally reported to the operators.  Nothing raised here
escapes: a reply or alert that cannot be delivered is logged and dropped.
"""

import html
from datetime import datetime, timezone

from bot import keyboards, messages
from bot.context import AppContext
from bot.telegram import send_message
from core.errors import SEVERE_KINDS, ErrorKind, classify
from core.identity import get_chat_id, get_identity
from core.logger import QuantaLogger

logger = QuantaLogger.get_logger()


async def handle_error(app: AppContext, update: dict, exc: BaseException) -> ErrorKind:
    """Answer a failed update and return the kind it was classified as."""
    kind = classify(exc)
    user_id = get_identity(update)
    chat_id = get_chat_id(update) or user_id

    logger.error(
        "Bot error occurred",
        exc_info=exc,
        extra={
            "error_kind": kind.value,
            "error": str(exc),
            "error_type": type(exc).__name__,
            "user_id": user_id,
            "chat_id": chat_id,
            "update_id": update.get("update_id"),
        },
    )

    if chat_id is not None:
        try:
            await send_message(chat_id, messages.ERROR_REPLIES[kind], reply_markup=keyboards.recovery())
        except Exception as reply_exc:
            logger.error(
                "Failed to send error message to user",
                extra={"original_error": str(exc), "reply_error": str(reply_exc), "user_id": user_id, "chat_id": chat_id},
            )

    if kind in SEVERE_KINDS:
        await notify_admins(app, kind, exc, user_id, chat_id)

    return kind


async def notify_admins(
    app: AppContext,
    kind: ErrorKind,
    exc: BaseException,
    user_id: int | None,
    chat_id: int | None,
) -> int:
    """Send one alert per admin id (and the support chat); return how many went out."""
    text = messages.ADMIN_ALERT.format(
        kind=kind.value,
        error=html.escape(str(exc) or type(exc).__name__),
        user_id=user_id or "Unknown",
        chat_id=chat_id or "Unknown",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    recipients = sorted(app.admin_ids)
    if app.support_chat_id is not None and app.support_chat_id not in app.admin_ids:
        recipients.append(app.support_chat_id)

    delivered = 0
    for admin_id in recipients:
        try:
            sent = await send_message(admin_id, text, parse_mode="HTML")
        except Exception as notify_exc:
            logger.error("Failed to notify admin", extra={"admin_id": admin_id, "error": str(notify_exc)})
            continue
        if sent:
            delivered += 1
        else:
            # Refused by Telegram, e.g. the admin blocked or never started the bot.
            logger.error("Failed to notify admin", extra={"admin_id": admin_id, "error": "refused by Telegram"})
    logger.info("Admins notified", extra={"error_kind": kind.value, "recipients": len(recipients), "delivered": delivered})
    return delivered
