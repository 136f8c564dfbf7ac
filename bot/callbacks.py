"""Callback-query handlers for inline keyboard interactions.

Payloads follow ``<namespace>:<verb>[:params...]``.  Each namespace maps to a
table of verb handlers; an unknown namespace or verb is answered with the
"unknown action" text and the main menu, never with an error.  Replies edit
the message the button belonged to, or are sent as a new message when the
button came from an inline-mode message.
"""

import dataclasses
from typing import Awaitable, Callable

from bot import keyboards, messages
from bot.context import AppContext
from bot.handlers import BROADCAST_DRAFT_KEY, BROADCAST_STAMP_KEY, abandon_flow, render_settings
from bot.telegram import Markup, answer_callback_query, edit_message_text, send_message
from core.logger import QuantaLogger
from core.session import Session, UserState
from sdk.models import CallbackQuery

logger = QuantaLogger.get_logger()

DELIMITER = ":"

# Namespaces whose buttons only admins may press.
ADMIN_NAMESPACES: frozenset[str] = frozenset({"broadcast"})


@dataclasses.dataclass(frozen=True, slots=True)
class CallbackAction:
    namespace: str
    verb: str
    params: tuple[str, ...] = ()


def parse_callback_data(data: str) -> CallbackAction:
    """Split a callback payload into namespace, verb and extra params."""
    namespace, _, rest = data.partition(DELIMITER)
    parts = rest.split(DELIMITER) if rest else []
    verb = parts[0] if parts else ""
    return CallbackAction(namespace=namespace, verb=verb, params=tuple(parts[1:]))


@dataclasses.dataclass
class CallbackContext:
    """Everything a verb handler needs to answer one button press."""
    app: AppContext
    query: CallbackQuery
    session: Session
    action: CallbackAction

    @property
    def user_id(self) -> int:
        return self.session.user_id

    async def reply(self, text: str, reply_markup: Markup = None, parse_mode: str | None = None) -> None:
        """Edit the originating message, or message the user directly."""
        message = self.query.message
        if message is not None:
            await edit_message_text(message.chat.id, message.message_id, text, reply_markup=reply_markup, parse_mode=parse_mode)
        else:
            await send_message(self.user_id, text, reply_markup=reply_markup, parse_mode=parse_mode)


VerbHandler = Callable[[CallbackContext], Awaitable[None]]


# ── action: main navigation ──────────────────────────────────────────────────


async def _show_main(ctx: CallbackContext) -> None:
    await ctx.reply(messages.WELCOME, reply_markup=keyboards.main_menu(), parse_mode="HTML")


async def _show_help(ctx: CallbackContext) -> None:
    await ctx.reply(messages.HELP, reply_markup=keyboards.main_menu(), parse_mode="HTML")


async def _show_about(ctx: CallbackContext) -> None:
    await ctx.reply(messages.ABOUT, reply_markup=keyboards.back_button(), parse_mode="HTML")


async def _show_settings(ctx: CallbackContext) -> None:
    await ctx.reply(render_settings(ctx.session), reply_markup=keyboards.settings_menu(), parse_mode="HTML")


async def _cancel(ctx: CallbackContext) -> None:
    await abandon_flow(ctx.app, ctx.user_id)
    await ctx.reply(messages.CANCELLED, reply_markup=keyboards.main_menu())


async def _retry(ctx: CallbackContext) -> None:
    await ctx.reply(messages.RETRY, reply_markup=keyboards.main_menu())


async def _support(ctx: CallbackContext) -> None:
    await ctx.reply(messages.SUPPORT, reply_markup=keyboards.back_button(), parse_mode="HTML")


# ── settings: preferences ────────────────────────────────────────────────────


async def _language_picker(ctx: CallbackContext) -> None:
    await ctx.reply(messages.LANGUAGE_MENU, reply_markup=keyboards.language_menu(), parse_mode="HTML")


async def _toggle_notifications(ctx: CallbackContext) -> None:
    def toggle(s: Session) -> None:
        s.notifications_enabled = not s.notifications_enabled

    session = await ctx.app.sessions.update(ctx.user_id, toggle)
    logger.info("Notifications toggled", extra={"user_id": ctx.user_id, "notifications_enabled": session.notifications_enabled})
    state = "enabled" if session.notifications_enabled else "disabled"
    await ctx.reply(messages.NOTIFICATIONS_TOGGLED.format(state=state), reply_markup=keyboards.settings_menu(), parse_mode="HTML")


# ── lang: language selection ─────────────────────────────────────────────────


def _set_language(code: str) -> VerbHandler:
    async def handler(ctx: CallbackContext) -> None:
        def apply(s: Session) -> None:
            s.language_code = code

        await ctx.app.sessions.update(ctx.user_id, apply)
        logger.info("Language changed", extra={"user_id": ctx.user_id, "language": code})
        await ctx.reply(messages.LANGUAGE_CHANGED.format(language=messages.LANGUAGES[code]), reply_markup=keyboards.settings_menu())
    return handler


# ── broadcast: confirmation (admin) ──────────────────────────────────────────


async def _confirm_broadcast(ctx: CallbackContext) -> None:
    """Confirm the pending broadcast draft.

    The button carries the stamp of the preview it was attached to; only the
    preview of the current draft can confirm it.  Delivery to users is not
    implemented; confirmation is logged only.
    """
    draft = ctx.session.extras.get(BROADCAST_DRAFT_KEY)
    if draft is None or ctx.session.user_state is not UserState.IN_CONVERSATION:
        await ctx.reply(messages.BROADCAST_MISSING, reply_markup=keyboards.main_menu())
        return

    stamp = ctx.action.params[0] if ctx.action.params else None
    if stamp != ctx.session.extras.get(BROADCAST_STAMP_KEY):
        logger.info("Stale broadcast confirmation", extra={"user_id": ctx.user_id, "broadcast_stamp": stamp})
        await ctx.reply(messages.BROADCAST_STALE)
        return

    await abandon_flow(ctx.app, ctx.user_id)
    logger.info("broadcast_sent", extra={"user_id": ctx.user_id, "broadcast_stamp": stamp, "text_length": len(draft)})
    await ctx.reply(messages.BROADCAST_SENT, parse_mode="HTML")


CALLBACK_ROUTES: dict[str, dict[str, VerbHandler]] = {
    "action": {
        "main": _show_main,
        "back": _show_main,
        "help": _show_help,
        "about": _show_about,
        "settings": _show_settings,
        "cancel": _cancel,
        "retry": _retry,
        "support": _support,
    },
    "settings": {
        "language": _language_picker,
        "notifications": _toggle_notifications,
    },
    "lang": {code: _set_language(code) for code in messages.LANGUAGES},
    "broadcast": {
        "confirm": _confirm_broadcast,
    },
}


async def handle_callback_query(app: AppContext, query: CallbackQuery, session: Session) -> None:
    """Dispatch one inline-button press to its verb handler."""
    data = query.data or ""
    action = parse_callback_data(data)
    user_id = session.user_id
    logger.info("Callback query", extra={"user_id": user_id, "callback_data": data})

    # Acknowledge the button press immediately so the spinner disappears.
    await answer_callback_query(query.id)

    ctx = CallbackContext(app=app, query=query, session=session, action=action)

    if action.namespace in ADMIN_NAMESPACES and not app.is_admin(user_id):
        logger.warning("Non-admin pressed admin button", extra={"user_id": user_id, "callback_data": data})
        await ctx.reply(messages.PERMISSION_DENIED)
        return

    handler = CALLBACK_ROUTES.get(action.namespace, {}).get(action.verb)
    if handler is None:
        logger.info("Unknown callback action", extra={"user_id": user_id, "callback_namespace": action.namespace, "callback_verb": action.verb})
        await ctx.reply(messages.UNKNOWN_ACTION, reply_markup=keyboards.main_menu())
        return

    await handler(ctx)
