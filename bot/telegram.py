"""Low-level Telegram Bot API helpers.

Thin async wrappers around ``requests`` for polling updates, sending and
editing messages, acknowledging callback queries and registering commands.
All blocking I/O is offloaded via :func:`asyncio.to_thread` so the event
loop is never blocked.

Transport failures are raised as :class:`core.errors.NetworkError`; non-ok
API replies are raised as :class:`sdk.exceptions.APIException` by
:func:`call_api`.  The send/edit helpers log API refusals instead of
raising them, so a stale button never turns into an error reply.
"""

import asyncio
import json

import requests

from config import BASE_URL
from core.errors import NetworkError
from core.logger import QuantaLogger
from sdk.exceptions import APIException
from sdk.models import BotCommand, InlineKeyboardMarkup

logger = QuantaLogger.get_logger()

Markup = InlineKeyboardMarkup | dict | None

# Long-poll hold time. An in-flight getUpdates thread cannot be cancelled, so
# this bounds how long shutdown waits for it.
POLL_TIMEOUT_S = 3
POLL_HTTP_GRACE_S = 2


async def make_request(method: str, url: str, **kwargs: object) -> requests.Response:
    """Run a :mod:`requests` call inside a thread to keep the event loop free.

    *method* is the HTTP verb (``"get"``, ``"post"``, …).
    """
    func = getattr(requests, method.lower())
    return await asyncio.to_thread(func, url, **kwargs)


def _dump_markup(reply_markup: Markup) -> dict | None:
    if isinstance(reply_markup, InlineKeyboardMarkup):
        return reply_markup.model_dump(exclude_none=True)
    return reply_markup


async def call_api(endpoint: str, payload: dict | None = None, timeout: int = 10) -> object:
    """POST *payload* to *endpoint* and return the ``result`` field.

    Raises:
        NetworkError: On transport-level failures.
        APIException: If the HTTP status is not 2xx or Telegram answers ``ok: false``.
    """
    try:
        response = await make_request("post", f"{BASE_URL}/{endpoint}", json=payload or {}, timeout=timeout)
    except requests.RequestException as exc:
        logger.error("Bot API request error", extra={"api_endpoint": endpoint, "error": str(exc)})
        raise NetworkError(f"{endpoint} request failed: {exc}") from exc
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not response.ok or not body.get("ok"):
        raise APIException(response.status_code, body)
    return body.get("result")


async def get_updates(offset: int | None = None) -> dict:
    """Long-poll the Telegram Bot API for new updates."""
    params: dict = {"timeout": POLL_TIMEOUT_S, "allowed_updates": json.dumps(["message", "callback_query"])}
    if offset is not None:
        params["offset"] = offset
    try:
        response = await make_request("get", f"{BASE_URL}/getUpdates", params=params, timeout=POLL_TIMEOUT_S + POLL_HTTP_GRACE_S)
        response.raise_for_status()
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            logger.error("getUpdates JSON decode error", extra={"api_endpoint": "getUpdates", "error": str(exc)})
            return {"ok": False, "result": []}
    except requests.RequestException as exc:
        logger.error("getUpdates request error", extra={"api_endpoint": "getUpdates", "error": str(exc)})
        return {"ok": False, "result": []}


async def send_message(
    chat_id: int,
    text: str,
    reply_markup: Markup = None,
    parse_mode: str | None = None,
) -> dict | None:
    """Send a text message to a Telegram chat and return the sent message.

    Optionally include an inline keyboard via *reply_markup* and/or a
    *parse_mode* (``"HTML"``, ``"Markdown"``, ``"MarkdownV2"``).  Returns
    ``None`` when Telegram refuses the message.
    """
    logger.debug("Sending message", extra={"chat_id": chat_id, "api_endpoint": "sendMessage", "text_preview": text[:80]})
    payload: dict = {"chat_id": chat_id, "text": text}
    if parse_mode is not None:
        payload["parse_mode"] = parse_mode
    markup = _dump_markup(reply_markup)
    if markup is not None:
        payload["reply_markup"] = markup
    try:
        result = await call_api("sendMessage", payload)
    except APIException as exc:
        logger.warning("sendMessage Telegram error", extra={"chat_id": chat_id, "api_endpoint": "sendMessage", "status_code": exc.status_code, "api_response": exc.response_body})
        return None
    logger.info("Message sent", extra={"chat_id": chat_id, "api_endpoint": "sendMessage"})
    return result  # type: ignore[return-value]


async def edit_message_text(
    chat_id: int,
    message_id: int,
    text: str,
    reply_markup: Markup = None,
    parse_mode: str | None = None,
) -> bool:
    """Replace the text (and keyboard) of a message the bot sent earlier.

    Returns ``False`` when Telegram refuses the edit, e.g. because the
    content is unchanged.
    """
    payload: dict = {"chat_id": chat_id, "message_id": message_id, "text": text}
    if parse_mode is not None:
        payload["parse_mode"] = parse_mode
    markup = _dump_markup(reply_markup)
    if markup is not None:
        payload["reply_markup"] = markup
    try:
        await call_api("editMessageText", payload)
    except APIException as exc:
        if "message is not modified" in exc.description:
            logger.debug("editMessageText no-op", extra={"chat_id": chat_id, "message_id": message_id})
        else:
            logger.warning("editMessageText Telegram error", extra={"chat_id": chat_id, "api_endpoint": "editMessageText", "status_code": exc.status_code, "api_response": exc.response_body})
        return False
    logger.info("Message edited", extra={"chat_id": chat_id, "message_id": message_id, "api_endpoint": "editMessageText"})
    return True


async def answer_callback_query(callback_query_id: str, text: str | None = None) -> None:
    """Acknowledge a callback query so the spinner disappears for the user."""
    payload: dict = {"callback_query_id": callback_query_id}
    if text is not None:
        payload["text"] = text
    try:
        await call_api("answerCallbackQuery", payload)
    except (APIException, NetworkError) as exc:
        logger.error("answerCallbackQuery error", extra={"api_endpoint": "answerCallbackQuery", "callback_query_id": callback_query_id, "error": str(exc)})


async def set_my_commands(commands: list[BotCommand]) -> None:
    """Publish the command menu shown by Telegram clients."""
    await call_api("setMyCommands", {"commands": [c.model_dump() for c in commands]})
    logger.info("Bot commands set", extra={"api_endpoint": "setMyCommands", "command_count": len(commands)})


async def get_me() -> dict:
    """Return the bot's own user object (validates the token)."""
    result = await call_api("getMe")
    return result if isinstance(result, dict) else {}
