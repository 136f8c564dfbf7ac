from core.logger import QuantaLogger

logger = QuantaLogger.get_logger()


def get_identity(update: dict) -> int | None:
    """Extract the end-user id from a raw Telegram update.

    Only message and callback-query updates carry a user the bot talks to;
    the id comes from their ``from`` object.  Channel posts and updates
    without a sender resolve to ``None`` and are ignored upstream.
    """
    callback_query = update.get("callback_query")
    if callback_query:
        from_user = callback_query.get("from") or {}
        identity = from_user.get("id")
        logger.debug("Resolved callback identity", extra={"identity": identity, "source": "callback_query"})
        return identity

    message = update.get("message")
    if not message:
        logger.debug("No user-bearing object in update", extra={"update_id": update.get("update_id")})
        return None

    from_user = message.get("from")
    if from_user:
        identity = from_user.get("id")
        logger.debug("Resolved message identity", extra={"identity": identity, "source": "message"})
        return identity

    logger.warning("Could not resolve identity from update", extra={"update_id": update.get("update_id")})
    return None


def get_chat_id(update: dict) -> int | None:
    """Return the chat a reply to *update* should go to, if any.

    Callback queries from inline messages have no chat; the caller then
    falls back to a private message to the user.
    """
    callback_query = update.get("callback_query")
    if callback_query:
        chat = (callback_query.get("message") or {}).get("chat") or {}
        return chat.get("id")
    chat = (update.get("message") or {}).get("chat") or {}
    return chat.get("id")
