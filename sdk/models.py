"""Pydantic models for the Telegram Bot API objects the bot reads and writes.

Only the fields the dispatcher and handlers touch are declared; unknown
fields in incoming JSON are ignored.  ``from`` is exposed as ``from_field``
because ``from`` is a Python keyword.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    """A Telegram user or bot."""

    id: int
    is_bot: bool = False
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None
    is_premium: Optional[bool] = None

    model_config = {"populate_by_name": True}


class Chat(BaseModel):
    """A private chat, group, supergroup or channel."""

    id: int
    type: str
    title: Optional[str] = None
    username: Optional[str] = None

    model_config = {"populate_by_name": True}


class PhotoSize(BaseModel):
    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Document(BaseModel):
    file_id: str
    file_unique_id: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Sticker(BaseModel):
    file_id: str
    file_unique_id: str
    emoji: Optional[str] = None
    set_name: Optional[str] = None

    model_config = {"populate_by_name": True}


class Voice(BaseModel):
    file_id: str
    file_unique_id: str
    duration: int
    mime_type: Optional[str] = None

    model_config = {"populate_by_name": True}


class Message(BaseModel):
    """An incoming message.  At most one of the content fields is usually set."""

    message_id: int
    date: int
    chat: Chat
    from_field: Optional[User] = Field(None, alias="from")
    text: Optional[str] = None
    caption: Optional[str] = None
    photo: Optional[List[PhotoSize]] = None
    document: Optional[Document] = None
    sticker: Optional[Sticker] = None
    voice: Optional[Voice] = None

    model_config = {"populate_by_name": True}


class CallbackQuery(BaseModel):
    """A button press on an inline keyboard.

    ``message`` is absent when the button belonged to an inline-mode message.
    """

    id: str
    from_field: User = Field(..., alias="from")
    chat_instance: Optional[str] = None
    message: Optional[Message] = None
    inline_message_id: Optional[str] = None
    data: Optional[str] = None

    model_config = {"populate_by_name": True}


class Update(BaseModel):
    """One incoming update.  The bot reacts to ``message`` and ``callback_query``."""

    update_id: int
    message: Optional[Message] = None
    edited_message: Optional[Message] = None
    callback_query: Optional[CallbackQuery] = None

    model_config = {"populate_by_name": True}


class InlineKeyboardButton(BaseModel):
    """One inline button: exactly one of ``callback_data`` and ``url`` is set."""

    text: str
    callback_data: Optional[str] = None
    url: Optional[str] = None

    model_config = {"populate_by_name": True}


class InlineKeyboardMarkup(BaseModel):
    inline_keyboard: List[List[InlineKeyboardButton]]

    model_config = {"populate_by_name": True}


class BotCommand(BaseModel):
    """Entry for ``setMyCommands``."""

    command: str
    description: str

    model_config = {"populate_by_name": True}
