"""Inline keyboard layouts.

Every callback payload here follows ``<namespace>:<verb>[:params]`` and must
be understood by :mod:`bot.callbacks`.
"""

from sdk.models import InlineKeyboardButton, InlineKeyboardMarkup


def _button(text: str, data: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=data)


def main_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [_button("⚙️ Settings", "action:settings"), _button("📋 Help", "action:help")],
        [_button("ℹ️ About", "action:about")],
    ])


def settings_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [_button("🌐 Language", "settings:language"), _button("🔔 Notifications", "settings:notifications")],
        [_button("🔙 Back", "action:main")],
    ])


def language_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [_button("🇺🇸 English", "lang:en"), _button("🇷🇺 Русский", "lang:ru")],
        [_button("🇪🇸 Español", "lang:es"), _button("🇫🇷 Français", "lang:fr")],
        [_button("🔙 Back", "action:settings")],
    ])


def back_button() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[_button("🔙 Back", "action:back")]])


def help_button() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[_button("📋 Help", "action:help")]])


def text_fallback() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [_button("📋 Help", "action:help")],
        [_button("⚙️ Settings", "action:settings")],
    ])


def recovery() -> InlineKeyboardMarkup:
    """Retry / support buttons attached to every error reply."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [_button("🔄 Try Again", "action:retry")],
        [_button("📞 Support", "action:support")],
    ])


def broadcast_confirm(stamp: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        _button("✅ Confirm", f"broadcast:confirm:{stamp}"),
        _button("❌ Cancel", "action:cancel"),
    ]])


def mini_app(url: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[InlineKeyboardButton(text="🔗 Open Mini App", url=url)]])
