"""User-facing message templates (HTML parse mode)."""

from core.errors import ErrorKind

WELCOME = """🤖 <b>Welcome to the Bot!</b>

Hello! 👋 I'm here to help you.

💡 <b>Available commands:</b>
/help - Show help information
/settings - Bot settings
/about - About this bot

🚀 <b>Get started with /help</b>"""

HELP = """<b>🛠 Bot Commands:</b>

/start - Start the bot
/help - Show this help
/settings - Bot settings
/about - About this bot
/cancel - Cancel operation

<b>💡 Tips:</b>
• Use buttons for navigation
• Type /cancel to stop any operation"""

ABOUT = """<b>🤖 About This Bot</b>

A Telegram bot with:

✅ Rate limiting
✅ Session management
✅ Error handling
✅ Conversation flows"""

SETTINGS_MENU = """<b>⚙️ Bot Settings</b>

Current settings:
• Language: {language}
• Notifications: {notifications}

Use the buttons below to change settings:"""

LANGUAGE_MENU = "🌐 <b>Language Settings</b>\n\nSelect your preferred language:"
LANGUAGE_CHANGED = "✅ Language changed to {language}"
NOTIFICATIONS_TOGGLED = "🔔 <b>Notifications</b>\n\nNotifications are now <b>{state}</b>."

ENTER_INVITER = "Please enter your inviter ID"
CANCELLED = "✅ Operation cancelled."
INPUT_RECEIVED = "✅ Input received! Use /cancel to stop or continue with your action."
TEXT_RECEIVED = "💬 I received your message! Use /help to see what I can do."

RATE_LIMITED = "⚠️ Too many requests! Please wait before sending another command."
BANNED = "🚫 You are banned from using this bot."
UNKNOWN_COMMAND = "❓ Unknown command. Use /help to see available commands."
UNKNOWN_ACTION = "❓ Unknown action. Please try again."
PERMISSION_DENIED = "❌ You don't have permission to use this command."
RETRY = "🔄 Please try your last action again."
SUPPORT = "📞 <b>Support</b>\n\nIf you need help, please contact the administrators."

BROADCAST_USAGE = "Please provide a message to broadcast.\n\nUsage: /broadcast &lt;message&gt;"
BROADCAST_PREVIEW = "📢 <b>Broadcast Preview:</b>\n\n{text}\n\n<i>This would be sent to all users.</i>"
BROADCAST_SENT = "✅ <b>Broadcast Sent</b>\n\nMessage has been sent to all users."
BROADCAST_MISSING = "❓ There is no broadcast waiting for confirmation."
BROADCAST_STALE = "⌛ This preview is out of date. Please confirm the latest broadcast preview."

STATS = """📊 <b>Bot Statistics</b>

👥 <b>Users:</b>
• Total: {total_users}
• Active (24h): {active_users}

💬 <b>Messages:</b>
• Total processed: {total_messages}

🕒 <b>System:</b>
• Uptime: {hours}h {minutes}m
• Tracked rate windows: {rate_windows}

<i>Last updated: {updated}</i>"""

LOGS = """📋 <b>Recent Logs</b>

{lines}

<i>For detailed logs, check the server console.</i>"""
LOGS_EMPTY = "No recent log entries"

DEBUG = "🐛 <b>Debug Info:</b>\n\n<pre>{payload}</pre>"

MEDIA_REPLIES: dict[str, str] = {
    "photo": "📸 Nice photo! I can see it but I don't process images yet.",
    "document": "📄 Document received! I don't process files yet, but thanks for sharing.",
    "sticker": "😄 Great sticker! 👍",
    "voice": "🎤 Voice message received! I don't process audio yet.",
}

ERROR_REPLIES: dict[ErrorKind, str] = {
    ErrorKind.RATE_LIMIT_EXCEEDED: RATE_LIMITED,
    ErrorKind.USER_BANNED: BANNED,
    ErrorKind.NETWORK_ERROR: "🌐 Network error. Please try again in a moment.",
    ErrorKind.CONFIGURATION_ERROR: "⚙️ Bot configuration error. Please contact support.",
    ErrorKind.UNKNOWN_ERROR: "❌ An error occurred. Please try again later.",
}

ADMIN_ALERT = """🚨 <b>Bot Error Alert</b>

<b>Type:</b> {kind}
<b>Message:</b> {error}
<b>User ID:</b> {user_id}
<b>Chat ID:</b> {chat_id}
<b>Time:</b> {timestamp}"""

LANGUAGES: dict[str, str] = {
    "en": "🇺🇸 English",
    "ru": "🇷🇺 Русский",
    "es": "🇪🇸 Español",
    "fr": "🇫🇷 Français",
}
