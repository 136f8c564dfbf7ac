"""Application configuration — environment variables and derived constants.

Loads the bot credential, environment name, log level, rate-limit settings,
admin / banned id sets and the registration backend location from the
environment via ``python-dotenv``.  All values are resolved at import time
so other modules can ``from config import …`` without repeated lookups.
"""

# ── stdlib ───────────────────────────────────────────────────────────────────
import os

# ── third-party ──────────────────────────────────────────────────────────────
from dotenv import load_dotenv

# ── core ─────────────────────────────────────────────────────────────────────
from core.logger import QuantaLogger

# ── Environment bootstrap ────────────────────────────────────────────────────
load_dotenv()

logger = QuantaLogger.get_logger()

ENVIRONMENTS: tuple[str, ...] = ("development", "production", "test")


# ── Helper functions (private) ───────────────────────────────────────────────


def _parse_id_set(raw: str | None) -> frozenset[int]:
    """Parse a comma-separated string of Telegram user IDs into a frozenset.

    Handles single IDs (e.g. ``"755764114"``) and comma-separated lists
    (e.g. ``"755764114, 12345678"``).  Invalid tokens are skipped.
    """
    if not raw:
        return frozenset()
    result: set[int] = set()
    for token in raw.split(","):
        token = token.strip()
        if token:
            try:
                result.add(int(token))
            except ValueError:
                logger.warning("Skipping non-numeric id in id list", extra={"token": token})
    return frozenset(result)


def _parse_int(name: str, default: int) -> int:
    """Read a positive integer setting, falling back to *default* when malformed."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid integer setting, using default", extra={"setting": name, "raw_value": raw, "default": default})
        return default
    if value <= 0:
        logger.warning("Non-positive integer setting, using default", extra={"setting": name, "raw_value": raw, "default": default})
        return default
    return value


def _resolve_environment(raw: str | None) -> str:
    value = (raw or "development").strip().lower()
    if value not in ENVIRONMENTS:
        logger.warning("Unknown ENVIRONMENT, assuming development", extra={"raw_value": raw})
        return "development"
    return value


# ── Public constants ─────────────────────────────────────────────────────────

BOT_TOKEN: str | None = os.environ.get("BOT_TOKEN") or os.environ.get("TELEGRAM_BOT_TOKEN")
BASE_URL: str = f"https://api.telegram.org/bot{BOT_TOKEN or ''}"
BOT_USERNAME: str | None = os.environ.get("BOT_USERNAME")
ENVIRONMENT: str = _resolve_environment(os.environ.get("ENVIRONMENT") or os.environ.get("NODE_ENV"))
LOG_LEVEL: str = (os.environ.get("LOG_LEVEL") or "info").strip().lower()

RATE_LIMIT_WINDOW_MS: int = _parse_int("RATE_LIMIT_WINDOW", 60_000)
RATE_LIMIT_MAX_REQUESTS: int = _parse_int("RATE_LIMIT_MAX_REQUESTS", 20)
RATE_LIMIT_MAX_ENTRIES: int = _parse_int("RATE_LIMIT_MAX_ENTRIES", 10_000)

ADMIN_IDS: frozenset[int] = _parse_id_set(os.environ.get("ADMIN_IDS"))
BANNED_USERS: frozenset[int] = _parse_id_set(os.environ.get("BANNED_USERS"))
SUPPORT_CHAT_ID: int | None = int(os.environ["SUPPORT_CHAT_ID"]) if os.environ.get("SUPPORT_CHAT_ID", "").lstrip("-").isdigit() else None

API_BASE_URL: str = os.environ.get("API_BASE_URL", "http://localhost:4000/api")
API_TIMEOUT_MS: int = _parse_int("API_TIMEOUT", 10_000)
MINI_APP_URL: str = os.environ.get("MINI_APP_URL", "https://app.ton-quant.com")


# ── Startup diagnostics ─────────────────────────────────────────────────────

if BOT_TOKEN:
    logger.info("Config loaded — BOT_TOKEN is set, BASE_URL ready", extra={"environment": ENVIRONMENT})
else:
    logger.warning("Config loaded — BOT_TOKEN is NOT set", extra={"environment": ENVIRONMENT})

if ADMIN_IDS:
    logger.info("ADMIN_IDS loaded", extra={"admin_count": len(ADMIN_IDS)})
else:
    logger.warning("No ADMIN_IDS configured in environment")

logger.info(
    "Rate limit configured",
    extra={"window_ms": RATE_LIMIT_WINDOW_MS, "max_requests": RATE_LIMIT_MAX_REQUESTS},
)
