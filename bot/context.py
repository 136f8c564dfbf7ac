"""Application context — the state one bot process owns.

Everything handlers need is injected here instead of living in module
globals: the session store, the rate limiter, the privileged and banned id
sets and the backend client.  :func:`build_context` wires it from
:mod:`config`; tests build their own with a fake clock.
"""

import dataclasses

import config
from core.clock import Clock, now_ms
from core.rate_limiter import RateLimiter
from core.session import SessionStore
from services.backend import BackendClient


@dataclasses.dataclass
class AppContext:
    sessions: SessionStore
    limiter: RateLimiter
    backend: BackendClient
    admin_ids: frozenset[int] = frozenset()
    banned_ids: frozenset[int] = frozenset()
    support_chat_id: int | None = None
    environment: str = "development"
    mini_app_url: str = "https://app.ton-quant.com"
    bot_username: str | None = None
    clock: Clock = now_ms
    started_at: int = dataclasses.field(default_factory=now_ms)

    def is_admin(self, user_id: int) -> bool:
        return user_id in self.admin_ids

    def is_banned(self, user_id: int) -> bool:
        return user_id in self.banned_ids

    def is_addressed_to_me(self, target: str | None) -> bool:
        """Whether a command suffix such as ``@QuantaBot`` names this bot.

        Unaddressed commands are always ours; while the username is unknown
        every suffix is accepted.
        """
        if target is None or self.bot_username is None:
            return True
        return target.lower() == self.bot_username.lower()

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def uptime_ms(self) -> int:
        return max(0, self.clock() - self.started_at)

    def close(self) -> None:
        """Release in-memory state at shutdown."""
        self.sessions.clear()
        self.limiter.clear()


def build_context(clock: Clock = now_ms) -> AppContext:
    """Create the process context from the resolved :mod:`config` values."""
    return AppContext(
        sessions=SessionStore(clock=clock),
        limiter=RateLimiter(
            config.RATE_LIMIT_WINDOW_MS,
            config.RATE_LIMIT_MAX_REQUESTS,
            clock=clock,
            max_entries=config.RATE_LIMIT_MAX_ENTRIES,
        ),
        backend=BackendClient(config.API_BASE_URL, config.API_TIMEOUT_MS),
        admin_ids=config.ADMIN_IDS,
        banned_ids=config.BANNED_USERS,
        support_chat_id=config.SUPPORT_CHAT_ID,
        environment=config.ENVIRONMENT,
        mini_app_url=config.MINI_APP_URL,
        bot_username=(config.BOT_USERNAME or "").lstrip("@") or None,
        clock=clock,
        started_at=clock(),
    )
