"""Per-user session records and the in-process session store.

A :class:`Session` is a fixed record; experimental fields go into
``Session.extras`` instead of ad-hoc attributes.  All writes go through
:class:`SessionStore`, which serialises them per user and enforces the
legal :class:`UserState` transitions.
"""

import dataclasses
import enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from core.clock import Clock, now_ms
from core.errors import IllegalStateTransition
from core.locks import KeyedLock
from core.logger import QuantaLogger

logger = QuantaLogger.get_logger()

DEFAULT_LANGUAGE = "en"


class UserState(str, enum.Enum):
    IDLE = "idle"
    WAITING_INPUT = "waiting_input"
    IN_CONVERSATION = "in_conversation"


# Legal moves, keyed by current state.
TRANSITIONS: dict[UserState, frozenset[UserState]] = {
    UserState.IDLE: frozenset({UserState.IDLE, UserState.WAITING_INPUT, UserState.IN_CONVERSATION}),
    UserState.WAITING_INPUT: frozenset({UserState.IDLE, UserState.WAITING_INPUT}),
    UserState.IN_CONVERSATION: frozenset({UserState.IDLE, UserState.IN_CONVERSATION}),
}


class Session(BaseModel):
    """State kept for one end-user for the lifetime of the process."""

    user_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    language_code: str = DEFAULT_LANGUAGE
    user_state: UserState = UserState.IDLE
    pending_action: Optional[str] = None
    message_count: int = 0
    joined_at: int
    last_activity: int
    notifications_enabled: bool = True
    extras: dict[str, Any] = Field(default_factory=dict)

    model_config = {"validate_assignment": True}


@dataclasses.dataclass(frozen=True, slots=True)
class SessionStats:
    total_users: int
    active_users: int
    total_messages: int


class SessionStore:
    """In-memory mapping of user id to :class:`Session`.

    The store is owned by the application context and passed to handlers;
    nothing here is module-global, so each test builds its own store.
    """

    def __init__(self, *, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._sessions: dict[int, Session] = {}
        self._locks = KeyedLock()

    def _materialise(self, user_id: int) -> Session:
        session = self._sessions.get(user_id)
        if session is None:
            now = self._clock()
            session = Session(user_id=user_id, joined_at=now, last_activity=now)
            self._sessions[user_id] = session
            logger.info("Session created", extra={"user_id": user_id, "joined_at": now})
        return session

    async def get_or_create(self, user_id: int) -> Session:
        """Return the user's session, creating it with defaults on first contact."""
        async with self._locks.hold(user_id):
            return self._materialise(user_id)

    def get(self, user_id: int) -> Session | None:
        return self._sessions.get(user_id)

    async def touch(self, user_id: int, profile: Any = None) -> Session:
        """Record one validated update for *user_id*.

        Copies contact metadata from *profile* (a Telegram user model or
        ``None``), increments ``message_count`` and stamps ``last_activity``.
        The language code is only taken from Telegram on first contact so a
        language chosen in settings is not overwritten.
        """
        async with self._locks.hold(user_id):
            first_contact = user_id not in self._sessions
            session = self._materialise(user_id)
            if profile is not None:
                session.username = getattr(profile, "username", None)
                session.first_name = getattr(profile, "first_name", None)
                session.last_name = getattr(profile, "last_name", None)
                language = getattr(profile, "language_code", None)
                if first_contact and language:
                    session.language_code = language
            session.message_count += 1
            session.last_activity = self._clock()
            logger.debug(
                "Session touched",
                extra={"user_id": user_id, "message_count": session.message_count},
            )
            return session

    async def update(self, user_id: int, mutator: Callable[[Session], None]) -> Session:
        """Apply *mutator* to the user's session while holding the user's lock."""
        async with self._locks.hold(user_id):
            session = self._materialise(user_id)
            mutator(session)
            return session

    async def transition(
        self,
        user_id: int,
        target: UserState,
        pending_action: str | None = None,
    ) -> Session:
        """Move the session to *target* if the transition table allows it.

        Raises:
            IllegalStateTransition: If ``current -> target`` is not listed in
                :data:`TRANSITIONS`.  The session is left untouched.
        """
        async with self._locks.hold(user_id):
            session = self._materialise(user_id)
            current = session.user_state
            if target not in TRANSITIONS[current]:
                logger.warning(
                    "Rejected session transition",
                    extra={"user_id": user_id, "from_state": current.value, "to_state": target.value},
                )
                raise IllegalStateTransition(user_id, current.value, target.value)
            session.user_state = target
            session.pending_action = None if target is UserState.IDLE else pending_action
            logger.info(
                "Session transition",
                extra={
                    "user_id": user_id,
                    "from_state": current.value,
                    "to_state": target.value,
                    "pending_action": session.pending_action,
                },
            )
            return session

    async def reset(self, user_id: int) -> Session:
        """Return the session to idle from any state (cancel)."""
        return await self.transition(user_id, UserState.IDLE)

    def stats(self, active_within_ms: int) -> SessionStats:
        """Summarise the store; *active* means activity within the last window."""
        cutoff = self._clock() - active_within_ms
        sessions = list(self._sessions.values())
        return SessionStats(
            total_users=len(sessions),
            active_users=sum(1 for s in sessions if s.last_activity >= cutoff),
            total_messages=sum(s.message_count for s in sessions),
        )

    def clear(self) -> None:
        """Drop every session (process teardown)."""
        count = len(self._sessions)
        self._sessions.clear()
        logger.info("Session store cleared", extra={"session_count": count})

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions
