"""End-to-end tests for the update pipeline in bot.dispatcher."""

import asyncio
import sys
import os
from unittest.mock import patch, AsyncMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bot import messages
from bot.dispatcher import process_update, run
from core.errors import ConfigurationError, ErrorKind, NetworkError
from core.session import UserState

ADMIN_ID = 100
BANNED_ID = 666
USER_ID = 555
CHAT_ID = 1000


def _make_update(user_id: int, text: str | None = None, chat_id: int = CHAT_ID, update_id: int = 1, **content) -> dict:
    """Build a raw message update as Telegram delivers it."""
    message = {
        "message_id": 1,
        "date": 0,
        "chat": {"id": chat_id, "type": "private"},
        "from": {"id": user_id, "is_bot": False, "first_name": f"User{user_id}", "language_code": "es"},
        **content,
    }
    if text is not None:
        message["text"] = text
    return {"update_id": update_id, "message": message}


def _make_callback_update(user_id: int, data: str, chat_id: int = CHAT_ID) -> dict:
    return {
        "update_id": 2,
        "callback_query": {
            "id": "cb123",
            "from": {"id": user_id, "is_bot": False, "first_name": f"User{user_id}"},
            "chat_instance": "test",
            "message": {"message_id": 10, "date": 0, "chat": {"id": chat_id, "type": "private"}},
            "data": data,
        },
    }


@pytest.fixture()
def sends():
    """Patch send_message everywhere the pipeline can reply from."""
    with patch("bot.dispatcher.send_message", new_callable=AsyncMock) as dispatcher, \
            patch("bot.handlers.send_message", new_callable=AsyncMock) as handlers, \
            patch("bot.error_boundary.send_message", new_callable=AsyncMock) as boundary:
        yield dispatcher, handlers, boundary


# ── Gates ────────────────────────────────────────────────────────────────────


class TestUserValidation:
    """Updates without a user or from banned users never reach a handler."""

    @pytest.mark.asyncio
    async def test_banned_user_gets_no_session(self, app, sends) -> None:
        dispatcher, handlers, _ = sends
        await process_update(app, _make_update(BANNED_ID, "/help"))

        dispatcher.assert_awaited_once_with(CHAT_ID, messages.BANNED)
        handlers.assert_not_called()
        assert BANNED_ID not in app.sessions

    @pytest.mark.asyncio
    async def test_update_without_identity_ignored(self, app, sends) -> None:
        dispatcher, handlers, boundary = sends
        await process_update(app, {"update_id": 3, "channel_post": {"message_id": 1, "chat": {"id": -100}}})

        for mock in (dispatcher, handlers, boundary):
            mock.assert_not_called()
        assert len(app.sessions) == 0


class TestRateLimitGate:
    """M=20 per 60s: the 21st update is throttled, the window then resets."""

    @pytest.mark.asyncio
    async def test_twenty_first_request_throttled(self, app, sends) -> None:
        dispatcher, handlers, _ = sends
        for i in range(21):
            await process_update(app, _make_update(USER_ID, "/help", update_id=i))

        assert handlers.await_count == 20
        dispatcher.assert_awaited_once_with(CHAT_ID, messages.RATE_LIMITED)
        assert app.sessions.get(USER_ID).message_count == 21

    @pytest.mark.asyncio
    async def test_window_rollover(self, app, sends, clock) -> None:
        dispatcher, handlers, _ = sends
        for i in range(21):
            await process_update(app, _make_update(USER_ID, "/help", update_id=i))
        clock.advance(60_000)
        await process_update(app, _make_update(USER_ID, "/help", update_id=99))

        assert handlers.await_count == 21
        assert app.limiter.window(USER_ID).count == 1

    @pytest.mark.asyncio
    async def test_concurrent_updates_same_user(self, app, sends) -> None:
        _, handlers, _ = sends
        await asyncio.gather(*(process_update(app, _make_update(USER_ID, "hi", update_id=i)) for i in range(25)))

        assert handlers.await_count == 20
        assert app.sessions.get(USER_ID).message_count == 25


# ── Command routing ──────────────────────────────────────────────────────────


class TestCommandRouting:
    @pytest.mark.asyncio
    async def test_unknown_command(self, app, sends) -> None:
        dispatcher, handlers, _ = sends
        await process_update(app, _make_update(USER_ID, "/rm_rf"))

        handlers.assert_not_called()
        assert dispatcher.call_args[0] == (CHAT_ID, messages.UNKNOWN_COMMAND)
        markup = dispatcher.call_args[1]["reply_markup"]
        assert markup.inline_keyboard[0][0].callback_data == "action:help"

    @pytest.mark.asyncio
    async def test_bot_mention_suffix(self, app, sends) -> None:
        _, handlers, _ = sends
        await process_update(app, _make_update(USER_ID, "/Help@QuantaBot"))
        assert handlers.call_args[0][1] == messages.HELP

    @pytest.mark.asyncio
    async def test_command_for_another_bot_ignored(self, app, sends) -> None:
        dispatcher, handlers, _ = sends
        app.bot_username = "QuantaBot"
        await process_update(app, _make_update(USER_ID, "/help@OtherBot"))

        handlers.assert_not_called()
        dispatcher.assert_not_called()

    @pytest.mark.asyncio
    async def test_command_for_this_bot_is_case_insensitive(self, app, sends) -> None:
        _, handlers, _ = sends
        app.bot_username = "QuantaBot"
        await process_update(app, _make_update(USER_ID, "/help@quantabot"))
        assert handlers.call_args[0][1] == messages.HELP

    @pytest.mark.asyncio
    async def test_admin_command_denied_without_state_change(self, app, sends) -> None:
        dispatcher, handlers, _ = sends
        await process_update(app, _make_update(USER_ID, "/broadcast hello"))

        handlers.assert_not_called()
        dispatcher.assert_awaited_once_with(CHAT_ID, messages.PERMISSION_DENIED)
        session = app.sessions.get(USER_ID)
        assert session.user_state is UserState.IDLE
        assert session.extras == {}

    @pytest.mark.asyncio
    async def test_admin_command_allowed_for_admin(self, app, sends) -> None:
        _, handlers, _ = sends
        await process_update(app, _make_update(ADMIN_ID, "/stats"))
        assert "Bot Statistics" in handlers.call_args[0][1]

    @pytest.mark.asyncio
    async def test_debug_hidden_outside_development(self, app, sends) -> None:
        dispatcher, handlers, _ = sends
        app.environment = "production"
        await process_update(app, _make_update(ADMIN_ID, "/debug"))

        handlers.assert_not_called()
        assert dispatcher.call_args[0][1] == messages.UNKNOWN_COMMAND

    @pytest.mark.asyncio
    async def test_touch_copies_profile(self, app, sends) -> None:
        await process_update(app, _make_update(USER_ID, "/about"))
        session = app.sessions.get(USER_ID)
        assert session.first_name == f"User{USER_ID}"
        assert session.language_code == "es"
        assert session.message_count == 1

    @pytest.mark.asyncio
    async def test_first_contact_start_prompts_for_inviter(self, app, sends, backend, clock) -> None:
        _, handlers, _ = sends
        await process_update(app, _make_update(42, "/start"))

        session = app.sessions.get(42)
        assert session.joined_at == clock()
        assert session.message_count == 1
        assert handlers.call_args[0] == (CHAT_ID, messages.ENTER_INVITER)
        backend.sign_up.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_then_text_registers(self, app, sends, backend) -> None:
        await process_update(app, _make_update(USER_ID, "/start", update_id=1))
        assert app.sessions.get(USER_ID).user_state is UserState.WAITING_INPUT

        await process_update(app, _make_update(USER_ID, "4242", update_id=2))
        backend.sign_up.assert_awaited_once_with("4242", USER_ID)
        assert app.sessions.get(USER_ID).user_state is UserState.IDLE


# ── Other update kinds ───────────────────────────────────────────────────────


class TestOtherRouting:
    @pytest.mark.asyncio
    async def test_callback_routed(self, app, sends) -> None:
        with patch("bot.callbacks.answer_callback_query", new_callable=AsyncMock) as answer, \
                patch("bot.callbacks.edit_message_text", new_callable=AsyncMock) as edit:
            await process_update(app, _make_callback_update(USER_ID, "bogus:verb"))

        answer.assert_awaited_once_with("cb123")
        assert edit.call_args[0][2] == messages.UNKNOWN_ACTION
        assert app.sessions.get(USER_ID).message_count == 1

    @pytest.mark.asyncio
    async def test_photo_acknowledged(self, app, sends) -> None:
        _, handlers, _ = sends
        photo = [{"file_id": "a", "file_unique_id": "b", "width": 1, "height": 1}]
        await process_update(app, _make_update(USER_ID, photo=photo))
        assert handlers.call_args[0][1] == messages.MEDIA_REPLIES["photo"]

    @pytest.mark.asyncio
    async def test_unsupported_content_ignored(self, app, sends) -> None:
        dispatcher, handlers, boundary = sends
        await process_update(app, _make_update(USER_ID, location={"latitude": 1.0, "longitude": 2.0}))

        for mock in (dispatcher, handlers, boundary):
            mock.assert_not_called()
        assert app.sessions.get(USER_ID).message_count == 1


# ── Error boundary integration ───────────────────────────────────────────────


class TestErrorBoundary:
    """Handler failures become one apology reply; severe ones page the admins."""

    @pytest.mark.asyncio
    async def test_unknown_failure_replies_and_notifies(self, app, sends) -> None:
        _, handlers, boundary = sends
        handlers.side_effect = RuntimeError("boom")
        await process_update(app, _make_update(USER_ID, "/help"))

        recipients = [c[0][0] for c in boundary.call_args_list]
        assert recipients == [CHAT_ID, ADMIN_ID]
        assert boundary.call_args_list[0][0][1] == messages.ERROR_REPLIES[ErrorKind.UNKNOWN_ERROR]
        assert "boom" in boundary.call_args_list[1][0][1]

    @pytest.mark.asyncio
    async def test_network_failure_not_escalated(self, app, sends) -> None:
        _, handlers, boundary = sends
        handlers.side_effect = NetworkError("telegram unreachable")
        await process_update(app, _make_update(USER_ID, "/help"))

        boundary.assert_awaited_once()
        assert boundary.call_args[0][1] == messages.ERROR_REPLIES[ErrorKind.NETWORK_ERROR]

    @pytest.mark.asyncio
    async def test_failed_error_reply_is_swallowed(self, app, sends) -> None:
        _, handlers, boundary = sends
        handlers.side_effect = RuntimeError("boom")
        boundary.side_effect = NetworkError("still down")

        await process_update(app, _make_update(USER_ID, "/help"))

        assert boundary.await_count == 2


# ── Polling loop ─────────────────────────────────────────────────────────────


class TestRun:
    @pytest.mark.asyncio
    async def test_missing_token(self, app) -> None:
        with patch("bot.dispatcher.BOT_TOKEN", None):
            with pytest.raises(ConfigurationError):
                await run(app)

    @pytest.mark.asyncio
    async def test_processes_updates_then_stops(self, app, sends) -> None:
        stop = asyncio.Event()
        batches = [
            {"ok": True, "result": [_make_update(USER_ID, "/help", update_id=7)]},
        ]

        async def fake_get_updates(offset):
            if batches:
                return batches.pop(0)
            stop.set()
            return {"ok": True, "result": []}

        with patch("bot.dispatcher.BOT_TOKEN", "123:abc"), \
                patch("bot.dispatcher.set_my_commands", new_callable=AsyncMock) as set_commands, \
                patch("bot.dispatcher.get_me", new_callable=AsyncMock, return_value={"id": 1, "username": "QuantaBot"}), \
                patch("bot.dispatcher.get_updates", side_effect=fake_get_updates) as get_updates:
            await run(app, stop=stop)

        set_commands.assert_awaited_once()
        assert app.bot_username == "QuantaBot"
        assert get_updates.call_args_list[1][0][0] == 8
        _, handlers, _ = sends
        assert handlers.call_args[0][1] == messages.HELP
        assert len(app.sessions) == 0


class TestShutdown:
    """Stopping must release the process within one short long-poll."""

    def test_stop_releases_process_within_poll_timeout(self, app) -> None:
        import threading
        import time
        from unittest.mock import MagicMock

        from bot.telegram import POLL_HTTP_GRACE_S, POLL_TIMEOUT_S

        polling = threading.Event()

        def held_long_poll(url, params=None, timeout=None):
            # Telegram holds the request for the requested poll timeout.
            polling.set()
            time.sleep(params["timeout"])
            response = MagicMock()
            response.json.return_value = {"ok": True, "result": []}
            return response

        async def scenario() -> float:
            stop = asyncio.Event()

            async def stop_when_polling() -> float:
                while not polling.is_set():
                    await asyncio.sleep(0.01)
                stop.set()
                return time.monotonic()

            stopper = asyncio.create_task(stop_when_polling())
            await run(app, stop=stop)
            return await stopper

        with patch("bot.dispatcher.BOT_TOKEN", "123:abc"), \
                patch("bot.dispatcher.set_my_commands", new_callable=AsyncMock), \
                patch("bot.dispatcher.get_me", new_callable=AsyncMock, return_value={"id": 1, "username": "QuantaBot"}), \
                patch("bot.telegram.requests.get", side_effect=held_long_poll) as mock_get:
            stopped_at = asyncio.run(scenario())
            released_after = time.monotonic() - stopped_at

        assert POLL_TIMEOUT_S <= 5
        assert mock_get.call_args[1]["timeout"] == POLL_TIMEOUT_S + POLL_HTTP_GRACE_S
        assert released_after < POLL_TIMEOUT_S + 1
