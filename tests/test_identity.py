"""Tests for identity and chat resolution on raw updates."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.identity import get_chat_id, get_identity


class TestGetIdentity:
    def test_message_sender(self) -> None:
        update = {"update_id": 1, "message": {"from": {"id": 7}, "chat": {"id": 70}}}
        assert get_identity(update) == 7
        assert get_chat_id(update) == 70

    def test_callback_sender_wins(self) -> None:
        update = {
            "update_id": 1,
            "callback_query": {"id": "q", "from": {"id": 8}, "message": {"chat": {"id": 80}}},
        }
        assert get_identity(update) == 8
        assert get_chat_id(update) == 80

    def test_inline_callback_has_no_chat(self) -> None:
        update = {"update_id": 1, "callback_query": {"id": "q", "from": {"id": 8}}}
        assert get_identity(update) == 8
        assert get_chat_id(update) is None

    def test_channel_post_has_no_identity(self) -> None:
        update = {"update_id": 1, "channel_post": {"chat": {"id": -100}}}
        assert get_identity(update) is None

    def test_message_without_sender(self) -> None:
        update = {"update_id": 1, "message": {"chat": {"id": -100}}}
        assert get_identity(update) is None
