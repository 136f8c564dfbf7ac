"""Tests for the command registry and command parsing."""

import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import bot.handlers  # noqa: F401  (registers the commands)
from bot.registry import CommandRegistry, command_target, parse_command, registry


class TestParseCommand:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("/start", ("/start", "")),
            ("/start 12345", ("/start", "12345")),
            ("/START@QuantaBot  abc def ", ("/start", "abc def")),
            ("/broadcast hello world", ("/broadcast", "hello world")),
            ("hello", ("", "")),
            ("/", ("", "")),
            ("", ("", "")),
        ],
    )
    def test_parse(self, text, expected) -> None:
        assert parse_command(text) == expected


class TestCommandTarget:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("/help", None),
            ("/help@QuantaBot", "QuantaBot"),
            ("/start@OtherBot 42", "OtherBot"),
            ("/help@", None),
            ("hello @QuantaBot", None),
        ],
    )
    def test_target(self, text, expected) -> None:
        assert command_target(text) == expected


class TestRegistry:
    """The registry is the single allow-list of commands."""

    def test_singleton(self) -> None:
        assert CommandRegistry() is registry

    def test_public_commands_registered(self) -> None:
        for command in ("/start", "/help", "/settings", "/about", "/cancel"):
            entry = registry.lookup(command, development=False)
            assert entry is not None
            assert entry.admin_only is False

    def test_admin_commands_flagged(self) -> None:
        for command in ("/stats", "/broadcast", "/logs"):
            assert registry.lookup(command, development=False).admin_only is True

    def test_unknown_command(self) -> None:
        assert registry.lookup("/rm_rf", development=True) is None

    def test_debug_only_in_development(self) -> None:
        assert registry.lookup("/debug", development=False) is None
        entry = registry.lookup("/debug", development=True)
        assert entry is not None
        assert entry.admin_only is True

    def test_menu_lists_public_commands_only(self) -> None:
        names = [c.command for c in registry.menu()]
        assert names[:2] == ["start", "help"]
        assert "stats" not in names
        assert "debug" not in names
        assert all(c.description for c in registry.menu())
