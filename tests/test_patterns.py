"""Tests for pattern-based command matching."""

import re
from unittest.mock import MagicMock

from guildwire.commands.base import Command
from guildwire.patterns import match


async def _noop(message, args, from_pattern):
    return None


def _command(name, patterns=None, member=None):
    return Command.create(
        _noop,
        name=name,
        module="test",
        member_name=member or name,
        description=f"{name} command",
        patterns=patterns,
    )


def test_no_patterns_no_match():
    assert match([_command("plain")], "anything") is None


def test_first_registered_command_wins():
    first = _command("first", patterns=[r"hello"])
    second = _command("second", patterns=[r"hello"])
    found = match([first, second], "well hello there")
    assert found.command is first


def test_patterns_tried_in_declared_order():
    cmd = _command("doc", patterns=[r"docs? (\w+)", r"(\w+) docs?"])
    found = match([cmd], "doc react")
    assert found.args == ["react"]
    assert found.match.re.pattern == r"docs? (\w+)"


def test_search_matches_anywhere_in_text():
    cmd = _command("issue", patterns=[r"#(\d+)"])
    found = match([cmd], "see #1234 for details")
    assert found.args == ["1234"]


def test_unmatched_optional_group_becomes_empty_string():
    cmd = _command("roll", patterns=[r"^roll(?: (\d+))?$"])
    found = match([cmd], "roll")
    assert found.args == [""]


def test_no_groups_gives_empty_args():
    cmd = _command("ping", patterns=[r"^ping$"])
    assert match([cmd], "ping").args == []


def test_string_patterns_are_compiled():
    cmd = _command("x", patterns="abc")
    assert isinstance(cmd.patterns[0], re.Pattern)


def test_broken_pattern_is_skipped():
    broken = MagicMock()
    broken.name = "broken"
    bad_pattern = MagicMock()
    bad_pattern.search.side_effect = TypeError("bad")
    broken.patterns = (bad_pattern,)
    good = _command("good", patterns=[r"hi"])
    found = match([broken, good], "hi")
    assert found.command is good
