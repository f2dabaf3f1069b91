"""Tests for the command configuration record and message models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from guildwire.models import ArgsType, CommandInfo, InboundMessage, MessageEdit, Module


def _info(**overrides):
    fields = {
        "name": "ping",
        "module": "util",
        "member_name": "ping",
        "description": "Replies with pong.",
    }
    fields.update(overrides)
    return CommandInfo(**fields)


class TestCommandInfo:

    def test_defaults(self):
        info = _info()
        assert info.aliases == ()
        assert info.usage == "ping"
        assert info.args_type is ArgsType.SINGLE
        assert info.args_count == 0
        assert info.args_single_quotes is True
        assert info.server_only is False
        assert info.patterns is None

    def test_id_and_names(self):
        info = _info(aliases=["p", "pong"])
        assert info.id == "util:ping"
        assert info.names == ("ping", "p", "pong")

    def test_names_are_lowercased(self):
        info = _info(name="Ping", aliases=["PONG"])
        assert info.name == "ping"
        assert info.aliases == ("pong",)

    def test_explicit_usage_kept(self):
        assert _info(usage="ping [target]").usage == "ping [target]"

    @pytest.mark.parametrize("bad", ["", "has space", "-leading", "émoji"])
    def test_invalid_name_rejected(self, bad):
        with pytest.raises(ValidationError):
            _info(name=bad)

    def test_missing_description_rejected(self):
        with pytest.raises(ValidationError):
            CommandInfo(name="x", module="m", member_name="x")

    def test_name_in_aliases_rejected(self):
        with pytest.raises(ValidationError, match="own name"):
            _info(aliases=["ping"])

    def test_duplicate_aliases_rejected(self):
        with pytest.raises(ValidationError):
            _info(aliases=["a", "a"])

    def test_args_count_one_with_multiple_rejected(self):
        with pytest.raises(ValidationError, match="at least 2"):
            _info(args_type=ArgsType.MULTIPLE, args_count=1)

    def test_negative_args_count_rejected(self):
        with pytest.raises(ValidationError):
            _info(args_count=-1)

    def test_disable_default_requires_patterns(self):
        with pytest.raises(ValidationError, match="patterns"):
            _info(disable_default=True)
        assert _info(disable_default=True, patterns=[r"^ping$"]).disable_default

    def test_frozen(self):
        info = _info()
        with pytest.raises(ValidationError):
            info.name = "other"


def test_module_id_normalized():
    assert Module(id="Mod-Roles", name="Moderator roles").id == "mod-roles"


def test_inbound_message_defaults_to_direct_message():
    message = InboundMessage(text="hi", author_id="1", message_id="m1")
    assert message.guild_id is None
    assert message.author_is_bot is False
    assert message.sent_at is not None


def test_naive_timestamps_are_treated_as_utc():
    message = InboundMessage(
        text="hi", author_id="1", message_id="m1", sent_at=datetime(2024, 1, 1, 12, 0)
    )
    assert message.sent_at == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_aware_timestamps_are_converted_to_utc():
    plus_two = timezone(timedelta(hours=2))
    edit = MessageEdit(
        message_id="m1", new_text="!ping", edited_at=datetime(2024, 1, 1, 14, 0, tzinfo=plus_two)
    )
    assert edit.edited_at.tzinfo is timezone.utc
    assert edit.edited_at.hour == 12


def test_default_timestamps_are_aware():
    message = InboundMessage(text="hi", author_id="1", message_id="m1")
    edit = MessageEdit(message_id="m1", new_text="hi")
    assert message.sent_at.tzinfo is not None
    assert edit.edited_at.tzinfo is not None
    assert edit.edited_at >= message.sent_at
