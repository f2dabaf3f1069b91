"""Tests for CommandRegistry registration and lookups."""

from typing import List

import pytest

from guildwire.commands.base import BaseCommandGroup, Command
from guildwire.exceptions import DuplicateNameError, UnknownModuleError
from guildwire.registry import CommandRegistry


async def _noop(message, args, from_pattern):
    return None


def _command(name, module="test", member=None, aliases=(), patterns=None):
    return Command.create(
        _noop,
        name=name,
        aliases=list(aliases),
        module=module,
        member_name=member or name,
        description=f"{name} command",
        patterns=patterns,
    )


@pytest.fixture
def registry():
    reg = CommandRegistry()
    reg.register_module("test", "Test")
    return reg


class TestRegistration:

    def test_duplicate_module_rejected(self, registry):
        with pytest.raises(DuplicateNameError) as exc:
            registry.register_module("test", "Again")
        assert exc.value.name == "test"

    def test_register_modules_pairs(self):
        reg = CommandRegistry()
        reg.register_modules([("a", "Alpha"), ("b", "Beta")])
        assert [m.id for m in reg.modules] == ["a", "b"]

    def test_unknown_module_rejected(self, registry):
        with pytest.raises(UnknownModuleError) as exc:
            registry.register(_command("x", module="missing"))
        assert exc.value.module_id == "missing"

    def test_duplicate_name_rejected(self, registry):
        registry.register(_command("foo"))
        with pytest.raises(DuplicateNameError) as exc:
            registry.register(_command("foo", member="other"))
        assert exc.value.existing == "test:foo"

    def test_alias_colliding_with_name_rejected(self, registry):
        registry.register(_command("foo"))
        with pytest.raises(DuplicateNameError):
            registry.register(_command("bar", aliases=["foo"]))

    def test_name_colliding_with_alias_rejected(self, registry):
        registry.register(_command("bar", aliases=["baz"]))
        with pytest.raises(DuplicateNameError):
            registry.register(_command("baz"))

    def test_member_name_collision_within_module_rejected(self, registry):
        registry.register(_command("one", member="shared"))
        with pytest.raises(DuplicateNameError):
            registry.register(_command("two", member="shared"))

    def test_member_name_may_repeat_across_modules(self, registry):
        registry.register_module("other", "Other")
        registry.register(_command("one", member="shared"))
        registry.register(_command("two", module="other", member="shared"))
        assert registry.get_by_id("other:shared").name == "two"

    def test_failed_registration_leaves_registry_unchanged(self, registry):
        registry.register(_command("foo"))
        with pytest.raises(DuplicateNameError):
            registry.register(_command("bar", aliases=["foo"]))
        assert registry.get("bar") is None
        assert len(registry.commands) == 1

    def test_register_group(self):
        class Group(BaseCommandGroup):
            module_id = "grp"
            module_name = "Group"

            def get_commands(self) -> List[Command]:
                return [_command("a", module="grp"), _command("b", module="grp")]

        reg = CommandRegistry()
        reg.register_group(Group(ctx=None))
        assert reg.get_module("grp").name == "Group"
        assert [c.name for c in reg.commands_in_module("grp")] == ["a", "b"]


class TestLookups:

    def test_get_is_case_insensitive_and_resolves_aliases(self, registry):
        cmd = registry.register(_command("foo", aliases=["f"]))
        assert registry.get("FOO") is cmd
        assert registry.get("f") is cmd
        assert registry.get("fo") is None

    def test_order_preserved(self, registry):
        for name in ("c", "a", "b"):
            registry.register(_command(name, patterns=[name] if name != "a" else None))
        assert [c.name for c in registry.commands] == ["c", "a", "b"]
        assert [c.name for c in registry.pattern_commands] == ["c", "b"]


class TestFindCommands:

    @pytest.fixture
    def foo_bar(self, registry):
        foo = registry.register(_command("foo"))
        bar = registry.register(_command("bar", aliases=["foo2"]))
        return registry, foo, bar

    def test_exact_name_short_circuits(self, foo_bar):
        registry, foo, bar = foo_bar
        assert registry.find_commands("foo") == [foo]

    def test_substring_matches_names_and_aliases(self, foo_bar):
        registry, foo, bar = foo_bar
        assert registry.find_commands("fo") == [foo, bar]

    def test_exact_alias_short_circuits(self, foo_bar):
        registry, foo, bar = foo_bar
        assert registry.find_commands("FOO2") == [bar]

    def test_exact_id_short_circuits(self, foo_bar):
        registry, foo, bar = foo_bar
        assert registry.find_commands("test:bar") == [bar]

    def test_blank_search_returns_everything(self, foo_bar):
        registry, foo, bar = foo_bar
        assert registry.find_commands("") == [foo, bar]
        assert registry.find_commands(None) == [foo, bar]

    def test_no_match(self, foo_bar):
        registry, _, _ = foo_bar
        assert registry.find_commands("zzz") == []


class TestFindModules:

    def test_exact_id_short_circuits(self):
        reg = CommandRegistry()
        reg.register_modules([("mod", "Moderation"), ("mod-roles", "Moderator roles")])
        assert [m.id for m in reg.find_modules("mod")] == ["mod"]

    def test_substring_of_id_or_name(self):
        reg = CommandRegistry()
        reg.register_modules([("mod", "Moderation"), ("mod-roles", "Moderator roles")])
        assert [m.id for m in reg.find_modules("MODERAT")] == ["mod", "mod-roles"]
        assert [m.id for m in reg.find_modules("roles")] == ["mod-roles"]

    def test_exact_name_short_circuits(self):
        reg = CommandRegistry()
        reg.register_modules([("a", "Util"), ("b", "Utility")])
        assert [m.id for m in reg.find_modules("util")] == ["a"]
