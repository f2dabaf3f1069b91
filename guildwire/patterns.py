"""Regex-based command matching, independent of the tokenizer."""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Optional

import structlog

if TYPE_CHECKING:
    from .commands.base import Command

logger = structlog.get_logger("guildwire.dispatch")


@dataclass(frozen=True)
class PatternMatch:
    """The first command whose pattern matched a message."""
    command: "Command"
    match: re.Match
    args: List[str]


def match(commands: Iterable["Command"], text: str) -> Optional[PatternMatch]:
    """Find the first command with a pattern that matches the text.

    Commands are tried in the order given (registration order), and each
    command's patterns in declaration order, so the first-registered
    command wins ties.

    Args:
        commands: Commands to try, in priority order.
        text: Full message text.

    Returns:
        The match with its capture groups as args (unmatched optional
        groups become ""), or None.
    """
    for command in commands:
        for pattern in command.patterns or ():
            try:
                found = pattern.search(text)
            except (TypeError, re.error) as e:
                logger.warning("pattern_match_error", command=command.name, error=str(e))
                continue
            if found:
                args = [g if g is not None else "" for g in found.groups()]
                return PatternMatch(command=command, match=found, args=args)
    return None
