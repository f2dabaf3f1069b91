"""Pydantic models for the dispatch engine.

Defines the validated command configuration record, the module record,
and the inbound message/edit records delivered by the transport.

Enums:
    ArgsType

Models:
    CommandInfo, Module, InboundMessage, MessageEdit
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class ArgsType(str, Enum):
    """How the default path turns the argument string into args.

    SINGLE passes the whole trimmed string as one argument. MULTIPLE
    splits it with the quoting rules of tokenizer.tokenize().
    """
    SINGLE = "single"
    MULTIPLE = "multiple"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _check_name(value: str, what: str) -> str:
    value = value.strip().lower()
    if not NAME_PATTERN.match(value):
        raise ValueError(f"{what} {value!r} must match {NAME_PATTERN.pattern}")
    return value


class CommandInfo(BaseModel):
    """Configuration record for a command, validated once at construction.

    Identity fields (name, aliases, module, member_name) must be unique
    within the registry; the registry enforces that when registering.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    aliases: Tuple[str, ...] = ()
    module: str = Field(..., min_length=1)
    member_name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    usage: str = ""
    details: Optional[str] = None
    examples: Tuple[str, ...] = ()
    server_only: bool = False
    args_type: ArgsType = ArgsType.SINGLE
    args_count: int = Field(default=0, ge=0)
    args_single_quotes: bool = True
    disable_default: bool = False
    patterns: Optional[Tuple[re.Pattern, ...]] = None

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        return _check_name(v, "Command name")

    @field_validator("aliases")
    @classmethod
    def _valid_aliases(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        aliases = tuple(_check_name(a, "Command alias") for a in v)
        if len(set(aliases)) != len(aliases):
            raise ValueError("Command aliases must be unique")
        return aliases

    @field_validator("module", "member_name")
    @classmethod
    def _valid_identifier(cls, v: str) -> str:
        return _check_name(v, "Command module/member name")

    @field_validator("patterns", mode="before")
    @classmethod
    def _compile_patterns(cls, v):
        if v is None:
            return None
        if isinstance(v, (str, re.Pattern)):
            v = [v]
        return tuple(re.compile(p) if isinstance(p, str) else p for p in v)

    @model_validator(mode="before")
    @classmethod
    def _default_usage(cls, data):
        if isinstance(data, dict) and not data.get("usage") and isinstance(data.get("name"), str):
            data = {**data, "usage": data["name"].strip().lower()}
        return data

    @model_validator(mode="after")
    def _check_consistency(self) -> "CommandInfo":
        if self.name in self.aliases:
            raise ValueError(f"Command {self.name!r} lists its own name as an alias")
        if self.args_type is ArgsType.MULTIPLE and self.args_count == 1:
            raise ValueError("Command args_count must be at least 2")
        if self.disable_default and not self.patterns:
            raise ValueError("Command with disable_default must define patterns")
        return self

    @property
    def id(self) -> str:
        """Registry-wide identifier: ``<module>:<member_name>``."""
        return f"{self.module}:{self.member_name}"

    @property
    def names(self) -> Tuple[str, ...]:
        """Name followed by every alias."""
        return (self.name,) + self.aliases


class Module(BaseModel):
    """A named group of commands, enabled and disabled as a unit."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)

    @field_validator("id")
    @classmethod
    def _valid_id(cls, v: str) -> str:
        return _check_name(v, "Module ID")


class InboundMessage(BaseModel):
    """A new message delivered by the transport.

    guild_id is None for direct messages.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    author_id: str
    message_id: str
    sent_at: datetime = Field(default_factory=_utcnow)
    guild_id: Optional[str] = None
    channel_id: Optional[str] = None
    author_is_bot: bool = False

    @field_validator("sent_at")
    @classmethod
    def _utc_sent_at(cls, v: datetime) -> datetime:
        return _as_utc(v)


class MessageEdit(BaseModel):
    """An edit to a previously delivered message."""

    model_config = ConfigDict(frozen=True)

    message_id: str
    new_text: str
    edited_at: datetime = Field(default_factory=_utcnow)

    @field_validator("edited_at")
    @classmethod
    def _utc_edited_at(cls, v: datetime) -> datetime:
        return _as_utc(v)
