"""Confirm-then-act state for destructive commands.

A command that needs confirmation asks the InteractionStateMachine to
advance its state on every invocation. The first invocation arms a
pending confirmation for the invoking user and starts a one-shot timer;
re-invoking with the confirmation keyword before the timer fires
confirms it. Any other invocation re-arms the window for whoever
invoked last.

States per command ID:
    IDLE -> AWAITING_CONFIRMATION -> IDLE (confirmed or timed out)
"""

import asyncio
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional

import structlog

logger = structlog.get_logger("guildwire.interactions")

DEFAULT_WINDOW_SECONDS = 30
DEFAULT_KEYWORD = "confirm"


class InteractionPhase(str, Enum):
    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


class InteractionOutcome(str, Enum):
    """Result of advancing the state machine for one invocation.

    CONFIRMED: the caller must now perform the action.
    PROMPTED: a (new) confirmation is pending; the caller asks the user.
    """
    CONFIRMED = "confirmed"
    PROMPTED = "prompted"


@dataclass
class InteractionState:
    """Pending confirmation of one command."""
    pending_actor_id: Optional[str] = None
    guild_id: Optional[str] = None
    expires_at: Optional[float] = None  # clock() deadline
    timer: Optional[asyncio.Task] = None

    @property
    def phase(self) -> InteractionPhase:
        if self.pending_actor_id is None:
            return InteractionPhase.IDLE
        return InteractionPhase.AWAITING_CONFIRMATION


class InteractionStateMachine:
    """Table of pending confirmations keyed by command ID.

    At most one confirmation is pending per command. Arming a new one
    cancels the previous timer. Timers are asyncio tasks; when no event
    loop is running the deadline alone expires the state.

    Args:
        window: Seconds a confirmation stays valid.
        keyword: First argument that confirms (case-insensitive).
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        window: float = DEFAULT_WINDOW_SECONDS,
        keyword: str = DEFAULT_KEYWORD,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window = window
        self.keyword = keyword.lower()
        self._clock = clock
        self._states: Dict[str, InteractionState] = {}

    def state(self, command_id: str) -> InteractionState:
        """Snapshot of a command's state (IDLE if never armed or expired)."""
        current = self._states.get(command_id)
        if current is None:
            return InteractionState()
        if self._expired(current):
            self.cancel(command_id)
            logger.info("confirmation_expired", command=command_id)
            return InteractionState()
        return replace(current)

    def is_confirmation(self, args: List[str]) -> bool:
        return bool(args) and args[0].strip().lower() == self.keyword

    def advance(
        self,
        command_id: str,
        actor_id: str,
        guild_id: Optional[str],
        args: List[str],
    ) -> InteractionOutcome:
        """Apply one invocation of a confirmable command.

        Confirms only when a live request exists for the same actor in
        the same guild and the first argument is the keyword. Anything
        else (re)arms the request for this actor.
        """
        current = self._states.get(command_id)
        if (
            current is not None
            and current.pending_actor_id == actor_id
            and current.guild_id == guild_id
            and self.is_confirmation(args)
            and not self._expired(current)
        ):
            self.cancel(command_id)
            logger.info("confirmation_accepted", command=command_id, actor=actor_id)
            return InteractionOutcome.CONFIRMED

        self._arm(command_id, actor_id, guild_id)
        return InteractionOutcome.PROMPTED

    def cancel(self, command_id: str) -> None:
        """Drop a pending confirmation. Safe to call repeatedly."""
        current = self._states.pop(command_id, None)
        if current is not None and current.timer is not None and not current.timer.done():
            current.timer.cancel()

    def cancel_all(self) -> None:
        """Drop every pending confirmation (for shutdown)."""
        for command_id in list(self._states):
            self.cancel(command_id)

    def _expired(self, state: InteractionState) -> bool:
        return state.expires_at is not None and self._clock() >= state.expires_at

    def _arm(self, command_id: str, actor_id: str, guild_id: Optional[str]) -> None:
        self.cancel(command_id)
        state = InteractionState(
            pending_actor_id=actor_id,
            guild_id=guild_id,
            expires_at=self._clock() + self.window,
        )
        self._states[command_id] = state
        try:
            loop = asyncio.get_running_loop()
            state.timer = loop.create_task(self._expire(command_id, state))
        except RuntimeError:
            pass  # No running loop; the deadline still applies
        logger.info(
            "confirmation_armed",
            command=command_id, actor=actor_id, window_seconds=self.window,
        )

    async def _expire(self, command_id: str, state: InteractionState) -> None:
        """Clear the state when the window elapses, unless it was re-armed."""
        try:
            await asyncio.sleep(self.window)
        except asyncio.CancelledError:
            return
        if self._states.get(command_id) is state:
            del self._states[command_id]
            logger.info("confirmation_expired", command=command_id)
