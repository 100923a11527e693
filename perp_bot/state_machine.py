"""
Per-user session state for multi-step flows.

Each user has at most one active flow (trading entry or withdrawal). A
flow moves strictly forward through its fixed step order; a step can
only be entered once every field it depends on has been collected.

Store methods never await, so each call runs to completion on the event
loop before any other task touches the same user. The confirm step is
guarded by a compare-and-set flag (begin_confirm) so a double-tapped
confirm button produces exactly one backend call.

Usage:
    from perp_bot.state_machine import SessionStore, FlowKind, Step

    store = SessionStore(ttl_seconds=300)
    store.start(user_id, FlowKind.WITHDRAWAL)
    store.advance(user_id, {"address": addr}, Step.AMOUNT)
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, MutableMapping, Optional, Tuple

logger = logging.getLogger(__name__)


class FlowKind(str, Enum):
    """Multi-step flows."""
    TRADING_ENTRY = "trading_entry"
    WITHDRAWAL = "withdrawal"


class Step(str, Enum):
    """Steps shared across flows."""
    SYMBOL = "symbol"
    LEVERAGE = "leverage"
    ADDRESS = "address"
    AMOUNT = "amount"
    CONFIRM = "confirm"


FLOW_STEPS: Dict[FlowKind, Tuple[Step, ...]] = {
    FlowKind.TRADING_ENTRY: (Step.SYMBOL, Step.LEVERAGE, Step.AMOUNT, Step.CONFIRM),
    FlowKind.WITHDRAWAL: (Step.ADDRESS, Step.AMOUNT, Step.CONFIRM),
}

# Fields that must be populated before a step may be entered
REQUIRED_FIELDS: Dict[Tuple[FlowKind, Step], FrozenSet[str]] = {
    (FlowKind.TRADING_ENTRY, Step.SYMBOL): frozenset(),
    (FlowKind.TRADING_ENTRY, Step.LEVERAGE): frozenset({"symbol"}),
    (FlowKind.TRADING_ENTRY, Step.AMOUNT): frozenset({"symbol", "leverage"}),
    (FlowKind.TRADING_ENTRY, Step.CONFIRM): frozenset({"symbol", "leverage", "amount"}),
    (FlowKind.WITHDRAWAL, Step.ADDRESS): frozenset(),
    (FlowKind.WITHDRAWAL, Step.AMOUNT): frozenset({"address"}),
    (FlowKind.WITHDRAWAL, Step.CONFIRM): frozenset({"address", "amount"}),
}


# =============================================================================
# Errors
# =============================================================================

class SessionError(Exception):
    """Base class for session store errors."""

    def __init__(self, user_id: int, message: str):
        super().__init__(message)
        self.user_id = user_id


class AlreadyInFlow(SessionError):
    """The user already has an active flow."""

    def __init__(self, user_id: int, flow: "FlowKind"):
        super().__init__(user_id, f"User {user_id} already in flow {flow.value}")
        self.flow = flow


class NoActiveFlow(SessionError):
    """The user has no active flow (never started, cancelled or expired)."""

    def __init__(self, user_id: int):
        super().__init__(user_id, f"User {user_id} has no active flow")


class InvalidTransition(SessionError):
    """The requested step does not immediately follow the current one."""

    def __init__(self, user_id: int, current: Optional[Step], requested: Step, reason: str = ""):
        message = f"Invalid transition for user {user_id}: {current.value if current else None} -> {requested.value}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(user_id, message)
        self.current = current
        self.requested = requested


# =============================================================================
# State
# =============================================================================

@dataclass
class SessionState:
    """One user's active flow."""

    user_id: int
    flow: FlowKind
    step: Step
    fields: Dict[str, Any] = field(default_factory=dict)
    pending_message_ids: List[int] = field(default_factory=list)
    chat_id: Optional[int] = None
    created_at: float = 0.0
    updated_at: float = 0.0
    # Set while a confirm is in flight; guards against duplicate submits
    submitting: bool = False

    def next_step(self) -> Optional[Step]:
        steps = FLOW_STEPS[self.flow]
        index = steps.index(self.step)
        return steps[index + 1] if index + 1 < len(steps) else None


# =============================================================================
# Store
# =============================================================================

class SessionStore:
    """
    Keyed store of active flows with an inactivity TTL.

    Args:
        ttl_seconds: Idle time after which a session counts as absent
        clock: Time source (seconds), injectable for tests
        backend: Mapping used for storage; a plain dict by default
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
        backend: Optional[MutableMapping[int, SessionState]] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: MutableMapping[int, SessionState] = {} if backend is None else backend
        # Expired sessions displaced by start(), awaiting evict()
        self._retired: List[SessionState] = []

    def __len__(self) -> int:
        return len(self._sessions)

    def _is_expired(self, state: SessionState, now: float) -> bool:
        return self.ttl_seconds > 0 and now - state.updated_at > self.ttl_seconds

    def _live(self, user_id: int) -> Optional[SessionState]:
        state = self._sessions.get(user_id)
        if state is None:
            return None
        if self._is_expired(state, self._clock()):
            # Left in place so evict() can hand back its prompts
            return None
        return state

    def start(
        self,
        user_id: int,
        flow: FlowKind,
        chat_id: Optional[int] = None,
        fields: Optional[Dict[str, Any]] = None,
        force: bool = False,
    ) -> SessionState:
        """
        Begin a flow at its first step.

        Raises:
            AlreadyInFlow: user has an active flow of any kind and force is False
        """
        existing = self._live(user_id)
        if existing is not None:
            if not force:
                raise AlreadyInFlow(user_id, existing.flow)
            logger.info(f"Force-clearing {existing.flow.value} flow for user {user_id}")
            del self._sessions[user_id]
        elif user_id in self._sessions:
            # Expired but not swept yet; evict() still hands back its prompts
            stale = self._sessions.pop(user_id)
            self._retired.append(stale)
            logger.debug(f"Replacing expired {stale.flow.value} flow for user {user_id}")

        now = self._clock()
        state = SessionState(
            user_id=user_id,
            flow=flow,
            step=FLOW_STEPS[flow][0],
            fields=dict(fields or {}),
            chat_id=chat_id,
            created_at=now,
            updated_at=now,
        )
        self._sessions[user_id] = state
        logger.debug(f"Started {flow.value} flow for user {user_id}")
        return state

    def get(self, user_id: int) -> Optional[SessionState]:
        """Active state for the user, or None."""
        return self._live(user_id)

    def advance(self, user_id: int, fields: Dict[str, Any], next_step: Step) -> SessionState:
        """
        Merge ``fields`` and move to ``next_step``.

        Raises:
            NoActiveFlow: no live session
            InvalidTransition: next_step is not the immediate successor, its
                required fields are missing, or a confirm is in flight
        """
        state = self._live(user_id)
        if state is None:
            raise NoActiveFlow(user_id)
        if state.submitting:
            raise InvalidTransition(user_id, state.step, next_step, "confirmation in progress")

        successor = state.next_step()
        if successor != next_step:
            raise InvalidTransition(user_id, state.step, next_step)

        merged = {**state.fields, **fields}
        missing = REQUIRED_FIELDS[(state.flow, next_step)] - {k for k, v in merged.items() if v is not None}
        if missing:
            raise InvalidTransition(user_id, state.step, next_step, f"missing {', '.join(sorted(missing))}")

        state.fields = merged
        state.step = next_step
        state.updated_at = self._clock()
        logger.debug(f"User {user_id} {state.flow.value}: -> {next_step.value}")
        return state

    def update_fields(self, user_id: int, fields: Dict[str, Any]) -> SessionState:
        """Merge auxiliary fields without changing step (e.g. a refreshed quote)."""
        state = self._live(user_id)
        if state is None:
            raise NoActiveFlow(user_id)
        state.fields.update(fields)
        state.updated_at = self._clock()
        return state

    def begin_confirm(self, user_id: int, flow: FlowKind) -> SessionState:
        """
        Claim the confirm transition (compare-and-set).

        Only one caller can hold the claim; it ends with clear() on a
        terminal outcome or release_confirm() when the user may retry.

        Raises:
            NoActiveFlow: no live session of ``flow``
            InvalidTransition: not at the confirm step, or already claimed
        """
        state = self._live(user_id)
        if state is None or state.flow != flow:
            raise NoActiveFlow(user_id)
        if state.step != Step.CONFIRM:
            raise InvalidTransition(user_id, state.step, Step.CONFIRM, "not awaiting confirmation")
        if state.submitting:
            raise InvalidTransition(user_id, state.step, Step.CONFIRM, "confirmation already in progress")

        state.submitting = True
        state.updated_at = self._clock()
        return state

    def release_confirm(self, user_id: int) -> None:
        """Return a claimed session to the confirm step so it can be retried."""
        state = self._sessions.get(user_id)
        if state is not None:
            state.submitting = False
            state.updated_at = self._clock()

    def clear(self, user_id: int) -> List[int]:
        """Remove the session. Idempotent. Returns tracked message ids for cleanup."""
        state = self._sessions.pop(user_id, None)
        if state is None:
            return []
        logger.debug(f"Cleared {state.flow.value} flow for user {user_id}")
        return list(state.pending_message_ids)

    def track_message(self, user_id: int, message_id: int) -> bool:
        """Remember a bot prompt for later deletion. False if no live session."""
        state = self._live(user_id)
        if state is None:
            return False
        state.pending_message_ids.append(message_id)
        return True

    def evict(self, now: Optional[float] = None) -> List[Tuple[SessionState, List[int]]]:
        """
        Remove sessions idle longer than the TTL, plus expired sessions
        already replaced by start().

        Returns:
            (state, message_ids) for each evicted session
        """
        current = self._clock() if now is None else now
        expired = [uid for uid, s in self._sessions.items() if self._is_expired(s, current) and not s.submitting]

        evicted = [(state, list(state.pending_message_ids)) for state in self._retired]
        self._retired.clear()
        for user_id in expired:
            state = self._sessions.pop(user_id)
            evicted.append((state, list(state.pending_message_ids)))

        if evicted:
            logger.info(f"Evicted {len(evicted)} idle sessions")
        return evicted


__all__ = [
    "AlreadyInFlow",
    "FLOW_STEPS",
    "FlowKind",
    "InvalidTransition",
    "NoActiveFlow",
    "SessionError",
    "SessionState",
    "SessionStore",
    "Step",
]
