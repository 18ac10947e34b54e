"""Hysteresis reducer for posture stabilisation.

The stable posture only changes after a different raw posture has been
proposed continuously for ``min_duration_sec``. The machine is a pure
function over an immutable state value, so callers thread the state
explicitly and nothing is shared between runs.

Example:
    >>> state = PostureFSMState()
    >>> for t, raw in enumerate(raw_labels):
    ...     state = advance_posture(state, t, raw, min_duration_sec=300)
    ...     stable = state.current
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable

UNKNOWN = "unknown"
TRANSITION = "transition"
STANDING = "standing"
LYING = "lying"

STABLE_POSTURES = (STANDING, LYING)


@dataclass(frozen=True)
class PostureFSMState:
    """State of the posture hysteresis.

    Attributes:
        current: Accepted stable posture.
        pending: Proposed posture waiting for confirmation.
        pending_since: Timestamp at which the pending proposal started.
        transitions: Number of accepted posture changes.
    """

    current: str = UNKNOWN
    pending: str | None = None
    pending_since: float | None = None
    transitions: int = 0


def advance_posture(
    state: PostureFSMState,
    timestamp: float,
    raw_posture: str | None,
    min_duration_sec: float = 300.0,
) -> PostureFSMState:
    """Feed one raw posture label into the hysteresis.

    Args:
        state: Previous state.
        timestamp: Time of the label in seconds (monotonic within a run).
        raw_posture: Raw label; ``transition``/``unknown``/None leave the state
            untouched.
        min_duration_sec: Time a new posture must be proposed before it is
            accepted.

    Returns:
        New state (the input is never modified).
    """
    if not raw_posture or raw_posture in (TRANSITION, UNKNOWN):
        return state

    min_duration_sec = max(1.0, min_duration_sec)

    # First stable label is adopted without delay
    if state.current == UNKNOWN:
        return replace(state, current=raw_posture, pending=None, pending_since=timestamp)

    if raw_posture == state.current:
        if state.pending is None:
            return state
        return replace(state, pending=None, pending_since=timestamp)

    if state.pending != raw_posture:
        return replace(state, pending=raw_posture, pending_since=timestamp)

    if timestamp - state.pending_since >= min_duration_sec:
        return PostureFSMState(
            current=raw_posture,
            pending=None,
            pending_since=timestamp,
            transitions=state.transitions + 1,
        )
    return state


def run_posture_fsm(
    labels: Iterable[tuple[float, str | None]],
    min_duration_sec: float = 300.0,
    initial: PostureFSMState | None = None,
) -> list[str]:
    """Apply the hysteresis to a whole ``(timestamp, raw_label)`` stream.

    Returns:
        Stable posture after each label.
    """
    state = initial or PostureFSMState()
    out: list[str] = []
    for timestamp, raw in labels:
        state = advance_posture(state, timestamp, raw, min_duration_sec)
        out.append(state.current)
    return out
