"""Shared predictive timer for the repeating betting cycle.

The game interface alternates between a fixed-length betting window and a
fixed-length waiting window. Once one screenshot confirms that a betting
window is running, every later phase can be computed from the clock alone
until the belief grows too old to trust.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from threading import Lock

from autobet_meter.core.settings import settings

Clock = Callable[[], float]


class CyclePhase(Enum):
    """Phases reported by the cycle timer."""

    ABSENT = "absent"    # No trusted anchor; an observation is required
    ACTIVE = "active"    # Betting window open
    DORMANT = "dormant"  # Waiting for the next betting window


@dataclass(frozen=True)
class PhaseReading:
    """Result of a phase query.

    ``remaining`` is only set while the phase is ACTIVE. ``cycle_number`` is
    1-based and ``position`` is the offset into the current cycle; both are 0
    when no anchor is held.
    """

    phase: CyclePhase
    remaining: float | None = None
    cycle_number: int = 0
    position: float = 0.0

    @property
    def active(self) -> bool:
        return self.phase is CyclePhase.ACTIVE


ABSENT = PhaseReading(CyclePhase.ABSENT)


class CycleTimer:
    """Single process-wide belief about where the betting cycle currently is.

    Anchoring is last-writer-wins: concurrent observations each re-synchronise
    the cycle and the latest one stands. The lock only keeps a reader from
    seeing a half-written anchor.
    """

    def __init__(
        self,
        active_seconds: float | None = None,
        dormant_seconds: float | None = None,
        expiry_seconds: float | None = None,
        safety_buffer_seconds: float | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.active_seconds = float(
            settings.cycle_active_seconds if active_seconds is None else active_seconds
        )
        self.dormant_seconds = float(
            settings.cycle_dormant_seconds if dormant_seconds is None else dormant_seconds
        )
        self.expiry_seconds = float(
            settings.cycle_expiry_seconds if expiry_seconds is None else expiry_seconds
        )
        self.safety_buffer_seconds = float(
            settings.cycle_safety_buffer_seconds
            if safety_buffer_seconds is None
            else safety_buffer_seconds
        )
        if self.active_seconds <= 0 or self.dormant_seconds < 0:
            raise ValueError("Cycle durations must be positive")
        self.clock = clock
        self._anchor_time: float | None = None
        self._lock = Lock()

    @property
    def cycle_seconds(self) -> float:
        return self.active_seconds + self.dormant_seconds

    @property
    def anchor_time(self) -> float | None:
        with self._lock:
            return self._anchor_time

    def snapshot(self, now: float | None = None) -> PhaseReading:
        """Return the phase at ``now`` together with cycle bookkeeping.

        Drops the anchor once it is older than the expiry window.
        """
        now = self.clock() if now is None else now
        with self._lock:
            anchor = self._anchor_time
            if anchor is None:
                return ABSENT
            elapsed = now - anchor
            if elapsed >= self.expiry_seconds:
                self._anchor_time = None
                return ABSENT

        position = elapsed % self.cycle_seconds
        cycle_number = int(elapsed // self.cycle_seconds) + 1
        if position < self.active_seconds:
            return PhaseReading(
                CyclePhase.ACTIVE,
                remaining=self.active_seconds - position,
                cycle_number=cycle_number,
                position=position,
            )
        return PhaseReading(CyclePhase.DORMANT, cycle_number=cycle_number, position=position)

    def current_phase(self, now: float | None = None) -> PhaseReading:
        """Return ABSENT, ACTIVE with the seconds left, or DORMANT."""
        return self.snapshot(now)

    def anchor(
        self,
        reported_remaining: float,
        observed_at: float,
        now: float | None = None,
    ) -> float:
        """Re-anchor the cycle from one observation of an open betting window.

        The reported countdown was read from a screenshot taken at
        ``observed_at``; the time spent since then plus a fixed safety buffer
        is counted as already elapsed, so the timer errs toward closing the
        window early.

        Returns:
            The new anchor time.
        """
        if reported_remaining <= 0:
            raise ValueError("reported_remaining must be positive")
        now = self.clock() if now is None else now
        remaining = min(float(reported_remaining), self.active_seconds)
        processing_delay = max(0.0, now - observed_at)
        elapsed = (self.active_seconds - remaining) + processing_delay + self.safety_buffer_seconds
        anchor_time = now - elapsed
        with self._lock:
            self._anchor_time = anchor_time
        return anchor_time

    def clear(self) -> None:
        """Forget the current anchor."""
        with self._lock:
            self._anchor_time = None
