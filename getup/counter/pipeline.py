from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from getup.common.events import (
    Event,
    RepCompleted,
    RestCompleted,
    RestStarted,
    RestTick,
    SetCompleted,
    WorkoutCompleted,
)

logger = logging.getLogger(__name__)


@dataclass
class RepConfig:
    target_reps: int
    target_sets: int
    rest_seconds: int
    # Thresholds on the primary angle, in degrees
    peak_angle: float
    start_angle: float
    hysteresis: float = 10.0

    def __post_init__(self):
        if self.target_reps < 1:
            raise ValueError(f"target_reps must be at least 1, got {self.target_reps}")
        if self.target_sets < 1:
            raise ValueError(f"target_sets must be at least 1, got {self.target_sets}")
        if self.rest_seconds < 0:
            raise ValueError(f"rest_seconds cannot be negative, got {self.rest_seconds}")
        if self.hysteresis < 0:
            raise ValueError(f"hysteresis cannot be negative, got {self.hysteresis}")
        if abs(self.start_angle - self.peak_angle) <= 2 * self.hysteresis:
            raise ValueError(
                f"start ({self.start_angle}) and peak ({self.peak_angle}) must be more "
                f"than twice the hysteresis ({self.hysteresis}) apart"
            )

    @property
    def inverted(self) -> bool:
        """True when the angle closes toward the peak (curl, squat)."""
        return self.start_angle > self.peak_angle


class RepPhase(str, Enum):
    START = "start"
    MOVING_TO_PEAK = "moving_to_peak"
    AT_PEAK = "at_peak"
    MOVING_TO_START = "moving_to_start"


class RepStateMachine:
    """
    Turns a stream of primary angles into rep / set / rest / workout events.

    A rep is start -> moving_to_peak -> at_peak (counted here) ->
    moving_to_start -> start. Leaving a band needs the angle to cross the
    threshold by the hysteresis margin, so jitter around a threshold does not
    produce extra reps. Every method returns the events it produced, in order.
    """

    def __init__(self, cfg: RepConfig):
        self.cfg = cfg
        # Work on a signed copy of the angles so one set of comparisons serves
        # both directions: after the flip, start is always above peak.
        self._sign = 1.0 if cfg.inverted else -1.0
        self.reset()

    def reset(self):
        self.phase = RepPhase.START
        self.current_reps = 0
        self.current_set = 1
        self.rest_remaining = 0
        self._resting = False
        self._finished = False

    @property
    def is_resting(self) -> bool:
        return self._resting

    @property
    def is_finished(self) -> bool:
        return self._finished

    def _enter(self, phase: RepPhase):
        if phase != self.phase:
            logger.debug("phase %s -> %s", self.phase.value, phase.value)
            self.phase = phase

    def _next_phase(self, a: float) -> Optional[RepPhase]:
        start = self._sign * self.cfg.start_angle
        peak = self._sign * self.cfg.peak_angle
        h = self.cfg.hysteresis

        if self.phase is RepPhase.START:
            if a < start - h:
                return RepPhase.MOVING_TO_PEAK
        elif self.phase is RepPhase.MOVING_TO_PEAK:
            if a <= peak + h:
                return RepPhase.AT_PEAK
            if a >= start:
                return RepPhase.START
        elif self.phase is RepPhase.AT_PEAK:
            if a >= start - h:
                return RepPhase.MOVING_TO_START
        elif self.phase is RepPhase.MOVING_TO_START:
            if a >= start:
                return RepPhase.START
        return None

    def feed_angle(self, angle: float) -> List[Event]:
        events: List[Event] = []
        if self._resting or self._finished:
            return events

        a = self._sign * float(angle)
        while not (self._resting or self._finished):
            nxt = self._next_phase(a)
            if nxt is None:
                break
            counted = self.phase is RepPhase.MOVING_TO_PEAK and nxt is RepPhase.AT_PEAK
            self._enter(nxt)
            if counted:
                events.extend(self._count_rep())
                if self.current_reps == 0:
                    # a new set starts with the next sample
                    break
        return events

    def record_rep(self) -> List[Event]:
        """Count one rep without an angle cycle (hold poses count seconds)."""
        if self._resting or self._finished:
            return []
        return self._count_rep()

    def _count_rep(self) -> List[Event]:
        self.current_reps += 1
        events: List[Event] = [RepCompleted(self.current_set, self.current_reps)]
        if self.current_reps < self.cfg.target_reps:
            return events

        events.append(SetCompleted(self.current_set))
        if self.current_set >= self.cfg.target_sets:
            self._finished = True
            events.append(WorkoutCompleted())
            logger.info("workout complete after set %d", self.current_set)
            return events

        self.current_set += 1
        self.current_reps = 0
        self._enter(RepPhase.START)
        events.append(RestStarted(self.cfg.rest_seconds))
        if self.cfg.rest_seconds == 0:
            events.append(RestCompleted(skipped=False))
        else:
            self._resting = True
            self.rest_remaining = self.cfg.rest_seconds
        return events

    def tick_rest(self) -> List[Event]:
        """One second of rest has elapsed."""
        if not self._resting:
            return []
        self.rest_remaining = max(0, self.rest_remaining - 1)
        events: List[Event] = [RestTick(self.rest_remaining)]
        if self.rest_remaining == 0:
            events.append(self._end_rest(skipped=False))
        return events

    def skip_rest(self) -> List[Event]:
        if not self._resting:
            return []
        self.rest_remaining = 0
        return [self._end_rest(skipped=True)]

    def _end_rest(self, skipped: bool) -> Event:
        self._resting = False
        self._enter(RepPhase.START)
        return RestCompleted(skipped=skipped)


class HoldTimer:
    """
    Counts whole seconds a pose is held in good form.

    `update(ts, holding)` returns how many new seconds completed since the
    last call. Time only accrues between consecutive holding snapshots, so
    breaking form pauses the count without losing the partial second.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self._last_ts: Optional[float] = None
        self._held = 0.0
        self._credited = 0

    @property
    def held_seconds(self) -> float:
        return self._held

    def update(self, ts: float, holding: bool) -> int:
        if not holding:
            self._last_ts = None
            return 0
        if self._last_ts is not None and ts > self._last_ts:
            self._held += ts - self._last_ts
        self._last_ts = ts
        whole = int(self._held)
        new = whole - self._credited
        self._credited = whole
        return new
