from __future__ import annotations
import logging
import time
import uuid
from collections import deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from getup.common.config import Settings
from getup.common.events import (
    CountdownTick,
    Event,
    FeedbackChanged,
    RepCompleted,
    RestCompleted,
    RestStarted,
    SessionSaved,
    SetCompleted,
    StateChanged,
    WorkoutCompleted,
)
from getup.counter.analyzers import PostureFeedback, Quality, holds_pose
from getup.counter.exercises import CATALOG, ExerciseDefinition, get_exercise
from getup.counter.pipeline import HoldTimer, RepConfig, RepStateMachine
from getup.counter.pose_core import JointSnapshot

logger = logging.getLogger(__name__)

# Frames averaged for the live form score shown during a set
ROLLING_FORM_FRAMES = 30


class WorkoutStateError(RuntimeError):
    pass


class WorkoutState(str, Enum):
    SETUP = "setup"
    COUNTDOWN = "countdown"
    ACTIVE = "active"
    RESTING = "resting"
    COMPLETE = "complete"


class Capture(Protocol):
    def start(self) -> None: ...
    def stop(self) -> None: ...


class Announcer(Protocol):
    def say(self, text: str) -> None: ...


class Store(Protocol):
    def save(self, summary: "WorkoutSummary") -> None: ...


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) else 0.0


def format_duration(seconds: int) -> str:
    """83 -> "1m 23s", 120 -> "2m", 45 -> "45s"."""
    seconds = int(seconds)
    if seconds >= 60:
        m, s = divmod(seconds, 60)
        return f"{m}m {s}s" if s else f"{m}m"
    return f"{seconds}s"


@dataclass(frozen=True)
class SetResult:
    set_number: int
    reps_completed: int
    form_score: float
    completed_at: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class WorkoutSummary:
    exercise_id: str
    exercise_name: str
    started_at: float
    target_sets: int
    target_reps: int
    duration_seconds: int
    sets: Tuple[SetResult, ...]
    average_form_score: float
    completed: bool
    notes: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def completed_sets(self) -> int:
        return len(self.sets)

    @property
    def total_reps(self) -> int:
        return sum(s.reps_completed for s in self.sets)

    @property
    def form_score_text(self) -> str:
        return f"{int(self.average_form_score * 100)}%"

    @property
    def summary_line(self) -> str:
        return (
            f"{self.completed_sets}/{self.target_sets} sets · "
            f"{self.total_reps} reps · {self.form_score_text} form"
        )

    @property
    def duration_text(self) -> str:
        return format_duration(self.duration_seconds)

    def to_dict(self) -> dict:
        data = asdict(self)
        data.update(
            completed_sets=self.completed_sets,
            total_reps=self.total_reps,
            form_score_text=self.form_score_text,
            summary_line=self.summary_line,
            duration_text=self.duration_text,
        )
        return data


@dataclass
class WorkoutStatus:
    state: WorkoutState
    exercise_id: Optional[str]
    exercise_name: Optional[str]
    current_set: int
    target_sets: int
    current_reps: int
    target_reps: int
    countdown: int
    rest_remaining: int
    feedback: PostureFeedback
    primary_angle: Optional[float]
    set_form_score: float
    session_form_score: float
    completed_sets: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["state"] = self.state.value
        data["feedback"] = self.feedback.to_dict()
        return data


class _SecondTimer:
    """
    One-second ticker driven by an external clock.

    `due(now)` reports how many whole seconds elapsed since the last report.
    A cancelled timer reports nothing until started again.
    """

    def __init__(self):
        self._next: Optional[float] = None

    @property
    def active(self) -> bool:
        return self._next is not None

    def start(self, now: float):
        self._next = now + 1.0

    def cancel(self):
        self._next = None

    def due(self, now: float) -> int:
        n = 0
        while self._next is not None and now >= self._next:
            n += 1
            self._next += 1.0
        return n


class WorkoutController:
    """
    Owns one workout: setup -> countdown -> active <-> resting -> complete.

    Not thread-safe; WorkoutRunner confines every call to one thread. Each
    public method returns the events it produced and also hands them, as
    dicts, to the event sink.
    """

    def __init__(
        self,
        catalog: Optional[Dict[str, ExerciseDefinition]] = None,
        capture: Optional[Capture] = None,
        store: Optional[Store] = None,
        announcer: Optional[Announcer] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        settings: Optional[Settings] = None,
    ):
        self.catalog = CATALOG if catalog is None else catalog
        self.capture = capture
        self.store = store
        self.announcer = announcer
        self.settings = settings or Settings()
        self._clock = clock
        self._wall_clock = wall_clock
        self._event_sink: Optional[Callable[[dict], None]] = None

        self.state = WorkoutState.SETUP
        self.definition: Optional[ExerciseDefinition] = None
        self.cfg: Optional[RepConfig] = None
        self.machine: Optional[RepStateMachine] = None
        self.last_summary: Optional[WorkoutSummary] = None
        self._countdown_timer = _SecondTimer()
        self._rest_timer = _SecondTimer()
        self._hold = HoldTimer()
        self._clear_progress()

    def set_event_sink(self, sink: Optional[Callable[[dict], None]]):
        self._event_sink = sink

    def _clear_progress(self):
        self.feedback = PostureFeedback.WAITING
        self.primary_angle: Optional[float] = None
        self.countdown = 0
        self._started_at = 0.0
        self._started_mono = 0.0
        self._rep_frame_scores: List[float] = []
        self._set_rep_scores: List[float] = []
        self._recent_scores: Deque[float] = deque(maxlen=ROLLING_FORM_FRAMES)
        self._sets: List[SetResult] = []
        self._hold.reset()

    # ── plumbing ──────────────────────────────────────────────────────────

    def _publish(self, events: List[Event]) -> List[Event]:
        if self._event_sink is not None:
            for ev in events:
                try:
                    self._event_sink(ev.to_dict())
                except Exception:
                    logger.exception("event sink failed on %s", ev.type.value)
        return events

    def _say(self, text: str):
        if self.announcer is not None:
            self.announcer.say(text)

    def _set_state(self, new: WorkoutState) -> List[Event]:
        if new is self.state:
            return []
        previous, self.state = self.state, new
        logger.info("workout %s -> %s", previous.value, new.value)
        return [StateChanged(new.value, previous.value)]

    def _require(self, *states: WorkoutState):
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise WorkoutStateError(f"workout is {self.state.value}; expected {allowed}")

    # ── lifecycle ─────────────────────────────────────────────────────────

    def configure(
        self,
        exercise_id: str,
        sets: Optional[int] = None,
        reps: Optional[int] = None,
        rest_seconds: Optional[int] = None,
    ) -> RepConfig:
        self._require(WorkoutState.SETUP)
        definition = get_exercise(exercise_id, self.catalog)
        if rest_seconds is None:
            rest_seconds = self.settings.default_rest_seconds
        cfg = definition.rep_config(sets=sets, reps=reps, rest_seconds=rest_seconds)
        self.definition = definition
        self.cfg = cfg
        self.machine = RepStateMachine(cfg)
        logger.info(
            "configured %s: %d x %d, rest %ds",
            definition.id, cfg.target_sets, cfg.target_reps, cfg.rest_seconds,
        )
        return cfg

    def start_countdown(self, now: Optional[float] = None) -> List[Event]:
        self._require(WorkoutState.SETUP)
        if self.machine is None:
            raise WorkoutStateError("configure an exercise before starting")
        now = self._clock() if now is None else now
        self.machine.reset()
        self._clear_progress()
        self.last_summary = None
        self.countdown = self.settings.countdown_seconds

        events = self._set_state(WorkoutState.COUNTDOWN)
        if self.countdown == 0:
            events += self._begin(now)
        else:
            events.append(CountdownTick(self.countdown))
            self._countdown_timer.start(now)
        return self._publish(events)

    def _begin(self, now: float) -> List[Event]:
        self._countdown_timer.cancel()
        self._started_at = self._wall_clock()
        self._started_mono = now
        events = self._set_state(WorkoutState.ACTIVE)
        if self.capture is not None:
            self.capture.start()
        self._say("Go")
        return events

    def tick(self, now: Optional[float] = None) -> List[Event]:
        """Advance the countdown and rest timers to `now`."""
        now = self._clock() if now is None else now
        events: List[Event] = []

        if self.state is WorkoutState.COUNTDOWN:
            for _ in range(self._countdown_timer.due(now)):
                self.countdown -= 1
                if self.countdown > 0:
                    events.append(CountdownTick(self.countdown))
                    self._say(str(self.countdown))
                else:
                    events += self._begin(now)
                    break

        elif self.state is WorkoutState.RESTING:
            for _ in range(self._rest_timer.due(now)):
                events += self._handle(self.machine.tick_rest(), now)
                if self.state is not WorkoutState.RESTING:
                    break

        return self._publish(events)

    def process_snapshot(self, snapshot: JointSnapshot) -> List[Event]:
        if self.state is not WorkoutState.ACTIVE:
            return []
        definition = self.definition
        events: List[Event] = []

        feedback = definition.analyze(snapshot)
        if feedback != self.feedback:
            events.append(FeedbackChanged(feedback.quality.value, feedback.message, feedback.detail))
            if feedback.quality is Quality.INCORRECT and self.settings.voice_feedback:
                self._say(feedback.message)
        self.feedback = feedback
        if not feedback.is_waiting:
            self._rep_frame_scores.append(feedback.score)
            self._recent_scores.append(feedback.score)

        primary = definition.primary_angle(snapshot)
        if primary is not None:
            self.primary_angle = primary

        now = self._clock()
        if feedback.is_waiting:
            # the rule could not see enough of the body to trust the angle
            self._hold.update(snapshot.timestamp, False)
        elif definition.is_hold_pose:
            for _ in range(self._hold.update(snapshot.timestamp, holds_pose(feedback))):
                events += self._handle(self.machine.record_rep(), now)
                if self.state is not WorkoutState.ACTIVE:
                    break
        elif primary is not None:
            events += self._handle(self.machine.feed_angle(primary), now)

        return self._publish(events)

    def skip_rest(self, now: Optional[float] = None) -> List[Event]:
        if self.state is not WorkoutState.RESTING:
            return []
        now = self._clock() if now is None else now
        self._rest_timer.cancel()
        return self._publish(self._handle(self.machine.skip_rest(), now))

    def end_workout(self) -> Optional[WorkoutSummary]:
        """
        Stop early. An active or resting workout is saved with whatever sets
        were done (a partly done set counts with its reps so far); a countdown
        is simply cancelled.
        """
        events: List[Event] = []
        summary: Optional[WorkoutSummary] = None
        self._countdown_timer.cancel()
        self._rest_timer.cancel()

        if self.state in (WorkoutState.ACTIVE, WorkoutState.RESTING):
            if self.machine.current_reps > 0:
                self._record_set(self.machine.current_set, self.machine.current_reps)
            if self.capture is not None:
                self.capture.stop()
            summary, saved = self._finalize(completed=False)
            events += saved
        elif self.state is WorkoutState.COMPLETE:
            summary = self.last_summary

        events += self._set_state(WorkoutState.SETUP)
        if self.machine is not None:
            self.machine.reset()
        self._publish(events)
        return summary

    def reset_to_setup(self) -> List[Event]:
        self._countdown_timer.cancel()
        self._rest_timer.cancel()
        if self.capture is not None and self.state in (WorkoutState.ACTIVE, WorkoutState.RESTING):
            self.capture.stop()
        self._clear_progress()
        self.definition = None
        self.cfg = None
        self.machine = None
        self.last_summary = None
        return self._publish(self._set_state(WorkoutState.SETUP))

    # ── rep state machine events ──────────────────────────────────────────

    def _handle(self, machine_events: List[Event], now: float) -> List[Event]:
        events: List[Event] = []
        for ev in machine_events:
            events.append(ev)
            if isinstance(ev, RepCompleted):
                if self._rep_frame_scores:
                    self._set_rep_scores.append(_mean(self._rep_frame_scores))
                self._rep_frame_scores = []
                self._say(str(ev.reps))
            elif isinstance(ev, SetCompleted):
                self._record_set(ev.set_number, self.cfg.target_reps)
                # The final set finishes through WorkoutCompleted only
                if ev.set_number < self.cfg.target_sets:
                    events += self._set_state(WorkoutState.RESTING)
            elif isinstance(ev, RestStarted):
                if ev.seconds > 0:
                    self._rest_timer.start(now)
                    self._say(f"Set done. Rest for {ev.seconds} seconds")
            elif isinstance(ev, RestCompleted):
                self._rest_timer.cancel()
                self._hold.reset()
                events += self._set_state(WorkoutState.ACTIVE)
                self._say("Rest over")
            elif isinstance(ev, WorkoutCompleted):
                self._rest_timer.cancel()
                events += self._set_state(WorkoutState.COMPLETE)
                if self.capture is not None:
                    self.capture.stop()
                self._say("Workout complete")
                _, saved = self._finalize(completed=True)
                events += saved
        return events

    def _record_set(self, set_number: int, reps: int):
        self._rep_frame_scores = []
        self._sets.append(SetResult(set_number, reps, _mean(self._set_rep_scores), self._wall_clock()))
        self._set_rep_scores = []
        self._recent_scores.clear()

    def _finalize(self, completed: bool) -> Tuple[WorkoutSummary, List[Event]]:
        definition, cfg = self.definition, self.cfg
        summary = WorkoutSummary(
            exercise_id=definition.id,
            exercise_name=definition.name,
            started_at=self._started_at,
            target_sets=cfg.target_sets,
            target_reps=cfg.target_reps,
            duration_seconds=max(0, int(self._clock() - self._started_mono)),
            sets=tuple(self._sets),
            average_form_score=self.session_form_score,
            completed=completed,
        )
        self.last_summary = summary
        logger.info("workout finished: %s %s", definition.id, summary.summary_line)

        if self.store is None:
            return summary, []
        try:
            self.store.save(summary)
        except Exception:
            logger.exception("could not save workout %s", summary.id)
            return summary, []
        return summary, [SessionSaved(summary.id)]

    # ── read side ─────────────────────────────────────────────────────────

    @property
    def set_form_score(self) -> float:
        return _mean(list(self._recent_scores))

    @property
    def session_form_score(self) -> float:
        return _mean([s.form_score for s in self._sets])

    @property
    def sets(self) -> Tuple[SetResult, ...]:
        return tuple(self._sets)

    def status(self) -> WorkoutStatus:
        machine, cfg, definition = self.machine, self.cfg, self.definition
        return WorkoutStatus(
            state=self.state,
            exercise_id=definition.id if definition else None,
            exercise_name=definition.name if definition else None,
            current_set=machine.current_set if machine else 0,
            target_sets=cfg.target_sets if cfg else 0,
            current_reps=machine.current_reps if machine else 0,
            target_reps=cfg.target_reps if cfg else 0,
            countdown=self.countdown if self.state is WorkoutState.COUNTDOWN else 0,
            rest_remaining=machine.rest_remaining if machine and machine.is_resting else 0,
            feedback=self.feedback,
            primary_angle=self.primary_angle,
            set_form_score=self.set_form_score,
            session_form_score=self.session_form_score,
            completed_sets=len(self._sets),
        )
