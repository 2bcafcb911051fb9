from __future__ import annotations
from dataclasses import asdict, dataclass, field
from enum import Enum


class EventType(str, Enum):
    STATE_CHANGED = "state_changed"
    COUNTDOWN_TICK = "countdown_tick"
    FEEDBACK = "feedback"
    REP_COMPLETED = "rep_completed"
    SET_COMPLETED = "set_completed"
    REST_STARTED = "rest_started"
    REST_TICK = "rest_tick"
    REST_COMPLETED = "rest_completed"
    WORKOUT_COMPLETED = "workout_completed"
    SESSION_SAVED = "session_saved"


@dataclass
class Event:
    type: EventType = field(init=False)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        return data


@dataclass
class StateChanged(Event):
    state: str
    previous: str
    type: EventType = field(default=EventType.STATE_CHANGED, init=False)


@dataclass
class CountdownTick(Event):
    remaining: int
    type: EventType = field(default=EventType.COUNTDOWN_TICK, init=False)


@dataclass
class FeedbackChanged(Event):
    quality: str
    message: str
    detail: str = ""
    type: EventType = field(default=EventType.FEEDBACK, init=False)


@dataclass
class RepCompleted(Event):
    set_number: int
    reps: int
    type: EventType = field(default=EventType.REP_COMPLETED, init=False)


@dataclass
class SetCompleted(Event):
    set_number: int
    type: EventType = field(default=EventType.SET_COMPLETED, init=False)


@dataclass
class RestStarted(Event):
    seconds: int
    type: EventType = field(default=EventType.REST_STARTED, init=False)


@dataclass
class RestTick(Event):
    remaining: int
    type: EventType = field(default=EventType.REST_TICK, init=False)


@dataclass
class RestCompleted(Event):
    skipped: bool = False
    type: EventType = field(default=EventType.REST_COMPLETED, init=False)


@dataclass
class WorkoutCompleted(Event):
    type: EventType = field(default=EventType.WORKOUT_COMPLETED, init=False)


@dataclass
class SessionSaved(Event):
    session_id: str
    type: EventType = field(default=EventType.SESSION_SAVED, init=False)
