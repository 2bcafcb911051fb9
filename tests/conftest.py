from __future__ import annotations
import math

import pytest

from getup.common.config import Settings
from getup.counter.pose_core import Joint, JointPoint, JointSnapshot


def arm_snapshot(elbow_angle: float, ts: float = 0.0, swing: float = 0.0, side: str = "right") -> JointSnapshot:
    """Upright side-on arm with the given shoulder-elbow-wrist angle."""
    prefix = side + "_"
    rad = math.radians(elbow_angle)
    elbow = JointPoint(0.5, 0.5, 0.9)
    joints = {
        Joint(prefix + "shoulder"): JointPoint(0.5, 0.7, 0.9),
        Joint(prefix + "elbow"): elbow,
        Joint(prefix + "wrist"): JointPoint(elbow.x + 0.2 * math.sin(rad), elbow.y + 0.2 * math.cos(rad), 0.9),
        Joint(prefix + "hip"): JointPoint(0.5 + swing, 0.4, 0.9),
    }
    return JointSnapshot(joints, ts)


def tree_snapshot(ts: float = 0.0) -> JointSnapshot:
    """Balanced tree pose: left knee out, arms overhead, shoulders level."""
    return JointSnapshot(
        {
            Joint.LEFT_SHOULDER: JointPoint(0.4, 0.7),
            Joint.RIGHT_SHOULDER: JointPoint(0.6, 0.7),
            Joint.LEFT_HIP: JointPoint(0.42, 0.45),
            Joint.RIGHT_HIP: JointPoint(0.58, 0.45),
            Joint.LEFT_KNEE: JointPoint(0.3, 0.35),
            Joint.RIGHT_KNEE: JointPoint(0.58, 0.25),
            Joint.RIGHT_ANKLE: JointPoint(0.58, 0.05),
            Joint.LEFT_WRIST: JointPoint(0.45, 0.95),
            Joint.RIGHT_WRIST: JointPoint(0.55, 0.95),
        },
        ts,
    )


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeCapture:
    def __init__(self):
        self.calls = []

    def start(self):
        self.calls.append("start")

    def stop(self):
        self.calls.append("stop")


class FakeStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved = []

    def save(self, summary):
        if self.fail:
            raise OSError("disk full")
        self.saved.append(summary)


class FakeAnnouncer:
    def __init__(self):
        self.spoken = []

    def say(self, text: str):
        self.spoken.append(text)


@pytest.fixture
def arm():
    return arm_snapshot


@pytest.fixture
def tree():
    return tree_snapshot


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def failing_store():
    return FakeStore(fail=True)


@pytest.fixture
def announcer():
    return FakeAnnouncer()


@pytest.fixture
def settings():
    return Settings(countdown_seconds=0)
