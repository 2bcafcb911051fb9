from __future__ import annotations
import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional, Tuple

import numpy as np

# A joint below this confidence is treated as not detected.
RELIABLE_CONFIDENCE = 0.3


class Joint(str, Enum):
    NOSE = "nose"
    NECK = "neck"
    ROOT = "root"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"

    @property
    def mirror(self) -> "Joint":
        """Same joint on the other side of the body (centre joints map to themselves)."""
        if self.value.startswith("left_"):
            return Joint("right_" + self.value[5:])
        if self.value.startswith("right_"):
            return Joint("left_" + self.value[6:])
        return self


class JointPoint(NamedTuple):
    x: float
    y: float
    confidence: float = 1.0


# Utility math

def is_reliable(point: Optional[JointPoint], threshold: float = RELIABLE_CONFIDENCE) -> bool:
    return point is not None and point.confidence >= threshold


def angle(a: JointPoint, vertex: JointPoint, b: JointPoint) -> float:
    """Return angle a-vertex-b in degrees, 0.0 when either ray has no length."""
    ba = np.array([a.x - vertex.x, a.y - vertex.y], dtype=float)
    bc = np.array([b.x - vertex.x, b.y - vertex.y], dtype=float)
    mag_a = float(np.linalg.norm(ba))
    mag_c = float(np.linalg.norm(bc))
    if mag_a == 0.0 or mag_c == 0.0:
        return 0.0
    cosang = np.clip(np.dot(ba, bc) / (mag_a * mag_c), -1.0, 1.0)
    return float(np.degrees(np.arccos(cosang)))


def midpoint(a: JointPoint, b: JointPoint) -> JointPoint:
    return JointPoint((a.x + b.x) / 2.0, (a.y + b.y) / 2.0, min(a.confidence, b.confidence))


def horizontal_offset(a: JointPoint, b: JointPoint) -> float:
    return abs(a.x - b.x)


@dataclass(frozen=True)
class JointSnapshot:
    """
    One frame of detected joints. Positions are normalized to [0, 1] with y
    growing upward; sources with image coordinates must flip y.
    """
    joints: Mapping[Joint, JointPoint] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.monotonic)

    def __post_init__(self):
        object.__setattr__(self, "joints", MappingProxyType(dict(self.joints)))

    @property
    def is_empty(self) -> bool:
        return not self.joints

    def reliable(self, joint: Joint, threshold: float = RELIABLE_CONFIDENCE) -> Optional[JointPoint]:
        point = self.joints.get(joint)
        return point if is_reliable(point, threshold) else None

    def reliable_all(self, *joints: Joint, threshold: float = RELIABLE_CONFIDENCE) -> Optional[Tuple[JointPoint, ...]]:
        points = tuple(self.reliable(j, threshold) for j in joints)
        if any(p is None for p in points):
            return None
        return points

    def reliable_side(self, *joints: Joint, threshold: float = RELIABLE_CONFIDENCE) -> Optional[Tuple[JointPoint, ...]]:
        """Joints as named, or all mirrored when the named side is not fully reliable."""
        points = self.reliable_all(*joints, threshold=threshold)
        if points is None:
            points = self.reliable_all(*(j.mirror for j in joints), threshold=threshold)
        return points

    @classmethod
    def empty(cls, timestamp: Optional[float] = None) -> "JointSnapshot":
        return cls({}, time.monotonic() if timestamp is None else float(timestamp))

    @classmethod
    def from_payload(cls, data: dict) -> "JointSnapshot":
        """
        Build from {"ts": 1.5, "joints": {"left_elbow": [x, y, conf], ...}}.
        Unknown joint names are skipped; bad coordinates raise ValueError.
        """
        joints = {}
        for name, values in (data.get("joints") or {}).items():
            try:
                joint = Joint(name)
            except ValueError:
                continue
            if len(values) not in (2, 3):
                raise ValueError(f"joint {name!r} needs [x, y] or [x, y, confidence]")
            joints[joint] = JointPoint(*(float(v) for v in values))
        ts = data.get("ts")
        return cls(joints, time.monotonic() if ts is None else float(ts))

    def to_payload(self) -> dict:
        return {
            "ts": self.timestamp,
            "joints": {j.value: [p.x, p.y, p.confidence] for j, p in self.joints.items()},
        }
