"""
Posture rules, one function per exercise.

Every rule takes a JointSnapshot and returns a PostureFeedback. Missing or
unreliable joints give PostureFeedback.WAITING. Alignment problems are
checked first; the main measurement is then bucketed through an ordered
table of (upper bound, feedback) rows.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Sequence, Tuple

from getup.counter.pose_core import (
    Joint,
    JointPoint,
    JointSnapshot,
    angle,
    horizontal_offset,
    midpoint,
)


class Quality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_WORK = "needs_work"
    INCORRECT = "incorrect"

    @property
    def score(self) -> float:
        return _QUALITY_SCORES[self]


_QUALITY_SCORES = {
    Quality.EXCELLENT: 1.0,
    Quality.GOOD: 0.8,
    Quality.NEEDS_WORK: 0.5,
    Quality.INCORRECT: 0.2,
}


@dataclass(frozen=True)
class PostureFeedback:
    quality: Quality
    message: str
    detail: str = ""

    WAITING: ClassVar["PostureFeedback"]

    @property
    def score(self) -> float:
        return self.quality.score

    @property
    def is_waiting(self) -> bool:
        return self == PostureFeedback.WAITING

    def to_dict(self) -> dict:
        return {"quality": self.quality.value, "message": self.message, "detail": self.detail}


PostureFeedback.WAITING = PostureFeedback(
    Quality.GOOD, "Get into position", "Stand so your full body is visible"
)

WAITING = PostureFeedback.WAITING

Table = Sequence[Tuple[float, PostureFeedback]]


def _bucket(value: float, table: Table, default: PostureFeedback) -> PostureFeedback:
    for upper, feedback in table:
        if value < upper:
            return feedback
    return default


def _fb(quality: Quality, message: str, detail: str) -> PostureFeedback:
    return PostureFeedback(quality, message, detail)


E, G, N, X = Quality.EXCELLENT, Quality.GOOD, Quality.NEEDS_WORK, Quality.INCORRECT

R_SHOULDER, L_SHOULDER = Joint.RIGHT_SHOULDER, Joint.LEFT_SHOULDER
R_ELBOW, L_ELBOW = Joint.RIGHT_ELBOW, Joint.LEFT_ELBOW
R_WRIST, L_WRIST = Joint.RIGHT_WRIST, Joint.LEFT_WRIST
R_HIP, L_HIP = Joint.RIGHT_HIP, Joint.LEFT_HIP
R_KNEE, L_KNEE = Joint.RIGHT_KNEE, Joint.LEFT_KNEE
R_ANKLE, L_ANKLE = Joint.RIGHT_ANKLE, Joint.LEFT_ANKLE


def _front_knee_angle(snap: JointSnapshot, lh: JointPoint, rh: JointPoint) -> Optional[float]:
    """Left knee if it is tracked, otherwise the right one."""
    left = snap.reliable_all(L_KNEE, L_ANKLE)
    if left is not None:
        return angle(lh, left[0], left[1])
    right = snap.reliable_all(R_KNEE, R_ANKLE)
    if right is not None:
        return angle(rh, right[0], right[1])
    return None


def _wrists_above(snap: JointSnapshot, ls: JointPoint, rs: JointPoint, margin: float) -> bool:
    wrists = snap.reliable_all(L_WRIST, R_WRIST)
    if wrists is None:
        return False
    lw, rw = wrists
    return lw.y > ls.y + margin and rw.y > rs.y + margin


# ---------------------------------------------------------------------------
# Strength
# ---------------------------------------------------------------------------

CURL_MAX_SWING = 0.08
CURL_SWINGING = _fb(X, "Stop swinging!", "Keep your upper body still. Only your forearm should move.")
CURL_TABLE: Table = (
    (50, _fb(E, "Perfect curl!", "Great contraction at the top. Now lower slowly.")),
    (80, _fb(G, "Good, curl higher", "Squeeze the bicep and bring the weight a little closer.")),
    (130, _fb(N, "Keep going...", "Halfway there. Keep curling upward.")),
    (160, _fb(G, "Good start position", "Curl the weight up toward your shoulder.")),
)
CURL_EXTENDED = _fb(E, "Full extension", "Arms fully lowered. Start the next rep.")


def bicep_curl(snap: JointSnapshot) -> PostureFeedback:
    side = snap.reliable_side(R_SHOULDER, R_ELBOW, R_WRIST, R_HIP)
    if side is None:
        return WAITING
    s, e, w, h = side
    if horizontal_offset(s, h) >= CURL_MAX_SWING:
        return CURL_SWINGING
    return _bucket(angle(s, e, w), CURL_TABLE, CURL_EXTENDED)


PRESS_MAX_ARCH = 0.12
PRESS_ARCHING = _fb(X, "Straighten your back", "Avoid arching. Engage your core throughout the press.")
PRESS_TABLE: Table = (
    (100, _fb(G, "Start position", "Elbows at 90 degrees. Press the dumbbells overhead.")),
    (120, _fb(N, "Keep pressing up", "Drive through the top, don't stop halfway.")),
    (160, _fb(G, "Nearly there!", "Press all the way up until arms are straight.")),
)
PRESS_LOCKOUT = _fb(E, "Arms fully extended!", "Excellent lockout. Lower with control.")


def shoulder_press(snap: JointSnapshot) -> PostureFeedback:
    pts = snap.reliable_all(L_SHOULDER, R_SHOULDER, L_ELBOW, R_ELBOW, L_WRIST, R_WRIST, L_HIP, R_HIP)
    if pts is None:
        return WAITING
    ls, rs, le, re, lw, rw, lh, rh = pts
    if horizontal_offset(midpoint(ls, rs), midpoint(lh, rh)) > PRESS_MAX_ARCH:
        return PRESS_ARCHING
    avg = (angle(ls, le, lw) + angle(rs, re, rw)) / 2.0
    return _bucket(avg, PRESS_TABLE, PRESS_LOCKOUT)


RAISE_LOCKED_ELBOW = 170.0
RAISE_STIFF_ARMS = _fb(N, "Soften your elbows", "Keep a slight bend in the elbows throughout.")
# wrist height relative to the shoulder, in normalized units
RAISE_TABLE: Table = (
    (-0.12, _fb(G, "Starting position", "Lift both arms out to your sides simultaneously.")),
    (-0.03, _fb(G, "Raise a little higher", "Aim for shoulder height, about parallel to the floor.")),
)
RAISE_PARALLEL = _fb(E, "Parallel! Great raise", "Arms at shoulder height. Lower slowly with control.")


def lateral_raise(snap: JointSnapshot) -> PostureFeedback:
    pts = snap.reliable_all(L_SHOULDER, R_SHOULDER, L_ELBOW, R_ELBOW, L_WRIST, R_WRIST)
    if pts is None:
        return WAITING
    ls, rs, le, re, lw, rw = pts
    if angle(ls, le, lw) > RAISE_LOCKED_ELBOW or angle(rs, re, rw) > RAISE_LOCKED_ELBOW:
        return RAISE_STIFF_ARMS
    elevation = ((lw.y - ls.y) + (rw.y - rs.y)) / 2.0
    return _bucket(elevation, RAISE_TABLE, RAISE_PARALLEL)


SQUAT_MIN_KNEE_RATIO = 0.8
SQUAT_MAX_LEAN = 0.15
SQUAT_KNEES_CAVING = _fb(X, "Push knees out!", "Your knees are caving inward. Drive them out over your toes.")
SQUAT_LEANING = _fb(X, "Keep chest up", "You're leaning too far forward. Lift your chest.")
SQUAT_TABLE: Table = (
    (100, _fb(E, "Depth achieved!", "Thighs parallel or below. Drive through heels to stand.")),
    (130, _fb(G, "Go a little deeper", "Try to get thighs parallel to the floor.")),
    (160, _fb(N, "Squat lower", "You're only part way down. Continue descending with control.")),
)
SQUAT_STANDING = _fb(E, "Standing tall", "Feet hip-width. Toes slightly out. Begin your squat.")


def squat(snap: JointSnapshot) -> PostureFeedback:
    pts = snap.reliable_all(L_HIP, R_HIP, L_KNEE, R_KNEE, L_ANKLE, R_ANKLE)
    if pts is None:
        return WAITING
    lh, rh, lk, rk, la, ra = pts
    if horizontal_offset(lk, rk) < horizontal_offset(la, ra) * SQUAT_MIN_KNEE_RATIO:
        return SQUAT_KNEES_CAVING
    shoulders = snap.reliable_all(L_SHOULDER, R_SHOULDER)
    if shoulders is not None:
        if horizontal_offset(midpoint(*shoulders), midpoint(lh, rh)) > SQUAT_MAX_LEAN:
            return SQUAT_LEANING
    avg = (angle(lh, lk, la) + angle(rh, rk, ra)) / 2.0
    return _bucket(avg, SQUAT_TABLE, SQUAT_STANDING)


TRICEP_ELBOW_DROP = 0.05
TRICEP_ELBOW_LOW = _fb(N, "Elbow drifting down", "Keep your elbows high and pointing toward the ceiling.")
TRICEP_TABLE: Table = (
    (50, _fb(N, "Don't drop too deep", "Lower only until the forearm is behind your head.")),
    (100, _fb(G, "Good stretch", "Now press upward to extend the arms.")),
    (150, _fb(G, "Keep extending", "Press all the way up until arms are straight.")),
)
TRICEP_EXTENDED = _fb(E, "Full extension!", "Arms locked out. Lower slowly behind the head.")


def tricep_extension(snap: JointSnapshot) -> PostureFeedback:
    side = snap.reliable_side(R_SHOULDER, R_ELBOW, R_WRIST)
    if side is None:
        return WAITING
    s, e, w = side
    if e.y <= s.y - TRICEP_ELBOW_DROP:
        return TRICEP_ELBOW_LOW
    return _bucket(angle(s, e, w), TRICEP_TABLE, TRICEP_EXTENDED)


# ---------------------------------------------------------------------------
# Yoga holds
# ---------------------------------------------------------------------------

W1_ARMS_MARGIN = 0.1
W1_MAX_HIP_TILT = 0.06
W1_ARMS_LOW = _fb(N, "Raise your arms higher", "Reach both arms straight up, palms facing each other.")
W1_HIPS_TILTED = _fb(N, "Square your hips", "Rotate your back hip forward so both hips face the front.")
W1_TABLE: Table = (
    (80, _fb(N, "Knee too far forward", "Your front knee should be directly over your ankle.")),
    (100, _fb(E, "Warrior I, hold strong!", "Perfect 90 degree bend. Arms high, hips square. Breathe deeply.")),
    (130, _fb(G, "Bend front knee deeper", "Lower your hips until the front knee reaches 90 degrees.")),
)
W1_WIDE = _fb(G, "Great stance width", "Now bend your front knee toward 90 degrees.")
W1_HOLD = _fb(G, "Hold the pose", "Keep arms raised, hips square, breathe steadily.")


def warrior_one(snap: JointSnapshot) -> PostureFeedback:
    pts = snap.reliable_all(L_SHOULDER, R_SHOULDER, L_HIP, R_HIP)
    if pts is None:
        return WAITING
    ls, rs, lh, rh = pts
    if not _wrists_above(snap, ls, rs, W1_ARMS_MARGIN):
        return W1_ARMS_LOW
    if abs(lh.y - rh.y) >= W1_MAX_HIP_TILT:
        return W1_HIPS_TILTED
    knee = _front_knee_angle(snap, lh, rh)
    if knee is None:
        return W1_HOLD
    return _bucket(knee, W1_TABLE, W1_WIDE)


W2_ARM_LEVEL = 0.08
W2_MAX_LEAN = 0.08
W2_LEANING = _fb(X, "Torso is leaning", "Keep your torso upright directly over your hips. Don't lean forward.")
W2_ARMS_UNEVEN = _fb(N, "Arms parallel to floor", "Extend both arms out at shoulder height, palms facing down.")
W2_TABLE: Table = (
    (80, _fb(N, "Knee past ankle", "Stack your front knee directly over your ankle, not beyond.")),
    (100, _fb(E, "Warrior II, beautiful!", "Strong 90 degree bend, arms parallel, torso tall. Hold and breathe.")),
)
W2_SHALLOW = _fb(G, "Sink lower into the pose", "Bend your front knee deeper toward 90 degrees.")
W2_HOLD = _fb(G, "Hold Warrior II", "Arms wide, gaze over front fingertips, breathe.")


def warrior_two(snap: JointSnapshot) -> PostureFeedback:
    pts = snap.reliable_all(L_SHOULDER, R_SHOULDER, L_HIP, R_HIP, L_WRIST, R_WRIST)
    if pts is None:
        return WAITING
    ls, rs, lh, rh, lw, rw = pts
    if horizontal_offset(midpoint(ls, rs), midpoint(lh, rh)) >= W2_MAX_LEAN:
        return W2_LEANING
    if abs(lw.y - ls.y) >= W2_ARM_LEVEL or abs(rw.y - rs.y) >= W2_ARM_LEVEL:
        return W2_ARMS_UNEVEN
    knee = _front_knee_angle(snap, lh, rh)
    if knee is None:
        return W2_HOLD
    return _bucket(knee, W2_TABLE, W2_SHALLOW)


TREE_KNEE_OUT = 0.05
TREE_ARMS_MARGIN = 0.15
TREE_MAX_SHOULDER_TILT = 0.05
TREE_BOTH_FEET = _fb(N, "Lift one foot", "Place the sole of one foot on your inner calf or thigh. Avoid the knee.")
TREE_TILTED = _fb(N, "Level your shoulders", "Keep both shoulders even. Engage your core to stay balanced.")
TREE_ARMS_LOW = _fb(G, "Raise your arms", "Bring both arms overhead, palms together or shoulder-width.")
TREE_ROOTED = _fb(E, "Tree Pose, rooted!", "Balanced, arms high, shoulders level. Breathe and hold steady.")


def tree_pose(snap: JointSnapshot) -> PostureFeedback:
    pts = snap.reliable_all(L_SHOULDER, R_SHOULDER, L_HIP, R_HIP)
    if pts is None:
        return WAITING
    ls, rs, lh, rh = pts
    lk = snap.reliable(L_KNEE)
    rk = snap.reliable(R_KNEE)
    left_lifted = lk is not None and lk.x < lh.x - TREE_KNEE_OUT
    right_lifted = rk is not None and rk.x > rh.x + TREE_KNEE_OUT
    if not (left_lifted or right_lifted):
        return TREE_BOTH_FEET
    if abs(ls.y - rs.y) >= TREE_MAX_SHOULDER_TILT:
        return TREE_TILTED
    if not _wrists_above(snap, ls, rs, TREE_ARMS_MARGIN):
        return TREE_ARMS_LOW
    return TREE_ROOTED


DOG_HIP_LIFT = 0.1
DOG_STRAIGHT_KNEE = 140.0
DOG_HIPS_LOW = _fb(N, "Push hips up higher", "Drive your tailbone toward the ceiling to form an inverted V.")
DOG_BENT_KNEES = _fb(G, "Straighten your legs", "Try to straighten the knees. Bend slightly if hamstrings are tight.")
DOG_ROUNDED = _fb(N, "Lengthen your spine", "Press hands into floor and pull chest toward thighs.")
DOG_PERFECT = _fb(E, "Downward Dog, perfect!", "Hips high, spine long, heels reaching down. Hold and breathe.")


def downward_dog(snap: JointSnapshot) -> PostureFeedback:
    pts = snap.reliable_all(L_SHOULDER, R_SHOULDER, L_HIP, R_HIP)
    if pts is None:
        return WAITING
    ls, rs, lh, rh = pts
    shoulder_y = midpoint(ls, rs).y
    if midpoint(lh, rh).y <= shoulder_y + DOG_HIP_LIFT:
        return DOG_HIPS_LOW
    legs = snap.reliable_all(L_KNEE, R_KNEE, L_ANKLE, R_ANKLE)
    if legs is not None:
        lk, rk, la, ra = legs
        if angle(lh, lk, la) <= DOG_STRAIGHT_KNEE or angle(rh, rk, ra) <= DOG_STRAIGHT_KNEE:
            return DOG_BENT_KNEES
    wrists = snap.reliable_all(L_WRIST, R_WRIST)
    if wrists is not None and midpoint(*wrists).y >= shoulder_y:
        return DOG_ROUNDED
    return DOG_PERFECT


CHAIR_MAX_LEAN = 0.18
CHAIR_ARMS_MARGIN = 0.1
CHAIR_LEANING = _fb(X, "Too much forward lean", "Keep your torso relatively upright, weight in your heels.")
CHAIR_ARMS_LOW = _fb(N, "Raise your arms", "Reach both arms straight overhead, biceps beside your ears.")
CHAIR_TABLE: Table = (
    (80, _fb(N, "Knees past toes", "Sit back more, keep knees over ankles, not beyond.")),
    (130, _fb(E, "Chair Pose, strong!", "Sitting low, arms high, weight in heels. Hold and breathe.")),
)
CHAIR_HIGH = _fb(G, "Sit lower", "Bend knees deeper as if sitting in an invisible chair.")
CHAIR_BEND = _fb(G, "Bend your knees", "Lower your hips as if sitting back into a chair.")


def chair_pose(snap: JointSnapshot) -> PostureFeedback:
    pts = snap.reliable_all(L_SHOULDER, R_SHOULDER, L_HIP, R_HIP)
    if pts is None:
        return WAITING
    ls, rs, lh, rh = pts
    if horizontal_offset(midpoint(ls, rs), midpoint(lh, rh)) > CHAIR_MAX_LEAN:
        return CHAIR_LEANING
    if not _wrists_above(snap, ls, rs, CHAIR_ARMS_MARGIN):
        return CHAIR_ARMS_LOW
    legs = snap.reliable_all(L_KNEE, R_KNEE, L_ANKLE, R_ANKLE)
    if legs is None:
        return CHAIR_BEND
    lk, rk, la, ra = legs
    avg = (angle(lh, lk, la) + angle(rh, rk, ra)) / 2.0
    return _bucket(avg, CHAIR_TABLE, CHAIR_HIGH)


# Hold tiers that mean "in the pose but the front knee is out of view".
IN_POSE = frozenset({W1_HOLD, W2_HOLD})


def holds_pose(feedback: PostureFeedback) -> bool:
    """True when the feedback says the user is in the pose, not getting into it."""
    return feedback.quality is Quality.EXCELLENT or feedback in IN_POSE
