from types import SimpleNamespace

import pytest

from getup.counter.capture import MEDIAPIPE_LANDMARKS, landmarks_to_snapshot
from getup.counter.exercises import BICEP_CURL
from getup.counter.pose_core import Joint


def _landmarks(overrides=None, count=33):
    lms = [SimpleNamespace(x=0.5, y=0.5, visibility=0.9) for _ in range(count)]
    for idx, (x, y, vis) in (overrides or {}).items():
        lms[idx] = SimpleNamespace(x=x, y=y, visibility=vis)
    return lms


def test_y_is_flipped_and_visibility_kept():
    snap = landmarks_to_snapshot(_landmarks({0: (0.5, 0.1, 0.7)}), 4.0)
    nose = snap.joints[Joint.NOSE]
    assert nose.y == pytest.approx(0.9)
    assert nose.confidence == pytest.approx(0.7)
    assert snap.timestamp == 4.0
    assert set(MEDIAPIPE_LANDMARKS) <= set(snap.joints)


def test_neck_and_root_are_midpoints():
    snap = landmarks_to_snapshot(
        _landmarks({11: (0.4, 0.3, 0.9), 12: (0.6, 0.3, 0.5), 23: (0.45, 0.6, 0.8), 24: (0.55, 0.6, 0.8)}),
        0.0,
    )
    neck = snap.joints[Joint.NECK]
    assert (neck.x, neck.y, neck.confidence) == pytest.approx((0.5, 0.7, 0.5))
    assert snap.joints[Joint.ROOT].y == pytest.approx(0.4)


def test_short_landmark_list_skips_missing_joints():
    snap = landmarks_to_snapshot(_landmarks(count=20), 0.0)
    assert Joint.RIGHT_WRIST in snap.joints
    assert Joint.LEFT_HIP not in snap.joints
    assert Joint.ROOT not in snap.joints


def test_image_coordinates_give_upright_angles():
    # image space: shoulder above elbow above wrist (y grows down) -> straight arm
    snap = landmarks_to_snapshot(_landmarks({12: (0.5, 0.3, 0.9), 14: (0.5, 0.5, 0.9), 16: (0.5, 0.7, 0.9)}), 0.0)
    assert snap.joints[Joint.RIGHT_SHOULDER].y > snap.joints[Joint.RIGHT_WRIST].y
    assert BICEP_CURL.primary_angle(snap) == pytest.approx(180.0)
