import pytest

from getup.counter import analyzers
from getup.counter.analyzers import PostureFeedback, Quality
from getup.counter.exercises import CATALOG, analyze
from getup.counter.pose_core import Joint, JointPoint, JointSnapshot


def _squat(knee_angle_pts, knee_x=(0.35, 0.65), ankle_x=(0.35, 0.65), shoulder_x=0.5):
    lk_y, la_y = knee_angle_pts
    return JointSnapshot(
        {
            Joint.LEFT_SHOULDER: JointPoint(shoulder_x - 0.1, 0.9),
            Joint.RIGHT_SHOULDER: JointPoint(shoulder_x + 0.1, 0.9),
            Joint.LEFT_HIP: JointPoint(0.4, 0.6),
            Joint.RIGHT_HIP: JointPoint(0.6, 0.6),
            Joint.LEFT_KNEE: JointPoint(knee_x[0], lk_y),
            Joint.RIGHT_KNEE: JointPoint(knee_x[1], lk_y),
            Joint.LEFT_ANKLE: JointPoint(ankle_x[0], la_y),
            Joint.RIGHT_ANKLE: JointPoint(ankle_x[1], la_y),
        }
    )


def test_quality_scores():
    assert [q.score for q in Quality] == [1.0, 0.8, 0.5, 0.2]


def test_waiting_value():
    w = PostureFeedback.WAITING
    assert w.quality is Quality.GOOD
    assert w.message == "Get into position"
    assert w.is_waiting
    assert not PostureFeedback(Quality.GOOD, "Get into position").is_waiting


@pytest.mark.parametrize("exercise_id", sorted(CATALOG))
def test_empty_and_low_confidence_snapshots_wait(exercise_id):
    assert analyze(exercise_id, JointSnapshot.empty(0.0)) == PostureFeedback.WAITING
    dim = JointSnapshot({j: JointPoint(0.5, 0.5, 0.1) for j in Joint})
    assert analyze(exercise_id, dim) == PostureFeedback.WAITING


@pytest.mark.parametrize(
    "elbow, quality, message",
    [
        (30, Quality.EXCELLENT, "Perfect curl!"),
        (65, Quality.GOOD, "Good, curl higher"),
        (100, Quality.NEEDS_WORK, "Keep going..."),
        (145, Quality.GOOD, "Good start position"),
        (175, Quality.EXCELLENT, "Full extension"),
    ],
)
def test_bicep_curl_buckets(arm, elbow, quality, message):
    fb = analyzers.bicep_curl(arm(elbow))
    assert fb.quality is quality
    assert fb.message == message


def test_bicep_curl_swing_wins_over_depth(arm):
    fb = analyzers.bicep_curl(arm(30, swing=0.1))
    assert fb.quality is Quality.INCORRECT
    assert fb.message == "Stop swinging!"


def test_bicep_curl_uses_left_arm_when_right_is_hidden(arm):
    fb = analyzers.bicep_curl(arm(30, side="left"))
    assert fb.message == "Perfect curl!"


def test_squat_standing():
    # hip, knee and ankle in a vertical line: 180 degrees
    assert analyzers.squat(_squat((0.35, 0.1), knee_x=(0.4, 0.6), ankle_x=(0.4, 0.6))).message == "Standing tall"


def test_squat_knees_caving():
    fb = analyzers.squat(_squat((0.35, 0.1), knee_x=(0.48, 0.52), ankle_x=(0.35, 0.65)))
    assert fb.quality is Quality.INCORRECT
    assert fb.message == "Push knees out!"


def test_squat_leaning():
    fb = analyzers.squat(_squat((0.35, 0.1), knee_x=(0.4, 0.6), ankle_x=(0.4, 0.6), shoulder_x=0.7))
    assert fb.message == "Keep chest up"


def test_squat_depth_reached():
    # thighs horizontal, shins vertical: 90 degrees at both knees
    snap = JointSnapshot(
        {
            Joint.LEFT_HIP: JointPoint(0.4, 0.6),
            Joint.RIGHT_HIP: JointPoint(0.6, 0.6),
            Joint.LEFT_KNEE: JointPoint(0.2, 0.6),
            Joint.RIGHT_KNEE: JointPoint(0.8, 0.6),
            Joint.LEFT_ANKLE: JointPoint(0.2, 0.3),
            Joint.RIGHT_ANKLE: JointPoint(0.8, 0.3),
        }
    )
    fb = analyzers.squat(snap)
    assert fb.quality is Quality.EXCELLENT
    assert fb.message == "Depth achieved!"


def _press(elbow_y_offset, wrist):
    lx, rx = 0.35, 0.65
    return JointSnapshot(
        {
            Joint.LEFT_SHOULDER: JointPoint(0.4, 0.7),
            Joint.RIGHT_SHOULDER: JointPoint(0.6, 0.7),
            Joint.LEFT_ELBOW: JointPoint(lx, 0.7 + elbow_y_offset),
            Joint.RIGHT_ELBOW: JointPoint(rx, 0.7 + elbow_y_offset),
            Joint.LEFT_WRIST: JointPoint(lx + wrist[0], 0.7 + elbow_y_offset + wrist[1]),
            Joint.RIGHT_WRIST: JointPoint(rx - wrist[0], 0.7 + elbow_y_offset + wrist[1]),
            Joint.LEFT_HIP: JointPoint(0.42, 0.4),
            Joint.RIGHT_HIP: JointPoint(0.58, 0.4),
        }
    )


def test_shoulder_press_lockout_and_start():
    # wrist straight above the elbow, elbow straight above the shoulder
    locked = JointSnapshot(
        {
            Joint.LEFT_SHOULDER: JointPoint(0.4, 0.7),
            Joint.RIGHT_SHOULDER: JointPoint(0.6, 0.7),
            Joint.LEFT_ELBOW: JointPoint(0.4, 0.8),
            Joint.RIGHT_ELBOW: JointPoint(0.6, 0.8),
            Joint.LEFT_WRIST: JointPoint(0.4, 0.9),
            Joint.RIGHT_WRIST: JointPoint(0.6, 0.9),
            Joint.LEFT_HIP: JointPoint(0.42, 0.4),
            Joint.RIGHT_HIP: JointPoint(0.58, 0.4),
        }
    )
    assert analyzers.shoulder_press(locked).quality is Quality.EXCELLENT
    # elbows out to the side at shoulder height, forearms vertical: 90 degrees
    start = _press(0.0, (0.0, 0.15))
    assert analyzers.shoulder_press(start).message == "Start position"


def test_shoulder_press_arching():
    snap = _press(0.0, (0.0, 0.15))
    joints = dict(snap.joints)
    joints[Joint.LEFT_HIP] = JointPoint(0.62, 0.4)
    joints[Joint.RIGHT_HIP] = JointPoint(0.78, 0.4)
    assert analyzers.shoulder_press(JointSnapshot(joints)).message == "Straighten your back"


def test_lateral_raise_elevation():
    def raise_at(wrist_dy, wrist_dx=0.15):
        return JointSnapshot(
            {
                Joint.LEFT_SHOULDER: JointPoint(0.4, 0.7),
                Joint.RIGHT_SHOULDER: JointPoint(0.6, 0.7),
                Joint.LEFT_ELBOW: JointPoint(0.3, 0.7 + wrist_dy / 2 + 0.02),
                Joint.RIGHT_ELBOW: JointPoint(0.7, 0.7 + wrist_dy / 2 + 0.02),
                Joint.LEFT_WRIST: JointPoint(0.4 - wrist_dx - 0.05, 0.7 + wrist_dy),
                Joint.RIGHT_WRIST: JointPoint(0.6 + wrist_dx + 0.05, 0.7 + wrist_dy),
            }
        )

    assert analyzers.lateral_raise(raise_at(-0.3, wrist_dx=-0.05)).message == "Starting position"
    assert analyzers.lateral_raise(raise_at(0.0)).quality is Quality.EXCELLENT


def test_lateral_raise_locked_elbows():
    snap = JointSnapshot(
        {
            Joint.LEFT_SHOULDER: JointPoint(0.4, 0.7),
            Joint.RIGHT_SHOULDER: JointPoint(0.6, 0.7),
            Joint.LEFT_ELBOW: JointPoint(0.3, 0.7),
            Joint.RIGHT_ELBOW: JointPoint(0.7, 0.7),
            Joint.LEFT_WRIST: JointPoint(0.2, 0.7),
            Joint.RIGHT_WRIST: JointPoint(0.8, 0.7),
        }
    )
    assert analyzers.lateral_raise(snap).message == "Soften your elbows"


def test_tricep_elbow_drop_and_extension():
    up = JointSnapshot(
        {
            Joint.RIGHT_SHOULDER: JointPoint(0.5, 0.7),
            Joint.RIGHT_ELBOW: JointPoint(0.5, 0.85),
            Joint.RIGHT_WRIST: JointPoint(0.5, 1.0),
        }
    )
    assert analyzers.tricep_extension(up).message == "Full extension!"
    low = JointSnapshot(
        {
            Joint.RIGHT_SHOULDER: JointPoint(0.5, 0.7),
            Joint.RIGHT_ELBOW: JointPoint(0.5, 0.6),
            Joint.RIGHT_WRIST: JointPoint(0.5, 0.5),
        }
    )
    assert analyzers.tricep_extension(low).message == "Elbow drifting down"


def test_tree_pose_rooted(tree):
    fb = analyzers.tree_pose(tree())
    assert fb.quality is Quality.EXCELLENT
    assert fb.message == "Tree Pose, rooted!"


def test_tree_pose_both_feet_down(tree):
    joints = dict(tree().joints)
    joints[Joint.LEFT_KNEE] = JointPoint(0.42, 0.25)
    assert analyzers.tree_pose(JointSnapshot(joints)).message == "Lift one foot"


def test_tree_pose_arms_low(tree):
    joints = dict(tree().joints)
    joints[Joint.LEFT_WRIST] = JointPoint(0.4, 0.5)
    fb = analyzers.tree_pose(JointSnapshot(joints))
    assert fb.message == "Raise your arms"


def _warrior_two(front_knee):
    return JointSnapshot(
        {
            Joint.LEFT_SHOULDER: JointPoint(0.45, 0.7),
            Joint.RIGHT_SHOULDER: JointPoint(0.55, 0.7),
            Joint.LEFT_WRIST: JointPoint(0.2, 0.72),
            Joint.RIGHT_WRIST: JointPoint(0.8, 0.68),
            Joint.LEFT_HIP: JointPoint(0.45, 0.45),
            Joint.RIGHT_HIP: JointPoint(0.55, 0.45),
            Joint.LEFT_KNEE: front_knee[0],
            Joint.LEFT_ANKLE: front_knee[1],
        }
    )


def test_warrior_two_right_angle_knee():
    # hip (0.45, 0.45) -> knee (0.25, 0.45) -> ankle (0.25, 0.2): 90 degrees
    fb = analyzers.warrior_two(_warrior_two((JointPoint(0.25, 0.45), JointPoint(0.25, 0.2))))
    assert fb.quality is Quality.EXCELLENT


def test_warrior_two_leaning():
    snap = _warrior_two((JointPoint(0.25, 0.45), JointPoint(0.25, 0.2)))
    joints = dict(snap.joints)
    joints[Joint.LEFT_SHOULDER] = JointPoint(0.6, 0.7)
    joints[Joint.RIGHT_SHOULDER] = JointPoint(0.7, 0.7)
    assert analyzers.warrior_two(JointSnapshot(joints)).quality is Quality.INCORRECT


def test_downward_dog():
    base = {
        Joint.LEFT_SHOULDER: JointPoint(0.3, 0.4),
        Joint.RIGHT_SHOULDER: JointPoint(0.3, 0.4),
        Joint.LEFT_HIP: JointPoint(0.5, 0.7),
        Joint.RIGHT_HIP: JointPoint(0.5, 0.7),
        Joint.LEFT_WRIST: JointPoint(0.15, 0.1),
        Joint.RIGHT_WRIST: JointPoint(0.15, 0.1),
    }
    assert analyzers.downward_dog(JointSnapshot(base)).message == "Downward Dog, perfect!"
    low = dict(base)
    low[Joint.LEFT_HIP] = JointPoint(0.5, 0.45)
    low[Joint.RIGHT_HIP] = JointPoint(0.5, 0.45)
    assert analyzers.downward_dog(JointSnapshot(low)).message == "Push hips up higher"


def test_chair_pose_strong():
    snap = JointSnapshot(
        {
            Joint.LEFT_SHOULDER: JointPoint(0.45, 0.75),
            Joint.RIGHT_SHOULDER: JointPoint(0.55, 0.75),
            Joint.LEFT_WRIST: JointPoint(0.45, 0.95),
            Joint.RIGHT_WRIST: JointPoint(0.55, 0.95),
            Joint.LEFT_HIP: JointPoint(0.4, 0.45),
            Joint.RIGHT_HIP: JointPoint(0.5, 0.45),
            # thigh forward, shin down: 90 degrees at each knee
            Joint.LEFT_KNEE: JointPoint(0.6, 0.45),
            Joint.RIGHT_KNEE: JointPoint(0.7, 0.45),
            Joint.LEFT_ANKLE: JointPoint(0.6, 0.15),
            Joint.RIGHT_ANKLE: JointPoint(0.7, 0.15),
        }
    )
    assert analyzers.chair_pose(snap).message == "Chair Pose, strong!"


def test_feedback_to_dict():
    assert PostureFeedback(Quality.NEEDS_WORK, "m", "d").to_dict() == {
        "quality": "needs_work",
        "message": "m",
        "detail": "d",
    }


@pytest.mark.parametrize(
    "feedback, expected",
    [
        (analyzers.TREE_ROOTED, True),
        (analyzers.W1_HOLD, True),
        (analyzers.W2_HOLD, True),
        (analyzers.CHAIR_HIGH, False),
        (analyzers.CHAIR_BEND, False),
        (analyzers.W1_WIDE, False),
        (analyzers.W2_SHALLOW, False),
        (analyzers.TREE_ARMS_LOW, False),
        (analyzers.DOG_BENT_KNEES, False),
        (PostureFeedback.WAITING, False),
    ],
)
def test_holds_pose(feedback, expected):
    assert analyzers.holds_pose(feedback) is expected
