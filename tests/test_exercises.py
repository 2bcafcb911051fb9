import pytest

from getup.counter.analyzers import PostureFeedback
from getup.counter.exercises import (
    BICEP_CURL,
    CATALOG,
    SHOULDER_PRESS,
    ExerciseCategory,
    ExerciseDefinition,
    UnknownExerciseError,
    exercises,
    get_exercise,
    register,
)
from getup.counter.pose_core import Joint, JointSnapshot


def _definition(**overrides):
    kwargs = dict(
        id="wave",
        name="Wave",
        category=ExerciseCategory.DANCE,
        analyzer=lambda snap: PostureFeedback.WAITING,
        primary_joints=(Joint.RIGHT_SHOULDER, Joint.RIGHT_ELBOW, Joint.RIGHT_WRIST),
        start_angle=160,
        peak_angle=60,
    )
    kwargs.update(overrides)
    return ExerciseDefinition(**kwargs)


def test_catalog_contents():
    assert set(CATALOG) == {
        "bicep_curl", "shoulder_press", "lateral_raise", "squat", "tricep_extension",
        "warrior_one", "warrior_two", "tree_pose", "downward_dog", "chair_pose",
    }
    assert len(exercises(ExerciseCategory.STRENGTH)) == 5
    assert all(d.is_hold_pose for d in exercises(ExerciseCategory.YOGA))
    assert exercises(ExerciseCategory.DANCE) == []


def test_every_definition_has_instructions():
    for d in CATALOG.values():
        assert d.steps and d.description and d.camera_setup and d.muscle_groups


def test_unknown_exercise():
    with pytest.raises(UnknownExerciseError) as err:
        get_exercise("burpee")
    assert err.value.exercise_id == "burpee"
    assert isinstance(err.value, LookupError)


def test_register_into_own_catalog():
    catalog = {}
    wave = register(_definition(), catalog)
    assert get_exercise("wave", catalog) is wave
    assert exercises(ExerciseCategory.DANCE, catalog) == [wave]
    assert "wave" not in CATALOG
    with pytest.raises(ValueError):
        register(_definition(), catalog)


@pytest.mark.parametrize(
    "overrides",
    [
        dict(start_angle=100, peak_angle=90),
        dict(hysteresis=-1),
        dict(default_sets=0),
        dict(default_reps=0),
        dict(default_rest_seconds=-5),
    ],
)
def test_invalid_definitions(overrides):
    with pytest.raises(ValueError):
        _definition(**overrides)


def test_rep_config_uses_defaults_and_overrides():
    cfg = BICEP_CURL.rep_config()
    assert (cfg.target_sets, cfg.target_reps, cfg.rest_seconds) == (3, 12, 60)
    assert cfg.inverted
    cfg = SHOULDER_PRESS.rep_config(sets=2, reps=5, rest_seconds=0)
    assert (cfg.target_sets, cfg.target_reps, cfg.rest_seconds) == (2, 5, 0)
    assert not cfg.inverted


def test_primary_angle_either_side(arm):
    assert BICEP_CURL.primary_angle(arm(70)) == pytest.approx(70.0)
    assert BICEP_CURL.primary_angle(arm(70, side="left")) == pytest.approx(70.0)
    assert BICEP_CURL.primary_angle(JointSnapshot.empty(0.0)) is None


def test_to_dict():
    data = BICEP_CURL.to_dict()
    assert data["id"] == "bicep_curl"
    assert data["category"] == "strength"
    assert data["primary_joints"] == ["right_shoulder", "right_elbow", "right_wrist"]
    assert data["is_hold_pose"] is False
