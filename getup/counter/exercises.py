"""
Exercise catalog.

Each ExerciseDefinition carries its rep thresholds, the three joints that
make up its primary angle and the posture rule from analyzers.py. Adding an
exercise means writing one rule function and registering one definition.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from getup.counter import analyzers
from getup.counter.analyzers import PostureFeedback
from getup.counter.pipeline import RepConfig
from getup.counter.pose_core import RELIABLE_CONFIDENCE, Joint, JointSnapshot, angle

Analyzer = Callable[[JointSnapshot], PostureFeedback]


class UnknownExerciseError(LookupError):
    def __init__(self, exercise_id: str):
        super().__init__(f"no such exercise: {exercise_id!r}")
        self.exercise_id = exercise_id


class ExerciseCategory(str, Enum):
    STRENGTH = "strength"
    YOGA = "yoga"
    DANCE = "dance"


@dataclass(frozen=True)
class ExerciseDefinition:
    id: str
    name: str
    category: ExerciseCategory
    analyzer: Analyzer
    # endpoint, pivot, endpoint (right side; the left side is used as a fallback)
    primary_joints: Tuple[Joint, Joint, Joint]
    start_angle: float
    peak_angle: float
    hysteresis: float = 10.0
    default_sets: int = 3
    default_reps: int = 12
    default_rest_seconds: int = 60
    description: str = ""
    muscle_groups: Tuple[str, ...] = ()
    camera_setup: str = ""
    steps: Tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self):
        if self.default_sets < 1 or self.default_reps < 1:
            raise ValueError(f"{self.id}: default sets and reps must be at least 1")
        # RepConfig validates the thresholds with the same rules the state machine needs
        self.rep_config()

    @property
    def is_hold_pose(self) -> bool:
        """Yoga reps are seconds held in position."""
        return self.category is ExerciseCategory.YOGA

    def analyze(self, snapshot: JointSnapshot) -> PostureFeedback:
        return self.analyzer(snapshot)

    def primary_angle(self, snapshot: JointSnapshot, threshold: float = RELIABLE_CONFIDENCE) -> Optional[float]:
        points = snapshot.reliable_side(*self.primary_joints, threshold=threshold)
        if points is None:
            return None
        return angle(*points)

    def rep_config(self, sets: Optional[int] = None, reps: Optional[int] = None, rest_seconds: Optional[int] = None) -> RepConfig:
        return RepConfig(
            target_reps=self.default_reps if reps is None else reps,
            target_sets=self.default_sets if sets is None else sets,
            rest_seconds=self.default_rest_seconds if rest_seconds is None else rest_seconds,
            peak_angle=self.peak_angle,
            start_angle=self.start_angle,
            hysteresis=self.hysteresis,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "description": self.description,
            "muscle_groups": list(self.muscle_groups),
            "default_sets": self.default_sets,
            "default_reps": self.default_reps,
            "default_rest_seconds": self.default_rest_seconds,
            "camera_setup": self.camera_setup,
            "steps": list(self.steps),
            "is_hold_pose": self.is_hold_pose,
            "primary_joints": [j.value for j in self.primary_joints],
            "start_angle": self.start_angle,
            "peak_angle": self.peak_angle,
            "hysteresis": self.hysteresis,
        }


CATALOG: Dict[str, ExerciseDefinition] = {}


def register(definition: ExerciseDefinition, catalog: Optional[Dict[str, ExerciseDefinition]] = None) -> ExerciseDefinition:
    catalog = CATALOG if catalog is None else catalog
    if definition.id in catalog:
        raise ValueError(f"exercise {definition.id!r} is already registered")
    catalog[definition.id] = definition
    return definition


def get_exercise(exercise_id: str, catalog: Optional[Dict[str, ExerciseDefinition]] = None) -> ExerciseDefinition:
    catalog = CATALOG if catalog is None else catalog
    try:
        return catalog[exercise_id]
    except KeyError:
        raise UnknownExerciseError(exercise_id) from None


def exercises(category: Optional[ExerciseCategory] = None, catalog: Optional[Dict[str, ExerciseDefinition]] = None) -> List[ExerciseDefinition]:
    catalog = CATALOG if catalog is None else catalog
    return [d for d in catalog.values() if category is None or d.category is category]


def analyze(exercise_id: str, snapshot: JointSnapshot) -> PostureFeedback:
    return get_exercise(exercise_id).analyze(snapshot)


ARM = (Joint.RIGHT_SHOULDER, Joint.RIGHT_ELBOW, Joint.RIGHT_WRIST)
SHOULDER_ABDUCTION = (Joint.RIGHT_HIP, Joint.RIGHT_SHOULDER, Joint.RIGHT_ELBOW)
KNEE = (Joint.RIGHT_HIP, Joint.RIGHT_KNEE, Joint.RIGHT_ANKLE)
HIP_HINGE = (Joint.RIGHT_SHOULDER, Joint.RIGHT_HIP, Joint.RIGHT_KNEE)

# ── Strength ──────────────────────────────────────────────────────────────

BICEP_CURL = register(ExerciseDefinition(
    id="bicep_curl",
    name="Bicep Curl",
    category=ExerciseCategory.STRENGTH,
    analyzer=analyzers.bicep_curl,
    primary_joints=ARM,
    start_angle=150,
    peak_angle=40,
    default_sets=3,
    default_reps=12,
    description="Stand tall, curl the dumbbell toward your shoulder, then lower under control.",
    muscle_groups=("Biceps", "Forearms"),
    camera_setup="Camera sideways at hip height so your full arm is visible.",
    steps=(
        "Stand tall, feet hip-width, dumbbells at sides palms forward.",
        "Pin upper arms to your torso; only the forearms move.",
        "Curl the dumbbells toward your shoulders, squeezing at the top.",
        "Lower slowly. That's one rep.",
    ),
))

SHOULDER_PRESS = register(ExerciseDefinition(
    id="shoulder_press",
    name="Shoulder Press",
    category=ExerciseCategory.STRENGTH,
    analyzer=analyzers.shoulder_press,
    primary_joints=ARM,
    start_angle=95,
    peak_angle=160,
    default_sets=3,
    default_reps=10,
    description="Start with dumbbells at ear height, press overhead until arms are fully extended.",
    muscle_groups=("Shoulders", "Triceps", "Upper Chest"),
    camera_setup="Camera in front of you at chest height; both arms fully visible.",
    steps=(
        "Stand tall. Dumbbells at ear height, elbows at 90 degrees.",
        "Engage your core; don't arch.",
        "Press both dumbbells straight up until the arms fully extend.",
        "Lower slowly. That's one rep.",
    ),
))

LATERAL_RAISE = register(ExerciseDefinition(
    id="lateral_raise",
    name="Lateral Raise",
    category=ExerciseCategory.STRENGTH,
    analyzer=analyzers.lateral_raise,
    primary_joints=SHOULDER_ABDUCTION,
    start_angle=25,
    peak_angle=80,
    hysteresis=8,
    default_sets=3,
    default_reps=15,
    description="Raise dumbbells out to the sides until arms are parallel to the floor.",
    muscle_groups=("Side Delts",),
    camera_setup="Camera in front of you at chest height; stand 5-6 feet away.",
    steps=(
        "Stand tall, dumbbells at sides, slight elbow bend.",
        "Keeping the torso still, raise both arms out to the sides.",
        "Stop when the arms are parallel to the floor.",
        "Lower slowly. That's one rep.",
    ),
))

SQUAT = register(ExerciseDefinition(
    id="squat",
    name="Dumbbell Squat",
    category=ExerciseCategory.STRENGTH,
    analyzer=analyzers.squat,
    primary_joints=KNEE,
    start_angle=165,
    peak_angle=100,
    default_sets=3,
    default_reps=12,
    description="Hold dumbbells at your sides, squat until thighs are parallel to the floor.",
    muscle_groups=("Quads", "Glutes", "Hamstrings"),
    camera_setup="Camera at hip height, 6 feet away; full body head to ankle.",
    steps=(
        "Feet hip-width, toes slightly out, dumbbells at sides.",
        "Push hips back and bend the knees as if sitting into a chair.",
        "Lower until thighs are parallel to the floor.",
        "Drive through the heels to stand. That's one rep.",
    ),
))

TRICEP_EXTENSION = register(ExerciseDefinition(
    id="tricep_extension",
    name="Tricep Extension",
    category=ExerciseCategory.STRENGTH,
    analyzer=analyzers.tricep_extension,
    primary_joints=ARM,
    start_angle=75,
    peak_angle=150,
    default_sets=3,
    default_reps=12,
    description="Hold one dumbbell overhead with both hands, lower behind head, then extend.",
    muscle_groups=("Triceps",),
    camera_setup="Camera to your side at shoulder height; elbow to wrist visible.",
    steps=(
        "Hold one dumbbell overhead with both hands.",
        "Keep elbows close to your head, pointing at the ceiling.",
        "Lower the dumbbell behind your head by bending the elbows only.",
        "Press back up. That's one rep.",
    ),
))

# ── Yoga (reps are seconds held) ──────────────────────────────────────────

WARRIOR_ONE = register(ExerciseDefinition(
    id="warrior_one",
    name="Warrior I",
    category=ExerciseCategory.YOGA,
    analyzer=analyzers.warrior_one,
    primary_joints=KNEE,
    start_angle=170,
    peak_angle=95,
    default_sets=2,
    default_reps=30,
    default_rest_seconds=30,
    description="Step one foot back, bend front knee to 90 degrees, raise arms overhead.",
    muscle_groups=("Hip Flexors", "Quads", "Shoulders"),
    camera_setup="Camera to your side; full body from head to feet visible.",
    steps=(
        "Step one foot back 3-4 feet. Back foot turns out 45 degrees.",
        "Bend the front knee to 90 degrees, knee over ankle.",
        "Square your hips to face forward.",
        "Raise both arms overhead, palms facing each other.",
        "Hold and breathe for the full duration.",
    ),
))

WARRIOR_TWO = register(ExerciseDefinition(
    id="warrior_two",
    name="Warrior II",
    category=ExerciseCategory.YOGA,
    analyzer=analyzers.warrior_two,
    primary_joints=KNEE,
    start_angle=175,
    peak_angle=90,
    default_sets=2,
    default_reps=30,
    default_rest_seconds=30,
    description="Wide stance, bend front knee, extend arms parallel to floor and gaze over front hand.",
    muscle_groups=("Quads", "Glutes", "Shoulders"),
    camera_setup="Camera in front of you; both arms and legs fully visible.",
    steps=(
        "Stand wide, feet 3-4 feet apart. Turn the right foot out 90 degrees.",
        "Bend the right knee to 90 degrees, knee tracking over ankle.",
        "Extend both arms at shoulder height, parallel to the floor.",
        "Gaze over the front fingertips. Keep the torso upright.",
        "Hold and breathe. Switch sides after.",
    ),
))

TREE_POSE = register(ExerciseDefinition(
    id="tree_pose",
    name="Tree Pose",
    category=ExerciseCategory.YOGA,
    analyzer=analyzers.tree_pose,
    primary_joints=KNEE,
    start_angle=170,
    peak_angle=60,
    default_sets=2,
    default_reps=30,
    default_rest_seconds=20,
    description="Stand on one leg, place the other foot on your inner thigh, raise arms overhead.",
    muscle_groups=("Balance", "Core", "Glutes"),
    camera_setup="Camera in front of you; head to standing foot visible.",
    steps=(
        "Stand tall. Fix your gaze on a still point.",
        "Shift your weight onto the right foot.",
        "Place the left foot on the inner right calf or thigh, never the knee.",
        "Raise both arms overhead when balanced.",
        "Hold, then switch sides.",
    ),
))

DOWNWARD_DOG = register(ExerciseDefinition(
    id="downward_dog",
    name="Downward Dog",
    category=ExerciseCategory.YOGA,
    analyzer=analyzers.downward_dog,
    primary_joints=HIP_HINGE,
    start_angle=170,
    peak_angle=80,
    default_sets=3,
    default_reps=20,
    default_rest_seconds=30,
    description="Hands and feet on floor, hips raised high, forming an inverted V shape.",
    muscle_groups=("Hamstrings", "Shoulders", "Calves", "Core"),
    camera_setup="Camera to your side at floor level; full body visible.",
    steps=(
        "Start on all fours, hands under shoulders.",
        "Tuck the toes and lift the hips toward the ceiling.",
        "Straighten the legs as much as possible.",
        "Press hands into the floor and let the head hang between the arms.",
        "Hold and breathe in an inverted V shape.",
    ),
))

CHAIR_POSE = register(ExerciseDefinition(
    id="chair_pose",
    name="Chair Pose",
    category=ExerciseCategory.YOGA,
    analyzer=analyzers.chair_pose,
    primary_joints=KNEE,
    start_angle=172,
    peak_angle=110,
    default_sets=3,
    default_reps=30,
    default_rest_seconds=30,
    description="Feet together, bend knees as if sitting in a chair, raise arms overhead.",
    muscle_groups=("Quads", "Glutes", "Core", "Shoulders"),
    camera_setup="Camera to your side; full body from head to feet visible.",
    steps=(
        "Stand tall, feet together or hip-width.",
        "Raise both arms overhead, biceps beside the ears.",
        "Bend the knees and push the hips back into an invisible chair.",
        "Weight in the heels, torso slightly forward.",
        "Hold as low as comfortable.",
    ),
))
