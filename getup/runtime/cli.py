from __future__ import annotations
import argparse
import json
import logging
import sys
import time
from typing import List, Optional

from getup.common.config import Settings, load_settings
from getup.counter.exercises import ExerciseCategory, UnknownExerciseError, exercises, get_exercise
from getup.counter.pose_core import JointSnapshot
from getup.counter.session import WorkoutController, WorkoutState, WorkoutSummary, format_duration
from getup.data.db import WorkoutStore

logger = logging.getLogger(__name__)


def _print_event(ev: dict):
    kind = ev.get("type")
    if kind == "rep_completed":
        print(f"  set {ev['set_number']} · rep {ev['reps']}", flush=True)
    elif kind == "set_completed":
        print(f"set {ev['set_number']} done", flush=True)
    elif kind == "rest_started":
        print(f"rest {ev['seconds']}s", flush=True)
    elif kind == "rest_completed":
        print("rest skipped" if ev["skipped"] else "rest over", flush=True)
    elif kind == "countdown_tick":
        print(f"{ev['remaining']}…", flush=True)
    elif kind == "feedback":
        print(f"  [{ev['quality']}] {ev['message']}", flush=True)
    elif kind == "state_changed":
        logger.debug("state %s -> %s", ev["previous"], ev["state"])
    elif kind == "workout_completed":
        print("workout complete!", flush=True)
    elif kind == "session_saved":
        logger.info("session %s saved", ev["session_id"])


def _print_summary(summary: Optional[WorkoutSummary]):
    if summary is None:
        print("nothing recorded", flush=True)
        return
    print(f"{summary.exercise_name}: {summary.summary_line} in {format_duration(summary.duration_seconds)}", flush=True)
    for s in summary.sets:
        print(f"  set {s.set_number}: {s.reps_completed} reps, form {int(s.form_score * 100)}%", flush=True)


def _announcer(settings: Settings):
    if not settings.voice:
        return None
    from getup.audio.tts import TTSEngine
    return TTSEngine()


def cmd_exercises(args, settings: Settings) -> int:
    category = ExerciseCategory(args.category) if args.category else None
    for d in exercises(category):
        unit = "s hold" if d.is_hold_pose else " reps"
        print(
            f"{d.id:<18} {d.name:<18} {d.category.value:<9} "
            f"{d.default_sets}x{d.default_reps}{unit}, rest {d.default_rest_seconds}s",
            flush=True,
        )
    return 0


class _ReplayClock:
    """Virtual clock that follows the timestamps of the replayed snapshots."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def cmd_replay(args, settings: Settings) -> int:
    clock = _ReplayClock()
    store = None if args.no_save else WorkoutStore(settings.db_path)
    controller = WorkoutController(store=store, clock=clock, wall_clock=time.time, settings=settings)
    controller.set_event_sink(_print_event)
    controller.configure(args.exercise, sets=args.sets, reps=args.reps, rest_seconds=args.rest)

    started = False
    with open(args.file, "r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, 1):
            line = line.strip()
            if not line:
                continue
            try:
                snapshot = JointSnapshot.from_payload(json.loads(line))
            except ValueError as e:
                print(f"{args.file}:{lineno}: skipped ({e})", file=sys.stderr, flush=True)
                continue
            clock.now = snapshot.timestamp
            if not started:
                controller.start_countdown(now=clock.now)
                started = True
            controller.tick()
            if controller.state is WorkoutState.RESTING and args.skip_rest:
                controller.skip_rest()
            controller.process_snapshot(snapshot)
            if controller.state is WorkoutState.COMPLETE:
                break

    if controller.state is WorkoutState.COMPLETE:
        summary = controller.last_summary
    else:
        summary = controller.end_workout()
    _print_summary(summary)
    return 0


def cmd_camera(args, settings: Settings) -> int:
    from getup.counter.capture import CameraCapture
    from getup.counter.runner import WorkoutRunner

    store = WorkoutStore(settings.db_path)
    controller = WorkoutController(store=store, announcer=_announcer(settings), settings=settings)
    controller.set_event_sink(_print_event)
    runner = WorkoutRunner(controller, queue_size=settings.frame_queue_size)
    controller.capture = CameraCapture(
        runner.submit,
        camera_index=args.camera if args.camera is not None else settings.camera_index,
        show_window=args.window,
    )
    controller.configure(args.exercise, sets=args.sets, reps=args.reps, rest_seconds=args.rest)
    definition = get_exercise(args.exercise)
    print(f"{definition.name}: {definition.camera_setup}", flush=True)
    for i, step in enumerate(definition.steps, 1):
        print(f"  {i}. {step}", flush=True)
    print("Press Ctrl+C to end the workout.", flush=True)

    runner.start()
    runner.call(controller.start_countdown).result()
    try:
        while runner.call(lambda: controller.state).result() is not WorkoutState.COMPLETE:
            time.sleep(0.25)
        summary = controller.last_summary
    except KeyboardInterrupt:
        print("\nEnding…", flush=True)
        summary = runner.call(controller.end_workout).result()
    finally:
        runner.stop()
    _print_summary(summary)
    return 0


def cmd_history(args, settings: Settings) -> int:
    store = WorkoutStore(settings.db_path)
    stats = store.weekly_stats()
    print(
        f"this week: {stats['this_week']} · all time: {stats['total']} · "
        f"avg form this week: {int(stats['avg_form_this_week'] * 100)}%",
        flush=True,
    )
    for s in store.list_sessions(args.limit):
        day = time.strftime("%a %d %b %H:%M", time.localtime(s.started_at))
        print(f"{s.id[:8]}  {day}  {s.exercise_name:<18} {s.summary_line}", flush=True)
    return 0


def cmd_serve(args, settings: Settings) -> int:
    import uvicorn
    from getup.runtime.server import create_app

    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_level=settings.log_level.lower())
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="getup", description="Exercise form feedback and rep counting")
    sub = p.add_subparsers(dest="command", required=True)

    ex = sub.add_parser("exercises", help="list the exercise catalog")
    ex.add_argument("--category", choices=[c.value for c in ExerciseCategory])
    ex.set_defaults(func=cmd_exercises)

    def workout_args(sp):
        sp.add_argument("exercise")
        sp.add_argument("--sets", type=int)
        sp.add_argument("--reps", type=int)
        sp.add_argument("--rest", type=int)

    cam = sub.add_parser("camera", help="run a workout from the webcam")
    workout_args(cam)
    cam.add_argument("--camera", type=int)
    cam.add_argument("--window", action="store_true", help="show the camera feed")
    cam.set_defaults(func=cmd_camera)

    rp = sub.add_parser("replay", help="run a workout from recorded JSON-lines snapshots")
    rp.add_argument("file")
    workout_args(rp)
    rp.add_argument("--skip-rest", action="store_true", help="skip rest periods instead of waiting them out")
    rp.add_argument("--no-save", action="store_true")
    rp.set_defaults(func=cmd_replay)

    hist = sub.add_parser("history", help="show saved workouts")
    hist.add_argument("--limit", type=int, default=20)
    hist.set_defaults(func=cmd_history)

    srv = sub.add_parser("serve", help="run the HTTP/WebSocket server")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)
    srv.set_defaults(func=cmd_serve)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args, settings)
    except (UnknownExerciseError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr, flush=True)
        return 2


if __name__ == "__main__":
    sys.exit(main())
