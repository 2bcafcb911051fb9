from __future__ import annotations
import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Callable, List, Optional, Set

from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from getup.common.config import Settings, load_settings
from getup.counter.exercises import CATALOG, ExerciseCategory, UnknownExerciseError, exercises, get_exercise
from getup.counter.pose_core import JointSnapshot
from getup.counter.runner import WorkoutRunner
from getup.counter.session import WorkoutController, WorkoutStateError
from getup.data.db import WorkoutStore

logger = logging.getLogger(__name__)

CALL_TIMEOUT = 5.0


class StartRequest(BaseModel):
    exercise_id: str
    sets: Optional[int] = Field(default=None, ge=1)
    reps: Optional[int] = Field(default=None, ge=1)
    rest_seconds: Optional[int] = Field(default=None, ge=0)


class Broadcaster:
    """Fans event dicts out to every connected WebSocket from any thread."""

    def __init__(self):
        self.clients: Set[WebSocket] = set()
        self.loop: Optional[asyncio.AbstractEventLoop] = None

    def publish(self, ev: dict):
        if self.loop is None or self.loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.broadcast(ev), self.loop)

    async def broadcast(self, obj: dict):
        dead = []
        for ws in list(self.clients):
            try:
                await ws.send_text(json.dumps(obj))
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.clients.discard(ws)


class BroadcastCapture:
    """Capture control for browser joint sources: tells clients to start or stop streaming."""

    def __init__(self, publish: Callable[[dict], None]):
        self.publish = publish
        self.active = False

    def start(self):
        self.active = True
        self.publish({"type": "capture", "active": True})

    def stop(self):
        self.active = False
        self.publish({"type": "capture", "active": False})


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[WorkoutStore] = None,
    controller: Optional[WorkoutController] = None,
) -> FastAPI:
    settings = settings or load_settings()
    store = store if store is not None else WorkoutStore(settings.db_path)
    hub = Broadcaster()
    if controller is None:
        controller = WorkoutController(
            catalog=CATALOG,
            capture=BroadcastCapture(hub.publish),
            store=store,
            settings=settings,
        )
    controller.set_event_sink(hub.publish)
    runner = WorkoutRunner(controller, queue_size=settings.frame_queue_size)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        hub.loop = asyncio.get_running_loop()
        runner.start()
        logger.info("workout runner started")
        try:
            yield
        finally:
            runner.stop()
            hub.loop = None

    app = FastAPI(title="GetUp", lifespan=lifespan)
    app.state.controller = controller
    app.state.runner = runner
    app.state.store = store
    app.state.hub = hub

    def run(fn, *args, **kwargs):
        return runner.call(fn, *args, **kwargs).result(timeout=CALL_TIMEOUT)

    @app.exception_handler(UnknownExerciseError)
    async def _unknown_exercise(request: Request, exc: UnknownExerciseError):
        return JSONResponse({"detail": str(exc)}, status_code=404)

    @app.exception_handler(WorkoutStateError)
    async def _bad_state(request: Request, exc: WorkoutStateError):
        return JSONResponse({"detail": str(exc)}, status_code=409)

    # Catalog

    @app.get("/exercises")
    def list_exercises(category: Optional[ExerciseCategory] = None) -> List[dict]:
        return [d.to_dict() for d in exercises(category, controller.catalog)]

    @app.get("/exercises/{exercise_id}")
    def exercise_detail(exercise_id: str) -> dict:
        return get_exercise(exercise_id, controller.catalog).to_dict()

    # Workout lifecycle

    def _start(req: StartRequest):
        controller.configure(req.exercise_id, sets=req.sets, reps=req.reps, rest_seconds=req.rest_seconds)
        controller.start_countdown()
        return controller.status()

    @app.post("/workout/start")
    def start_workout(req: StartRequest) -> dict:
        try:
            return run(_start, req).to_dict()
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from None

    @app.post("/workout/skip-rest")
    def skip_rest() -> dict:
        run(controller.skip_rest)
        return run(controller.status).to_dict()

    @app.post("/workout/end")
    def end_workout() -> dict:
        summary = run(controller.end_workout)
        return {"summary": summary.to_dict() if summary else None}

    @app.post("/workout/reset")
    def reset_workout() -> dict:
        run(controller.reset_to_setup)
        return run(controller.status).to_dict()

    @app.get("/workout/status")
    def workout_status() -> dict:
        return run(controller.status).to_dict()

    # History

    @app.get("/history")
    def history(limit: int = Query(50, ge=1, le=500)) -> List[dict]:
        return [s.to_dict() for s in store.list_sessions(limit)]

    @app.get("/history/stats")
    def history_stats() -> dict:
        return store.weekly_stats()

    @app.delete("/history/{session_id}")
    def delete_history(session_id: str) -> dict:
        if not store.delete_session(session_id):
            raise HTTPException(status_code=404, detail=f"no such session: {session_id}")
        return {"deleted": session_id}

    # Browser joint stream

    @app.websocket("/ws/joints")
    async def ws_joints(ws: WebSocket):
        await ws.accept()
        hub.clients.add(ws)
        logger.info("ws client connected (%d total)", len(hub.clients))
        try:
            while True:
                raw = await ws.receive_text()
                try:
                    data = json.loads(raw)
                    if data.get("type", "joints") != "joints":
                        continue
                    snapshot = JointSnapshot.from_payload(data)
                except (ValueError, TypeError, AttributeError) as e:
                    await ws.send_text(json.dumps({"type": "error", "msg": f"bad joint payload: {e}"}))
                    continue
                runner.submit(snapshot)
        except WebSocketDisconnect:
            pass
        finally:
            hub.clients.discard(ws)
            logger.info("ws client closed (%d left)", len(hub.clients))

    return app
