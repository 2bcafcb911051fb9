from __future__ import annotations
import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional

from getup.counter.pose_core import JointSnapshot
from getup.counter.session import WorkoutController

logger = logging.getLogger(__name__)


class WorkoutRunner(threading.Thread):
    """
    Single consumer for a WorkoutController.

    Snapshots from the capture thread and commands from the server or CLI
    share one bounded queue and run on this thread in arrival order. The loop
    wakes at least every `tick_interval` seconds to advance the controller's
    timers.
    """

    def __init__(
        self,
        controller: WorkoutController,
        queue_size: int = 8,
        tick_interval: float = 0.1,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        super().__init__(daemon=True, name="workout-runner")
        self.controller = controller
        self.tick_interval = tick_interval
        self.on_error = on_error
        self.dropped_frames = 0
        self._q: "queue.Queue[tuple]" = queue.Queue(maxsize=queue_size)
        self._stop_event = threading.Event()

    def submit(self, snapshot: JointSnapshot) -> bool:
        """Queue a snapshot without blocking; a full queue drops it."""
        try:
            self._q.put_nowait(("frame", snapshot, None))
            return True
        except queue.Full:
            self.dropped_frames += 1
            if self.dropped_frames % 30 == 1:
                logger.warning("frame queue full, %d frames dropped so far", self.dropped_frames)
            return False

    def call(self, fn: Callable[..., Any], *args, **kwargs) -> "Future[Any]":
        """
        Run fn(*args, **kwargs) on the runner thread; the result arrives on the Future.

        Once the runner is stopped the Future comes back cancelled.
        """
        fut: "Future[Any]" = Future()
        # commands wait for room instead of being dropped
        while not self._stop_event.is_set():
            try:
                self._q.put(("call", (fn, args, kwargs), fut), timeout=self.tick_interval)
                break
            except queue.Full:
                continue
        if self._stop_event.is_set():
            fut.cancel()
            self._cancel_pending()
        return fut

    def run(self):
        while not self._stop_event.is_set():
            try:
                kind, payload, fut = self._q.get(timeout=self.tick_interval)
            except queue.Empty:
                kind = None
            try:
                if kind == "frame":
                    self.controller.process_snapshot(payload)
                elif kind == "call":
                    self._run_call(payload, fut)
                self.controller.tick()
            except Exception as e:
                logger.exception("workout runner error")
                if self.on_error:
                    self.on_error(e)

    def _run_call(self, payload, fut: Future):
        fn, args, kwargs = payload
        if not fut.set_running_or_notify_cancel():
            return
        try:
            fut.set_result(fn(*args, **kwargs))
        except Exception as e:
            fut.set_exception(e)

    def _cancel_pending(self):
        while True:
            try:
                _, _, fut = self._q.get_nowait()
            except queue.Empty:
                return
            if fut is not None:
                fut.cancel()

    def stop(self, timeout: Optional[float] = 1.0):
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout=timeout)
        self._cancel_pending()
