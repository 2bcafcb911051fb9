from __future__ import annotations
import logging
import threading
import time
from typing import Callable, Optional, Sequence

from getup.counter.pose_core import Joint, JointPoint, JointSnapshot, midpoint

logger = logging.getLogger(__name__)

# MediaPipe Pose landmark index for each joint we track
MEDIAPIPE_LANDMARKS = {
    Joint.NOSE: 0,
    Joint.LEFT_SHOULDER: 11,
    Joint.RIGHT_SHOULDER: 12,
    Joint.LEFT_ELBOW: 13,
    Joint.RIGHT_ELBOW: 14,
    Joint.LEFT_WRIST: 15,
    Joint.RIGHT_WRIST: 16,
    Joint.LEFT_HIP: 23,
    Joint.RIGHT_HIP: 24,
    Joint.LEFT_KNEE: 25,
    Joint.RIGHT_KNEE: 26,
    Joint.LEFT_ANKLE: 27,
    Joint.RIGHT_ANKLE: 28,
}


def landmarks_to_snapshot(landmarks: Sequence, timestamp: float) -> JointSnapshot:
    """
    Convert MediaPipe landmarks (x, y, visibility; y grows downward) into a
    JointSnapshot with y growing upward. Neck and root are the shoulder and
    hip midpoints.
    """
    joints = {}
    for joint, idx in MEDIAPIPE_LANDMARKS.items():
        if idx >= len(landmarks):
            continue
        lm = landmarks[idx]
        joints[joint] = JointPoint(float(lm.x), 1.0 - float(lm.y), float(getattr(lm, "visibility", 1.0)))

    for joint, (a, b) in (
        (Joint.NECK, (Joint.LEFT_SHOULDER, Joint.RIGHT_SHOULDER)),
        (Joint.ROOT, (Joint.LEFT_HIP, Joint.RIGHT_HIP)),
    ):
        if a in joints and b in joints:
            joints[joint] = midpoint(joints[a], joints[b])
    return JointSnapshot(joints, timestamp)


class CameraCapture:
    """
    Webcam joint source: OpenCV frames through MediaPipe Pose, one
    JointSnapshot per frame to `on_snapshot`. Frames without a detected
    person produce an empty snapshot so the consumer sees the gap.

    start()/stop() may be called once per workout; each start runs a fresh
    capture thread.
    """

    def __init__(
        self,
        on_snapshot: Callable[[JointSnapshot], None],
        camera_index: int = 0,
        show_window: bool = False,
        on_error: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.on_snapshot = on_snapshot
        self.camera_index = camera_index
        self.show_window = show_window
        self.on_error = on_error
        self._clock = clock
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop_event,), daemon=True, name="camera-capture")
        self._thread.start()
        logger.info("camera %d started", self.camera_index)

    def stop(self):
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        self._thread = None
        logger.info("camera %d stopped", self.camera_index)

    def _run(self, stop: threading.Event):
        import cv2  # lazy import
        import mediapipe as mp

        cap = None
        pose = None
        try:
            cap = cv2.VideoCapture(self.camera_index)
            if not cap.isOpened():
                raise RuntimeError(f"camera {self.camera_index} not available")
            pose = mp.solutions.pose.Pose(min_detection_confidence=0.5, min_tracking_confidence=0.5)

            while not stop.is_set():
                ok, frame = cap.read()
                if not ok:
                    time.sleep(0.01)
                    continue
                image = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                res = pose.process(image)
                ts = self._clock()
                if res.pose_landmarks:
                    snapshot = landmarks_to_snapshot(res.pose_landmarks.landmark, ts)
                else:
                    snapshot = JointSnapshot.empty(ts)
                self.on_snapshot(snapshot)

                if self.show_window:
                    cv2.imshow("GetUp", frame)
                    cv2.waitKey(1)
        except Exception as e:
            logger.exception("camera capture failed")
            if self.on_error:
                self.on_error(str(e))
        finally:
            if pose is not None:
                pose.close()
            if cap is not None:
                cap.release()
            if self.show_window:
                cv2.destroyAllWindows()
