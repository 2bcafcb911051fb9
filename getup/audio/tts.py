from __future__ import annotations
import logging
import platform
import queue
import subprocess
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class TTSEngine:
    """
    Spoken workout cues.

    `say()` only queues the text, so callers on the workout thread never wait
    for speech. A worker thread speaks with macOS `say` when available and
    pyttsx3 elsewhere. When cues pile up while speaking, the oldest pending
    cue is dropped so the count never lags far behind the workout.
    """

    def __init__(self, prefer_mac_say: bool = True, max_pending: int = 2):
        self.prefer_mac_say = prefer_mac_say and platform.system() == "Darwin"
        self.q: "queue.Queue[Optional[str]]" = queue.Queue(maxsize=max_pending)
        self._pyttsx3 = None
        self._speaking = False
        self._stop_event = threading.Event()
        self.worker = threading.Thread(target=self._run, daemon=True, name="tts")
        self.worker.start()

    def say(self, text: str):
        if not text or self._stop_event.is_set():
            return
        while True:
            try:
                self.q.put_nowait(text)
                return
            except queue.Full:
                try:
                    stale = self.q.get_nowait()
                    self.q.task_done()
                    logger.debug("dropped stale cue %r", stale)
                except queue.Empty:
                    pass

    def is_speaking(self) -> bool:
        return self._speaking or not self.q.empty()

    def wait_until_idle(self):
        """Block until every queued cue has been spoken."""
        self.q.join()

    def _ensure_pyttsx3(self):
        if self._pyttsx3 is None:
            import pyttsx3  # lazy import
            self._pyttsx3 = pyttsx3.init()

    def _speak(self, text: str):
        if self.prefer_mac_say:
            subprocess.run(["say", text], check=False)
        else:
            self._ensure_pyttsx3()
            self._pyttsx3.say(text)
            self._pyttsx3.runAndWait()

    def _run(self):
        while not self._stop_event.is_set():
            try:
                text = self.q.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                if text:
                    self._speaking = True
                    self._speak(text)
            except Exception:
                logger.exception("speech failed for %r", text)
            finally:
                self._speaking = False
                self.q.task_done()

    def shutdown(self):
        self._stop_event.set()
        self.worker.join(timeout=1.0)
