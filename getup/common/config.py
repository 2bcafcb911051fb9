from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    db_path: str = "./getup.db"
    # None keeps each exercise's own rest
    default_rest_seconds: Optional[int] = None
    countdown_seconds: int = 3
    voice: bool = False
    voice_feedback: bool = False
    camera_index: int = 0
    frame_queue_size: int = 8
    log_level: str = "INFO"

    def __post_init__(self):
        if self.default_rest_seconds is not None and self.default_rest_seconds < 0:
            raise ValueError("GETUP_DEFAULT_REST cannot be negative")
        if self.countdown_seconds < 0:
            raise ValueError("GETUP_COUNTDOWN cannot be negative")
        if self.frame_queue_size < 1:
            raise ValueError("GETUP_FRAME_QUEUE must be at least 1")


def _int(env: Mapping[str, str], key: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None


def _flag(env: Mapping[str, str], key: str) -> bool:
    return env.get(key, "").strip().lower() in _TRUE


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Read GETUP_* settings; a .env file in the working directory is loaded first."""
    if env is None:
        load_dotenv()
        env = os.environ
    return Settings(
        db_path=env.get("GETUP_DB_PATH", "./getup.db"),
        default_rest_seconds=_int(env, "GETUP_DEFAULT_REST", None),
        countdown_seconds=_int(env, "GETUP_COUNTDOWN", 3),
        voice=_flag(env, "GETUP_VOICE"),
        voice_feedback=_flag(env, "GETUP_VOICE_FEEDBACK"),
        camera_index=_int(env, "GETUP_CAMERA_INDEX", 0),
        frame_queue_size=_int(env, "GETUP_FRAME_QUEUE", 8),
        log_level=env.get("GETUP_LOG_LEVEL", "INFO").upper(),
    )
