import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Recording defaults
DEFAULT_FPS = 20
DEFAULT_DELAY_MS = 800
DEFAULT_VIEWPORT_WIDTH = 1280
DEFAULT_VIEWPORT_HEIGHT = 720
DEFAULT_MAX_WIDTH = 800

# Safety cap on planning rounds
MAX_ITERATIONS = 20

DEFAULT_MODEL = "gpt-4o"

# Output paths
OUT_DIR = Path("artifacts/demogif/")


@dataclass(frozen=True)
class RunConfig:
    fps: int = DEFAULT_FPS
    base_delay_ms: int = DEFAULT_DELAY_MS
    viewport_width: int = DEFAULT_VIEWPORT_WIDTH
    viewport_height: int = DEFAULT_VIEWPORT_HEIGHT
    max_width: int = DEFAULT_MAX_WIDTH
    cursor_overlay: bool = True
    max_iterations: int = MAX_ITERATIONS
    headless: bool = True
    profile_dir: Optional[str] = None
    model: str = DEFAULT_MODEL

    def __post_init__(self):
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")
        if self.max_iterations <= 0:
            raise ValueError(
                f"max_iterations must be positive, got {self.max_iterations}")

    @property
    def frame_interval_ms(self) -> int:
        return max(1000 // self.fps, 1)

    def with_overrides(self, **kwargs) -> "RunConfig":
        return replace(self, **kwargs)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config(**overrides) -> RunConfig:
    """Build a RunConfig from DEMOGIF_* environment variables (.env aware)."""
    load_dotenv()

    config = RunConfig(
        fps=_env_int("DEMOGIF_FPS", DEFAULT_FPS),
        base_delay_ms=_env_int("DEMOGIF_DELAY_MS", DEFAULT_DELAY_MS),
        viewport_width=_env_int("DEMOGIF_WIDTH", DEFAULT_VIEWPORT_WIDTH),
        viewport_height=_env_int("DEMOGIF_HEIGHT", DEFAULT_VIEWPORT_HEIGHT),
        max_width=_env_int("DEMOGIF_MAX_WIDTH", DEFAULT_MAX_WIDTH),
        cursor_overlay=not _env_bool("DEMOGIF_NO_CURSOR", False),
        max_iterations=_env_int("DEMOGIF_MAX_ITERATIONS", MAX_ITERATIONS),
        headless=_env_bool("DEMOGIF_HEADLESS", True),
        profile_dir=os.getenv("DEMOGIF_PROFILE") or None,
        model=os.getenv("DEMOGIF_MODEL", DEFAULT_MODEL),
    )
    if overrides:
        config = config.with_overrides(**overrides)
    return config
