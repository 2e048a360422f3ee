from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

METERS_PER_MILE = 1609.34
METERS_PER_KM = 1000.0


@dataclass(frozen=True)
class Thresholds:
    """Tuning constants shared by the analysis components."""

    gap_threshold_s: float = 5.0  # wall-clock jump that counts as a gap
    pause_elapsed_min_s: float = 5.0  # fallback: elapsed must jump more than this...
    pause_timer_max_s: float = 1.0  # ...while the timer moves less than this
    min_lap_duration_s: float = 5.0  # shorter laps are lap-button noise
    metric_tolerance_s: float = 2.0  # max distance to the nearest telemetry sample
    meters_per_unit: float = METERS_PER_MILE


DEFAULT_THRESHOLDS = Thresholds()


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


@dataclass
class Config:
    gap_threshold_s: float = 5.0
    min_lap_duration_s: float = 5.0
    metric_tolerance_s: float = 2.0
    pace_unit: str = "mile"  # "mile" or "km"
    fps: int = 2  # the bars move slowly, 2fps is plenty
    video_width: int = 3840
    video_height: int = 2160
    dev_mode_limit_s: float = 60.0
    ffmpeg_bin: str = "ffmpeg"
    headless: bool = True
    output_dir: Path | None = None  # None = current directory
    flask_port: int = 5000
    flask_debug: bool = False
    secret_key: str = field(default_factory=lambda: secrets.token_hex(16))

    @property
    def meters_per_unit(self) -> float:
        return METERS_PER_KM if self.pace_unit == "km" else METERS_PER_MILE

    @property
    def thresholds(self) -> Thresholds:
        return Thresholds(
            gap_threshold_s=self.gap_threshold_s,
            min_lap_duration_s=self.min_lap_duration_s,
            metric_tolerance_s=self.metric_tolerance_s,
            meters_per_unit=self.meters_per_unit,
        )

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> Config:
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()  # loads .env from cwd

        output_dir = os.environ.get("OUTPUT_DIR")
        pace_unit = os.environ.get("PACE_UNIT", "mile").lower()
        if pace_unit not in ("mile", "km"):
            raise ValueError(f"PACE_UNIT must be 'mile' or 'km', got {pace_unit!r}")

        return cls(
            gap_threshold_s=float(os.environ.get("GAP_THRESHOLD_S", "5.0")),
            min_lap_duration_s=float(os.environ.get("MIN_LAP_DURATION_S", "5.0")),
            metric_tolerance_s=float(os.environ.get("METRIC_TOLERANCE_S", "2.0")),
            pace_unit=pace_unit,
            fps=int(os.environ.get("VIDEO_FPS", "2")),
            video_width=int(os.environ.get("VIDEO_WIDTH", "3840")),
            video_height=int(os.environ.get("VIDEO_HEIGHT", "2160")),
            dev_mode_limit_s=float(os.environ.get("DEV_MODE_LIMIT_S", "60")),
            ffmpeg_bin=os.environ.get("FFMPEG_BIN", "ffmpeg"),
            headless=_env_bool("HEADLESS", "true"),
            output_dir=Path(output_dir) if output_dir else None,
            flask_port=int(os.environ.get("FLASK_PORT", "5000")),
            flask_debug=_env_bool("FLASK_DEBUG", "false"),
            secret_key=os.environ.get("SECRET_KEY") or secrets.token_hex(16),
        )
