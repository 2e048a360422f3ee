from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Sequence

from fitvideo.config import DEFAULT_THRESHOLDS, Thresholds

log = logging.getLogger(__name__)

WARMUP = "warmup"
INTERVAL = "interval"
REST = "rest"
COOLDOWN = "cooldown"
WORKOUT = "workout"

# FIT "intensity" enum, for decoders that hand back raw numbers
INTENSITY_CODES = {
    0: "active",
    1: "rest",
    2: "warmup",
    3: "cooldown",
    4: "recovery",
    5: "interval",
    6: "other",
}

_CLOCK_PACE = re.compile(r"(\d+):(\d+)")
_DECIMAL_PACE = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)")


def normalize_intensity(value: object) -> str:
    if value is None:
        return "unknown"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return INTENSITY_CODES.get(int(value), "unknown")
    s = str(value).strip().lower()
    return s or "unknown"


@dataclass(frozen=True)
class Lap:
    index: int  # position in the file, before any filtering
    duration: float
    intensity: str = "unknown"

    @classmethod
    def from_message(cls, index: int, msg: dict) -> Lap:
        duration = msg.get("total_timer_time") or msg.get("total_elapsed_time") or 0
        return cls(
            index=index,
            duration=float(duration),
            intensity=normalize_intensity(msg.get("intensity")),
        )


def laps_from_messages(messages: Iterable[dict]) -> list[Lap]:
    return [Lap.from_message(i, m) for i, m in enumerate(messages)]


@dataclass
class SegmentGroup:
    """One or more consecutive laps that will become a single Segment."""

    type: str
    name: str
    start_time: float
    duration: float
    lap_indices: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class Segment:
    type: str
    name: str
    start_time: float
    end_time: float
    duration: float
    target_pace: Optional[float] = None  # minutes per distance unit
    source_lap_indices: tuple[int, ...] = ()


def _resolve_type(lap: Lap, is_first: bool, is_last: bool, interval_number: int) -> tuple[str, str]:
    # Evaluation order matters: a lone lap is both first and last and ends up a warmup.
    if is_first or lap.intensity == "warmup":
        return WARMUP, "Warm Up"
    if is_last or lap.intensity == "cooldown":
        return COOLDOWN, "Cool Down"
    if lap.intensity == "interval":
        return INTERVAL, f"Interval {interval_number}"
    if lap.intensity in ("recovery", "rest"):
        return REST, "Rest"
    return WORKOUT, f"Segment {lap.index + 1}"


def classify_laps(
    laps: Sequence[Lap], thresholds: Thresholds | None = None
) -> list[SegmentGroup]:
    """
    Group laps into typed, named runs.

    Laps shorter than the minimum duration are dropped without taking up
    time. Adjacent warm-up laps fold into one group, as do adjacent
    cool-down laps; interval, rest and generic laps always stay separate.
    """
    th = thresholds or DEFAULT_THRESHOLDS
    kept = []
    for lap in laps:
        if lap.duration < th.min_lap_duration_s:
            log.info("Skipping lap %d (too short: %.1fs)", lap.index + 1, lap.duration)
            continue
        kept.append(lap)

    groups: list[SegmentGroup] = []
    current_time = 0.0
    interval_number = 1

    for pos, lap in enumerate(kept):
        seg_type, name = _resolve_type(
            lap, pos == 0, pos == len(kept) - 1, interval_number
        )
        if seg_type == INTERVAL:
            interval_number += 1

        last = groups[-1] if groups else None
        if last is not None and last.name == name and seg_type in (WARMUP, COOLDOWN):
            last.duration += lap.duration
            last.lap_indices.append(lap.index)
        else:
            groups.append(SegmentGroup(
                type=seg_type,
                name=name,
                start_time=current_time,
                duration=lap.duration,
                lap_indices=[lap.index],
            ))

        current_time += lap.duration

    return groups


def build_segments(
    groups: Sequence[SegmentGroup],
    target_paces: Sequence[Optional[float]] | None = None,
) -> list[Segment]:
    """Lay groups end to end from t=0, attaching target paces by position."""
    if target_paces is not None and len(target_paces) != len(groups):
        raise ValueError(
            f"Got {len(target_paces)} target paces for {len(groups)} segments"
        )

    segments: list[Segment] = []
    cursor = 0.0
    for i, group in enumerate(groups):
        segments.append(Segment(
            type=group.type,
            name=group.name,
            start_time=cursor,
            end_time=cursor + group.duration,
            duration=group.duration,
            target_pace=target_paces[i] if target_paces is not None else None,
            source_lap_indices=tuple(group.lap_indices),
        ))
        cursor += group.duration
    return segments


def with_target_paces(
    segments: Sequence[Segment], target_paces: Sequence[Optional[float]]
) -> list[Segment]:
    """Copies of the segments carrying new target paces."""
    if len(target_paces) != len(segments):
        raise ValueError(
            f"Got {len(target_paces)} target paces for {len(segments)} segments"
        )
    return [replace(s, target_pace=p) for s, p in zip(segments, target_paces)]


def parse_pace(text: str) -> Optional[float]:
    """
    Parse a target pace into decimal minutes.

    Accepts "7:30" (optionally followed by units, e.g. "7:30 min/mile") or a
    decimal like "7.5". Returns None for anything else, including zero.
    """
    if text is None:
        return None
    m = _CLOCK_PACE.search(text)
    if m:
        minutes, seconds = int(m.group(1)), int(m.group(2))
        if seconds >= 60:
            return None
        value = minutes + seconds / 60
    else:
        m = _DECIMAL_PACE.match(text)
        if not m:
            return None
        value = float(m.group(1))
    if value <= 0 or math.isinf(value):
        return None
    return value


def format_pace(minutes: float) -> str:
    mins = math.floor(minutes)
    secs = round((minutes - mins) * 60)
    if secs == 60:
        mins, secs = mins + 1, 0
    return f"{mins}:{secs:02d}"
