from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Optional, Sequence

from fitvideo.config import DEFAULT_THRESHOLDS, Thresholds
from fitvideo.metrics import ActivityMetrics
from fitvideo.segments import Segment

# Bar geometry, in pixels of the output frame
BAR_SIDE_MARGIN = 100
BAR_GAP = 20
BAR_TOP = 40
BAR_HEIGHT = 120


def segment_progress(segment: Segment, t: float) -> float:
    """Fraction of the segment completed at time t, in [0, 1]."""
    if t < segment.start_time:
        return 0.0
    if t >= segment.end_time:
        return 1.0
    return (t - segment.start_time) / segment.duration


def format_elapsed(seconds: float) -> str:
    total = int(max(seconds, 0))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


@dataclass(frozen=True)
class RenderState:
    t: float
    segment_progress: tuple[float, ...]
    heart_rate: Optional[float]
    distance_fraction: Optional[float]
    current_pace: Optional[float]
    elapsed_label: str

    def to_dict(self) -> dict:
        d = asdict(self)
        d["segment_progress"] = list(self.segment_progress)
        return d


class Timeline:
    """
    Maps a time offset to what the overlay should show at that instant.

    render() has no side effects, so the preview server and the frame
    exporter can call it in any order and get the same frames.
    """

    def __init__(
        self,
        segments: Sequence[Segment],
        metrics: ActivityMetrics,
        thresholds: Thresholds | None = None,
    ):
        self.segments = tuple(segments)
        self.metrics = metrics
        self.thresholds = thresholds or DEFAULT_THRESHOLDS
        self.total_duration = sum(s.duration for s in self.segments)

    def render(self, t: float) -> RenderState:
        tol = self.thresholds.metric_tolerance_s
        distance = self.metrics.distance.nearest(t, tol)
        fraction = None
        if distance is not None and self.metrics.total_distance > 0:
            fraction = min(distance / self.metrics.total_distance, 1.0)

        return RenderState(
            t=t,
            segment_progress=tuple(segment_progress(s, t) for s in self.segments),
            heart_rate=self.metrics.heart_rate.nearest(t, tol),
            distance_fraction=fraction,
            current_pace=self.metrics.pace.nearest(t, tol),
            elapsed_label=format_elapsed(t),
        )


@dataclass(frozen=True)
class BarLayout:
    x: float
    width: float
    y: float = BAR_TOP
    height: float = BAR_HEIGHT


def layout_bars(
    segments: Sequence[Segment], frame_width: int, total_duration: float | None = None
) -> list[BarLayout]:
    """
    Place one bar per segment, left to right, each as wide as its share of
    total_duration (default: the segments' own total).
    """
    if not segments:
        return []
    total = total_duration or sum(s.duration for s in segments)
    usable = frame_width - 2 * BAR_SIDE_MARGIN - BAR_GAP * (len(segments) - 1)

    bars = []
    x = float(BAR_SIDE_MARGIN)
    for s in segments:
        width = (s.duration / total) * usable if total > 0 else 0.0
        bars.append(BarLayout(x=x, width=width))
        x += width + BAR_GAP
    return bars


def frame_times(duration: float, fps: int) -> list[float]:
    """Timestamps of every output frame for a clip of the given length."""
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    count = math.ceil(duration * fps)
    return [i / fps for i in range(count)]
