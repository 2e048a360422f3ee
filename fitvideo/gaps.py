"""
Pause detection over a record time series.

The heuristic assumes the device timer freezes while paused and wall-clock
time keeps running, so for a gap between two records

    implied_pause = wall_clock_delta - timer_delta

Real devices do not always freeze timer_time exactly at the pause edges;
treat the numbers as estimates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from fitvideo.config import DEFAULT_THRESHOLDS, Thresholds
from fitvideo.timeseries import Sample

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Gap:
    index: int  # the record after the gap
    timestamp: datetime
    wall_clock_delta: float
    elapsed_delta: float
    timer_delta: float

    @property
    def implied_pause(self) -> float:
        return self.wall_clock_delta - self.timer_delta


@dataclass(frozen=True)
class PauseReport:
    gaps: tuple[Gap, ...] = ()
    fallback_range: Optional[tuple[int, int]] = None
    method: Optional[str] = None  # "timestamp", "timer" or None

    @property
    def primary(self) -> Optional[Gap]:
        return self.gaps[0] if self.gaps else None

    @property
    def found(self) -> bool:
        return self.method is not None

    @property
    def paused_seconds(self) -> Optional[float]:
        """Estimated pause length at the primary gap, if there is one."""
        primary = self.primary
        return primary.implied_pause if primary else None

    def to_dict(self) -> dict:
        primary = self.primary
        return {
            "found": self.found,
            "method": self.method,
            "gap_count": len(self.gaps),
            "primary": None if primary is None else {
                "index": primary.index,
                "timestamp": primary.timestamp.isoformat(),
                "wall_clock_delta": primary.wall_clock_delta,
                "timer_delta": primary.timer_delta,
                "implied_pause": primary.implied_pause,
            },
            "fallback_range": list(self.fallback_range) if self.fallback_range else None,
        }


def detect_gaps(
    samples: Sequence[Sample], thresholds: Thresholds | None = None
) -> list[Gap]:
    """
    Gaps between consecutive timestamped samples longer than the threshold,
    largest first. Samples without a timestamp are stepped over; equal gaps
    keep record order.
    """
    th = thresholds or DEFAULT_THRESHOLDS
    gaps: list[Gap] = []
    prev: Optional[Sample] = None

    for s in samples:
        if s.timestamp is None:
            continue
        if prev is not None:
            wall = (s.timestamp - prev.timestamp).total_seconds()
            if wall > th.gap_threshold_s:
                gaps.append(Gap(
                    index=s.index,
                    timestamp=s.timestamp,
                    wall_clock_delta=wall,
                    elapsed_delta=(s.elapsed_time or 0.0) - (prev.elapsed_time or 0.0),
                    timer_delta=(s.timer_time or 0.0) - (prev.timer_time or 0.0),
                ))
        prev = s

    # sorted() is stable, so ties stay in index order
    return sorted(gaps, key=lambda g: -g.wall_clock_delta)


def detect_timer_pause(
    samples: Sequence[Sample], thresholds: Thresholds | None = None
) -> Optional[tuple[int, int]]:
    """
    Fallback for files without usable timestamps: look for the elapsed
    counter jumping while the timer barely moves.

    Returns (start, end) spanning from the first to the last qualifying pair,
    or None.
    """
    th = thresholds or DEFAULT_THRESHOLDS
    start: Optional[int] = None
    end: Optional[int] = None

    for i in range(1, len(samples)):
        prev, cur = samples[i - 1], samples[i]
        if None in (prev.elapsed_time, cur.elapsed_time, prev.timer_time, cur.timer_time):
            continue
        elapsed_delta = cur.elapsed_time - prev.elapsed_time
        timer_delta = cur.timer_time - prev.timer_time
        if elapsed_delta > th.pause_elapsed_min_s and timer_delta < th.pause_timer_max_s:
            if start is None:
                start = i - 1
            end = i

    if start is None:
        return None
    return start, end


def find_pause(
    samples: Sequence[Sample], thresholds: Thresholds | None = None
) -> PauseReport:
    gaps = detect_gaps(samples, thresholds)
    if gaps:
        log.info(
            "Found %d timestamp gaps, largest %.1fs at record %d",
            len(gaps), gaps[0].wall_clock_delta, gaps[0].index,
        )
        return PauseReport(gaps=tuple(gaps), method="timestamp")

    span = detect_timer_pause(samples, thresholds)
    if span is not None:
        log.info("No timestamp gaps; timer stalled between records %d and %d", *span)
        return PauseReport(fallback_range=span, method="timer")

    log.info("No significant pause detected")
    return PauseReport()


def session_pause_summary(session: Optional[dict]) -> Optional[dict]:
    """Elapsed, timer and paused seconds from a session message."""
    if not session:
        return None
    elapsed = float(session.get("total_elapsed_time") or 0.0)
    timer = float(session.get("total_timer_time") or 0.0)
    return {
        "total_elapsed_time": elapsed,
        "total_timer_time": timer,
        "paused_time": elapsed - timer,
    }
