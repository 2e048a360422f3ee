from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Sequence

from fitvideo.config import DEFAULT_THRESHOLDS, Thresholds
from fitvideo.timeseries import Sample

log = logging.getLogger(__name__)


class MetricPoint(NamedTuple):
    elapsed: float
    value: float


@dataclass(frozen=True)
class MetricSeries:
    """Metric values keyed by elapsed seconds, in elapsed order."""

    points: tuple[MetricPoint, ...] = ()
    _times: tuple[float, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        points = tuple(sorted(self.points, key=lambda p: p.elapsed))
        object.__setattr__(self, "points", points)
        object.__setattr__(self, "_times", tuple(p.elapsed for p in points))

    def __len__(self) -> int:
        return len(self.points)

    def nearest(self, t: float, tolerance: float) -> Optional[float]:
        """Value of the point closest to t, or None if nothing is within tolerance."""
        if not self.points:
            return None
        i = bisect.bisect_left(self._times, t)
        best: Optional[MetricPoint] = None
        for j in (i - 1, i):
            if 0 <= j < len(self.points):
                p = self.points[j]
                # the earlier point wins a tie
                if best is None or abs(p.elapsed - t) < abs(best.elapsed - t):
                    best = p
        if best is None or abs(best.elapsed - t) > tolerance:
            return None
        return best.value


@dataclass(frozen=True)
class ActivityMetrics:
    distance: MetricSeries
    pace: MetricSeries
    heart_rate: MetricSeries
    total_distance: float


def pace_from_distance(elapsed_delta: float, distance_delta: float, meters_per_unit: float) -> float:
    """Minutes per unit for covering distance_delta metres in elapsed_delta seconds."""
    return (elapsed_delta / 60) / (distance_delta / meters_per_unit)


def pace_from_speed(speed: float, meters_per_unit: float) -> float:
    """Minutes per unit at speed m/s."""
    return 60 / (speed * 3600 / meters_per_unit)


def derive_metrics(
    samples: Sequence[Sample], thresholds: Thresholds | None = None
) -> ActivityMetrics:
    """
    Build distance, pace and heart-rate series against elapsed seconds.

    Pace comes from successive distance readings when both time and distance
    strictly increase, otherwise from instantaneous speed on samples that
    carry no distance. Anything else yields no pace point.
    """
    th = thresholds or DEFAULT_THRESHOLDS
    t0 = next((s.timestamp for s in samples if s.timestamp is not None), None)

    distance: list[MetricPoint] = []
    pace: list[MetricPoint] = []
    heart_rate: list[MetricPoint] = []
    total = 0.0
    last_dist: Optional[MetricPoint] = None
    skipped = 0

    for s in samples:
        if t0 is not None:
            if s.timestamp is None:
                continue
            elapsed = (s.timestamp - t0).total_seconds()
        elif s.elapsed_time is not None:
            elapsed = s.elapsed_time
        else:
            continue

        if s.heart_rate is not None:
            heart_rate.append(MetricPoint(elapsed, float(s.heart_rate)))

        if s.distance is not None:
            point = MetricPoint(elapsed, s.distance)
            distance.append(point)
            total = s.distance
            if last_dist is not None:
                dt = elapsed - last_dist.elapsed
                dd = s.distance - last_dist.value
                if dt > 0 and dd > 0:
                    pace.append(MetricPoint(elapsed, pace_from_distance(dt, dd, th.meters_per_unit)))
                else:
                    skipped += 1
            last_dist = point
        elif s.speed is not None and s.speed > 0:
            pace.append(MetricPoint(elapsed, pace_from_speed(s.speed, th.meters_per_unit)))

    if skipped:
        log.debug("Suppressed %d pace points with non-increasing time or distance", skipped)

    return ActivityMetrics(
        distance=MetricSeries(tuple(distance)),
        pace=MetricSeries(tuple(pace)),
        heart_rate=MetricSeries(tuple(heart_rate)),
        total_distance=total,
    )
