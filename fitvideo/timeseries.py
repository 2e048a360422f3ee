from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from fitvideo.parser import MalformedActivityError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sample:
    index: int
    timestamp: Optional[datetime]
    elapsed_time: Optional[float]  # seconds since start, paused time included
    timer_time: Optional[float]  # seconds of active recording
    heart_rate: Optional[int] = None
    distance: Optional[float] = None  # cumulative metres
    speed: Optional[float] = None  # m/s


def _num(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


def _first(record: dict, *keys: str) -> Optional[float]:
    for key in keys:
        v = _num(record.get(key))
        if v is not None:
            return v
    return None


def ingest_records(records: Iterable[dict]) -> list[Sample]:
    """
    Normalize raw record dicts into Samples, preserving input order.

    Any field may be absent. A timer_time above elapsed_time is clamped so
    the paused-time difference never goes negative.
    """
    samples: list[Sample] = []
    for i, r in enumerate(records):
        ts = r.get("timestamp")
        if isinstance(ts, datetime):
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=timezone.utc)
        else:
            ts = None

        elapsed = _num(r.get("elapsed_time"))
        timer = _num(r.get("timer_time"))
        if elapsed is not None and timer is not None and timer > elapsed:
            log.debug("Record %d: timer_time %.2f > elapsed_time %.2f, clamping", i, timer, elapsed)
            timer = elapsed

        hr = _num(r.get("heart_rate"))
        speed = _first(r, "enhanced_speed", "speed")

        samples.append(Sample(
            index=i,
            timestamp=ts,
            elapsed_time=elapsed,
            timer_time=timer,
            heart_rate=int(hr) if hr is not None and hr >= 0 else None,
            distance=_first(r, "distance", "enhanced_distance"),
            speed=speed if speed is not None and speed >= 0 else None,
        ))

    if not samples:
        raise MalformedActivityError("No records found in FIT file")
    return samples
