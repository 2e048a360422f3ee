from __future__ import annotations

import logging
import statistics
from collections import Counter
from typing import Any, Dict, List, Optional

log = logging.getLogger(__name__)

MAX_INTERVALS = 1000
RELEVANT_FIELDS = (
    "heart_rate",
    "speed",
    "enhanced_speed",
    "cadence",
    "power",
    "distance",
    "altitude",
    "temperature",
)


def _intervals(records: List[dict]) -> List[float]:
    """Seconds between neighbouring timestamped records, first pairs only."""
    out = []
    for i in range(1, min(len(records), MAX_INTERVALS)):
        t1 = records[i - 1].get("timestamp")
        t2 = records[i].get("timestamp")
        if t1 is not None and t2 is not None:
            out.append((t2 - t1).total_seconds())
    return out


def analyze_sampling(records: List[dict]) -> Optional[Dict[str, Any]]:
    """
    Describe how densely an activity was recorded.

    Returns None if the first or last record has no timestamp.
    """
    if not records:
        return None
    first, last = records[0], records[-1]
    if first.get("timestamp") is None or last.get("timestamp") is None:
        return None

    duration_s = (last["timestamp"] - first["timestamp"]).total_seconds()
    avg_interval_s = duration_s / (len(records) - 1) if len(records) > 1 else None

    result: Dict[str, Any] = {
        "record_count": len(records),
        "duration_s": duration_s,
        "first_timestamp": first["timestamp"],
        "last_timestamp": last["timestamp"],
        "avg_interval_s": avg_interval_s,
        "sampling_rate_hz": 1 / avg_interval_s if avg_interval_s else None,
        "intervals": None,
    }

    intervals = _intervals(records)
    if intervals:
        counts = Counter(round(iv * 1000) for iv in intervals)
        common_ms, common_n = counts.most_common(1)[0]
        result["intervals"] = {
            "count": len(intervals),
            "min_s": min(intervals),
            "max_s": max(intervals),
            "mean_s": statistics.mean(intervals),
            "most_common_ms": common_ms,
            "most_common_count": common_n,
        }

    middle = records[len(records) // 2]
    result["fields"] = {k: middle[k] for k in RELEVANT_FIELDS if middle.get(k) is not None}

    with_hr = sum(1 for r in records if r.get("heart_rate") is not None)
    with_speed = sum(
        1 for r in records
        if r.get("speed") is not None or r.get("enhanced_speed") is not None
    )
    result["coverage"] = {
        "heart_rate": with_hr,
        "heart_rate_pct": round(100.0 * with_hr / len(records), 1),
        "speed": with_speed,
        "speed_pct": round(100.0 * with_speed / len(records), 1),
    }
    return result
