"""Plain-text reports printed by the command line tools."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from fitvideo.gaps import PauseReport, session_pause_summary
from fitvideo.parser import Activity
from fitvideo.segments import Segment, format_pace
from fitvideo.timeseries import Sample

RULE = "=" * 60


def _minutes(seconds: float) -> str:
    return f"{seconds:.2f}s ({seconds / 60:.2f} min)"


def _fmt(value: Optional[float]) -> str:
    return "N/A" if value is None else f"{value:.2f}"


def _sample_lines(label: str, s: Sample) -> List[str]:
    return [
        f"\nRecord {label} pause:",
        f"  Timestamp: {s.timestamp.isoformat() if s.timestamp else 'N/A'}",
        f"  Elapsed time: {_fmt(s.elapsed_time)}s",
        f"  Timer time: {_fmt(s.timer_time)}s",
    ]


def pause_report_lines(
    report: PauseReport,
    samples: Sequence[Sample],
    session: Optional[dict] = None,
    top: int = 10,
) -> List[str]:
    lines: List[str] = []

    summary = session_pause_summary(session)
    if summary:
        lines += [
            "\n=== Session Summary ===",
            f"Total elapsed time: {_minutes(summary['total_elapsed_time'])}",
            f"Total timer time: {_minutes(summary['total_timer_time'])}",
            f"Paused time: {_minutes(summary['paused_time'])}",
        ]

    lines.append(f"\n=== Analyzing {len(samples)} Records ===\n")

    if report.method == "timestamp":
        lines.append(f"Found {len(report.gaps)} timestamp gaps:\n")
        for n, gap in enumerate(report.gaps[:top], start=1):
            lines += [
                f"{n}. Gap at record {gap.index} ({gap.timestamp.isoformat()})",
                f"   Time difference: {_minutes(gap.wall_clock_delta)}",
                f"   Elapsed time diff: {gap.elapsed_delta:.2f}s",
                f"   Timer time diff: {gap.timer_delta:.2f}s",
                f"   Gap in timer: {gap.implied_pause:.2f}s (this is the pause time)",
                "",
            ]

        primary = report.primary
        lines += [
            "=== LARGEST GAP (Most likely pause point) ===",
            f"Record index: {primary.index}",
            f"Timestamp: {primary.timestamp.isoformat()}",
            f"Time gap: {_minutes(primary.wall_clock_delta)}",
            f"Timer time difference: {primary.timer_delta:.2f}s",
            f"Paused time: {_minutes(primary.implied_pause)}",
        ]
        if primary.index > 0:
            lines += _sample_lines("BEFORE", samples[primary.index - 1])
        lines += _sample_lines("AFTER", samples[primary.index])

    elif report.method == "timer":
        start, end = report.fallback_range
        lines += [
            "No significant gaps found. Checked elapsed_time vs timer_time instead.\n",
            f"Pause detected between records {start} and {end}",
        ]
        for label, idx in (("Start", start), ("End", end)):
            ts = samples[idx].timestamp
            lines.append(f"{label}: {ts.isoformat() if ts else 'N/A'}")

    else:
        lines.append("No significant pause detected.")

    return lines


def event_lines(events: Sequence[dict]) -> List[str]:
    if not events:
        return []
    lines = ["\n=== Events ==="]
    for n, ev in enumerate(events, start=1):
        ts = ev.get("timestamp")
        lines.append(
            f"{n}. {ts.isoformat() if ts else 'N/A'}: "
            f"{ev.get('event') or 'N/A'} - {ev.get('event_type') or 'N/A'}"
        )
    return lines


def sampling_report_lines(stats: Optional[Dict[str, Any]]) -> List[str]:
    if stats is None:
        return ["No timestamp data found in records"]

    lines = [
        "\n=== FIT File Sampling Rate Analysis ===\n",
        f"Total records: {stats['record_count']}",
        f"Duration: {stats['duration_s']:.2f} seconds ({stats['duration_s'] / 60:.2f} minutes)",
    ]
    if stats["avg_interval_s"]:
        lines += [
            f"Average interval: {stats['avg_interval_s'] * 1000:.2f} ms",
            f"Sampling rate: {stats['sampling_rate_hz']:.3f} samples per second",
        ]
    lines += [
        f"\nFirst record: {stats['first_timestamp'].isoformat()}",
        f"Last record: {stats['last_timestamp'].isoformat()}",
    ]

    iv = stats.get("intervals")
    if iv:
        lines += [
            f"\n--- Interval Analysis (first {iv['count']} intervals) ---",
            f"Min interval: {iv['min_s'] * 1000:.2f} ms",
            f"Max interval: {iv['max_s'] * 1000:.2f} ms",
            f"Average interval: {iv['mean_s'] * 1000:.2f} ms",
            f"Most common interval: {iv['most_common_ms']} ms ({iv['most_common_count']} occurrences)",
        ]

    lines.append("\n--- Available Data Fields ---")
    for name, value in stats["fields"].items():
        lines.append(f"  ✓ {name}: {value}")

    cov = stats["coverage"]
    lines += [
        "\n--- Data Coverage ---",
        f"Records with heart rate: {cov['heart_rate']} ({cov['heart_rate_pct']:.1f}%)",
        f"Records with speed/pace: {cov['speed']} ({cov['speed_pct']:.1f}%)",
    ]
    return lines


def segment_summary_lines(segments: Sequence[Segment]) -> List[str]:
    lines = ["\n=== Summary ==="]
    for n, seg in enumerate(segments, start=1):
        pace = f" @ {format_pace(seg.target_pace)} pace" if seg.target_pace else ""
        lines.append(f"{n}. {seg.name}: {seg.duration / 60:.1f} min{pace}")
    return lines


def dry_run_lines(
    activity: Activity, duration: float, segments: Sequence[Segment], unit: str = "mile"
) -> List[str]:
    lines = [
        "\n" + RULE,
        "DRY RUN - All Gathered Data",
        RULE,
        "\n=== FIT File Data ===",
        f"Duration: {duration:.2f} seconds ({duration / 60:.2f} minutes)",
    ]

    session = activity.session
    if session:
        lines += [
            f"Total distance: {float(session.get('total_distance') or 0):.2f} m",
            f"Sport: {session.get('sport') or 'unknown'}",
            f"Number of laps: {len(activity.laps)}",
        ]

    lines += ["\n=== Workout Segments ===", f"Total segments: {len(segments)}\n"]
    for n, seg in enumerate(segments, start=1):
        lines += [
            f"Segment {n}: {seg.name}",
            f"  Type: {seg.type}",
            f"  Duration: {seg.duration:.1f}s ({seg.duration / 60:.1f} min)",
            f"  Start time: {seg.start_time:.1f}s",
            f"  End time: {seg.end_time:.1f}s",
        ]
        if seg.target_pace is not None:
            lines.append(f"  Target pace: {format_pace(seg.target_pace)} min/{unit}")
        else:
            lines.append("  Target pace: Not set")
        lines.append("")

    total = sum(s.duration for s in segments)
    lines.append(f"Total segment duration: {total:.1f}s ({total / 60:.2f} min)")

    by_type: Dict[str, Dict[str, float]] = {}
    for seg in segments:
        entry = by_type.setdefault(seg.type, {"count": 0, "duration": 0.0})
        entry["count"] += 1
        entry["duration"] += seg.duration

    lines.append("\n=== Summary by Type ===")
    for seg_type, stats in by_type.items():
        lines.append(
            f"{seg_type}: {int(stats['count'])} segment(s), {stats['duration'] / 60:.1f} min total"
        )

    lines += ["\n" + RULE, "Dry run complete - no video was created", RULE]
    return lines
