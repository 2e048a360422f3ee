from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml
from fitparse import FitFile
from fitparse.utils import FitParseError

log = logging.getLogger(__name__)

TIMER_START_TYPES = {"start"}
TIMER_STOP_TYPES = {"stop", "stop_all", "stop_disable", "stop_disable_all"}


class MalformedActivityError(ValueError):
    """The activity is missing a structure the requested operation needs."""


class MissingLapsError(MalformedActivityError):
    """The activity has no lap messages to build segments from."""


@dataclass
class Activity:
    """Message groups decoded from one FIT file, each a list of plain dicts."""

    records: list[dict] = field(default_factory=list)
    laps: list[dict] = field(default_factory=list)
    sessions: list[dict] = field(default_factory=list)
    events: list[dict] = field(default_factory=list)

    @property
    def session(self) -> Optional[dict]:
        return self.sessions[0] if self.sessions else None


def _utc(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def message_to_dict(msg) -> dict:
    return {f.name: _utc(f.value) for f in msg}


def load_fit(path: Path) -> FitFile:
    try:
        ff = FitFile(str(path))
        ff.parse()
    except FitParseError as e:
        raise MalformedActivityError(f"Could not decode {path}: {e}") from e
    return ff


def add_elapsed_fields(records: list[dict], events: Iterable[dict]) -> None:
    """
    Fill in per-record elapsed_time and timer_time (seconds) where missing.

    elapsed_time counts from the first timestamped record. timer_time only
    advances while the device timer runs, as reported by timer start/stop
    events; with no timer events the two are equal.
    """
    stamped = [r for r in records if r.get("timestamp") is not None]
    if not stamped:
        return
    start = stamped[0]["timestamp"]

    timeline = []
    for ev in events:
        ts = ev.get("timestamp")
        if ts is None or ev.get("event") != "timer":
            continue
        kind = ev.get("event_type")
        if kind in TIMER_START_TYPES:
            timeline.append((ts, 0, True))
        elif kind in TIMER_STOP_TYPES:
            timeline.append((ts, 0, False))
    for pos, r in enumerate(stamped):
        timeline.append((r["timestamp"], 1, pos))
    # events sort ahead of records sharing a timestamp
    timeline.sort(key=lambda item: (item[0], item[1]))

    running = True
    timer_total = 0.0
    last_ts = start
    for ts, kind, payload in timeline:
        if running and ts > last_ts:
            timer_total += (ts - last_ts).total_seconds()
        last_ts = max(last_ts, ts)
        if kind == 0:
            running = payload
            continue
        r = stamped[payload]
        elapsed = (ts - start).total_seconds()
        r.setdefault("elapsed_time", elapsed)
        r.setdefault("timer_time", min(timer_total, elapsed))


def activity_from_fitfile(ff) -> Activity:
    activity = Activity(
        records=[message_to_dict(m) for m in ff.get_messages("record")],
        laps=[message_to_dict(m) for m in ff.get_messages("lap")],
        sessions=[message_to_dict(m) for m in ff.get_messages("session")],
        events=[message_to_dict(m) for m in ff.get_messages("event")],
    )
    add_elapsed_fields(activity.records, activity.events)
    log.info(
        "Decoded %d records, %d laps, %d sessions, %d events",
        len(activity.records), len(activity.laps),
        len(activity.sessions), len(activity.events),
    )
    return activity


def load_activity(path: Path) -> Activity:
    """Decode a FIT file into an Activity."""
    return activity_from_fitfile(load_fit(path))


def calculate_duration(activity: Activity) -> float:
    """Video length in seconds: session timer, then session elapsed, then records."""
    session = activity.session
    if session:
        if session.get("total_timer_time"):
            return float(session["total_timer_time"])
        if session.get("total_elapsed_time"):
            return float(session["total_elapsed_time"])

    if activity.records:
        first, last = activity.records[0], activity.records[-1]
        if first.get("timestamp") and last.get("timestamp"):
            return (last["timestamp"] - first["timestamp"]).total_seconds()
        if last.get("elapsed_time"):
            return float(last["elapsed_time"])

    raise MalformedActivityError("Could not determine video duration from fit file")


def _plain(value: Any) -> Any:
    """Convert fitparse values into something yaml.safe_dump accepts."""
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, bytes):
        return value.hex()
    return value


def dump_fit(ff) -> dict:
    """Group every decoded message by name, preserving file order."""
    out: dict[str, list[dict]] = {}
    for msg in ff.messages:
        out.setdefault(msg.name, []).append(_plain(message_to_dict(msg)))
    return out


def parse_and_write(fit_path: Path, out_path: Path | None = None) -> str:
    """Decode a FIT file to YAML; write it to out_path when given, return the text."""
    text = yaml.safe_dump(
        dump_fit(load_fit(fit_path)), sort_keys=False, allow_unicode=True
    )
    if out_path is not None:
        out_path.write_text(text, encoding="utf-8")
        log.info("Wrote %s", out_path)
    return text


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: dump a FIT file as YAML."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ap = argparse.ArgumentParser(prog="fit-read", description=main.__doc__)
    ap.add_argument("input", type=Path, help="FIT file to decode")
    ap.add_argument("--out", type=Path, help="write YAML here instead of stdout")
    args = ap.parse_args(argv)

    fit_path = args.input.resolve()
    if not fit_path.exists():
        print(f"File not found: {fit_path}", file=sys.stderr)
        sys.exit(2)

    try:
        text = parse_and_write(fit_path, args.out)
    except MalformedActivityError as e:
        print(f"Failed to parse .fit file: {e}", file=sys.stderr)
        sys.exit(3)

    if args.out is None:
        sys.stdout.write(text)


if __name__ == "__main__":
    main()
