"""Command line tools for inspecting a recording: pause search and sampling rate."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import yaml

from fitvideo.config import Config
from fitvideo.gaps import find_pause
from fitvideo.parser import MalformedActivityError, load_activity
from fitvideo.report import event_lines, pause_report_lines, sampling_report_lines
from fitvideo.sampling import analyze_sampling
from fitvideo.timeseries import ingest_records

log = logging.getLogger(__name__)


def _setup(prog: str, description: str, argv: list[str] | None) -> argparse.Namespace:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ap = argparse.ArgumentParser(prog=prog, description=description)
    ap.add_argument("input", type=Path, help="FIT file")
    ap.add_argument("--env-file", type=Path, help="read settings from this .env file")
    ap.add_argument("--yaml", action="store_true", help="print a YAML summary instead of text")
    return ap.parse_args(argv)


def _load(path: Path):
    fit_path = path.resolve()
    if not fit_path.exists():
        print(f"File not found: {fit_path}", file=sys.stderr)
        sys.exit(1)
    try:
        return load_activity(fit_path)
    except MalformedActivityError as e:
        print(f"Failed to parse: {e}", file=sys.stderr)
        sys.exit(1)


def find_pause_main(argv: list[str] | None = None) -> None:
    """Locate the most likely pause in a recording."""
    args = _setup("fit-find-pause", find_pause_main.__doc__, argv)
    config = Config.from_env(args.env_file)
    activity = _load(args.input)

    try:
        samples = ingest_records(activity.records)
    except MalformedActivityError as e:
        print(str(e))
        sys.exit(1)

    report = find_pause(samples, config.thresholds)
    if args.yaml:
        sys.stdout.write(yaml.safe_dump(report.to_dict(), sort_keys=False))
        return

    for line in pause_report_lines(report, samples, activity.session):
        print(line)
    for line in event_lines(activity.events):
        print(line)


def sampling_main(argv: list[str] | None = None) -> None:
    """Report how often a recording was sampled and which fields it carries."""
    args = _setup("fit-sampling", sampling_main.__doc__, argv)
    activity = _load(args.input)

    if not activity.records:
        print("No records found in FIT file")
        sys.exit(1)

    stats = analyze_sampling(activity.records)
    if args.yaml:
        sys.stdout.write(yaml.safe_dump(stats, sort_keys=False, allow_unicode=True))
        return

    for line in sampling_report_lines(stats):
        print(line)
