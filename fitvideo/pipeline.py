from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from fitvideo.config import Config, Thresholds
from fitvideo.metrics import ActivityMetrics, MetricSeries, derive_metrics
from fitvideo.parser import (
    Activity,
    MalformedActivityError,
    MissingLapsError,
    calculate_duration,
    load_activity,
)
from fitvideo.prompt import PacePrompter, PromptCancelled
from fitvideo.report import dry_run_lines, segment_summary_lines
from fitvideo.segments import (
    Segment,
    SegmentGroup,
    build_segments,
    classify_laps,
    laps_from_messages,
)
from fitvideo.timeline import Timeline
from fitvideo.timeseries import ingest_records
from fitvideo.video import create_overlay_video

log = logging.getLogger(__name__)

EXIT_NOT_FOUND = 2
EXIT_PARSE = 3
EXIT_VIDEO = 4
EXIT_ERROR = 5
EXIT_NO_LAPS = 6


@dataclass(frozen=True)
class Workout:
    """Everything derived from one activity that the renderers need."""

    activity: Activity
    segments: tuple[Segment, ...]
    metrics: ActivityMetrics
    timeline: Timeline
    duration: float


def segment_groups(activity: Activity, thresholds: Thresholds) -> list[SegmentGroup]:
    if not activity.laps:
        raise MissingLapsError("No laps found in FIT file")
    return classify_laps(laps_from_messages(activity.laps), thresholds)


def activity_metrics(activity: Activity, thresholds: Thresholds) -> ActivityMetrics:
    if not activity.records:
        log.warning("No records in activity; heart rate and pace will be unavailable")
        return ActivityMetrics(MetricSeries(), MetricSeries(), MetricSeries(), 0.0)
    return derive_metrics(ingest_records(activity.records), thresholds)


def build_workout(
    activity: Activity,
    config: Config,
    target_paces: Optional[Sequence[Optional[float]]] = None,
    groups: Optional[Sequence[SegmentGroup]] = None,
) -> Workout:
    th = config.thresholds
    if groups is None:
        groups = segment_groups(activity, th)
    segments = build_segments(groups, target_paces)
    metrics = activity_metrics(activity, th)
    return Workout(
        activity=activity,
        segments=tuple(segments),
        metrics=metrics,
        timeline=Timeline(segments, metrics, th),
        duration=calculate_duration(activity),
    )


def run_fit_to_video(
    fit_path: Path,
    output_path: Path,
    config: Config,
    dev_mode: bool = False,
    save_html: bool = False,
    prompter: Optional[PacePrompter] = None,
) -> Optional[Path]:
    """
    Interactive run: classify laps, ask for target paces, confirm, render.

    Returns the video path, or None when the user stopped before rendering.
    Raises PromptCancelled if the user cancels during the questions.
    """
    prompter = prompter or PacePrompter(unit=config.pace_unit)
    say = prompter.say

    log.info("Parsing fit file: %s", fit_path)
    activity = load_activity(fit_path)

    duration = calculate_duration(activity)
    full_duration = duration
    log.info("Calculated duration: %.2f seconds", duration)
    if dev_mode and duration > config.dev_mode_limit_s:
        log.info(
            "Dev mode: limiting video duration to %.0fs instead of %.2fs",
            config.dev_mode_limit_s, duration,
        )
        duration = config.dev_mode_limit_s

    groups = segment_groups(activity, config.thresholds)
    say("\n=== Workout Steps ===")
    say(f"Found {len(activity.laps)} laps in the FIT file.")
    say(f"{len(groups)} segments after dropping short laps and merging.\n")
    paces = prompter.prompt_all(groups)
    workout = build_workout(activity, config, paces, groups=groups)

    for line in segment_summary_lines(workout.segments):
        say(line)

    if not prompter.confirm("\nDoes this look correct? (y/n): "):
        say("Cancelled.")
        return None

    if not prompter.confirm("\nDo you want to create the video? (y/n): "):
        say("\nVideo creation skipped. Data was gathered but no video will be created.")
        for line in dry_run_lines(activity, duration, workout.segments, config.pace_unit):
            say(line)
        return None

    return create_overlay_video(
        output_path,
        workout.timeline,
        duration,
        config.fps,
        config.video_width,
        config.video_height,
        sizing_duration=full_duration,
        save_html=save_html,
        unit=config.pace_unit,
        ffmpeg_bin=config.ffmpeg_bin,
        headless=config.headless,
    )


def default_output_path(fit_path: Path, config: Config) -> Path:
    out_dir = config.output_dir or Path.cwd()
    return (out_dir / f"{fit_path.stem}_overlay.mp4").resolve()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: build a green-screen progress overlay video from a FIT file."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ap = argparse.ArgumentParser(prog="fit-to-video", description=main.__doc__)
    ap.add_argument("input", type=Path, help="FIT file")
    ap.add_argument("--out", type=Path, help="output .mp4 (default: <input>_overlay.mp4)")
    ap.add_argument("--fps", type=int, help="frames per second (default from config)")
    ap.add_argument("--dev-mode", action="store_true", help="limit the clip to one minute")
    ap.add_argument("--save-html", action="store_true", help="keep the overlay HTML next to the video")
    ap.add_argument("--env-file", type=Path, help="read settings from this .env file")
    args = ap.parse_args(argv)

    config = Config.from_env(args.env_file)
    if args.fps:
        config.fps = args.fps

    fit_path = args.input.resolve()
    if not fit_path.exists():
        print(f"File not found: {fit_path}", file=sys.stderr)
        sys.exit(EXIT_NOT_FOUND)
    output_path = args.out.resolve() if args.out else default_output_path(fit_path, config)

    if args.dev_mode:
        print(f"=== DEV MODE: Video will be limited to {config.dev_mode_limit_s:.0f}s ===")

    try:
        result = run_fit_to_video(
            fit_path, output_path, config,
            dev_mode=args.dev_mode, save_html=args.save_html,
        )
    except PromptCancelled:
        print("User cancelled.")
        sys.exit(0)
    except MissingLapsError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_NO_LAPS)
    except MalformedActivityError as e:
        print(f"Failed to parse .fit file: {e}", file=sys.stderr)
        sys.exit(EXIT_PARSE)
    except RuntimeError as e:
        print(f"Failed to create video: {e}", file=sys.stderr)
        sys.exit(EXIT_VIDEO)
    except Exception as e:
        log.exception("Unexpected failure")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_ERROR)

    if result is not None:
        print("Done!")


if __name__ == "__main__":
    main()
