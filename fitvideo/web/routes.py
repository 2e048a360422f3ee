from __future__ import annotations

import logging
import math
from dataclasses import replace

from flask import (
    Blueprint,
    abort,
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)

from fitvideo.config import Config
from fitvideo.gaps import find_pause
from fitvideo.overlay import render_overlay_html, segment_color
from fitvideo.parser import MalformedActivityError
from fitvideo.pipeline import Workout
from fitvideo.segments import format_pace, parse_pace, with_target_paces
from fitvideo.timeline import Timeline
from fitvideo.timeseries import ingest_records

log = logging.getLogger(__name__)

bp = Blueprint("main", __name__)

PREVIEW_WIDTH = 1920
PREVIEW_HEIGHT = 1080


def _config() -> Config:
    return current_app.config["config"]


def _workout() -> Workout:
    return current_app.config["workout"]


def _set_paces(paces: list) -> Workout:
    with current_app.config["workout_lock"]:
        old = _workout()
        segments = with_target_paces(old.segments, paces)
        workout = replace(
            old,
            segments=tuple(segments),
            timeline=Timeline(segments, old.metrics, _config().thresholds),
        )
        current_app.config["workout"] = workout
    return workout


@bp.route("/")
def index():
    workout = _workout()
    rows = [
        {
            "number": i + 1,
            "segment": seg,
            "color": segment_color(seg.type),
            "pace": format_pace(seg.target_pace) if seg.target_pace is not None else "",
            "laps": ", ".join(str(n + 1) for n in seg.source_lap_indices),
        }
        for i, seg in enumerate(workout.segments)
    ]
    return render_template(
        "index.html",
        fit_name=current_app.config["fit_path"].name,
        rows=rows,
        duration=workout.duration,
        unit=_config().pace_unit,
    )


@bp.route("/paces", methods=["POST"])
def update_paces():
    workout = _workout()
    paces = []
    for i, seg in enumerate(workout.segments):
        raw = request.form.get(f"pace_{i}", "").strip()
        if not raw:
            paces.append(None)
            continue
        pace = parse_pace(raw)
        if pace is None:
            flash(f"Invalid pace for {seg.name}: {raw!r}. Use a format like '7:30' or '7.5'")
            return redirect(url_for("main.index"))
        paces.append(pace)

    _set_paces(paces)
    flash("Target paces updated")
    return redirect(url_for("main.index"))


@bp.route("/overlay")
def overlay():
    workout = _workout()
    width = request.args.get("width", PREVIEW_WIDTH, type=int)
    height = request.args.get("height", PREVIEW_HEIGHT, type=int)
    return render_overlay_html(
        workout.segments,
        width,
        height,
        initial_state=workout.timeline.render(0.0),
        unit=_config().pace_unit,
        preview_url=url_for("main.api_state"),
    )


@bp.route("/api/state")
def api_state():
    t = request.args.get("t", type=float)
    if t is None:
        abort(400, description="query parameter t (seconds) is required")
    if not math.isfinite(t):
        abort(400, description="query parameter t must be a finite number of seconds")
    return jsonify(_workout().timeline.render(t).to_dict())


@bp.route("/api/pause")
def api_pause():
    try:
        samples = ingest_records(_workout().activity.records)
    except MalformedActivityError as e:
        return jsonify({"error": str(e)}), 422
    return jsonify(find_pause(samples, _config().thresholds).to_dict())
