from __future__ import annotations

import json
import logging
from typing import Optional, Sequence

from jinja2 import Environment, PackageLoader, select_autoescape

from fitvideo.segments import COOLDOWN, INTERVAL, REST, WARMUP, Segment, format_pace
from fitvideo.timeline import BAR_HEIGHT, BAR_TOP, RenderState, layout_bars

log = logging.getLogger(__name__)

SEGMENT_COLORS = {
    WARMUP: "#4A90E2",  # blue
    INTERVAL: "#FF6B6B",  # red
    REST: "#FFD93D",  # yellow
    COOLDOWN: "#6BCF7F",  # green
}
DEFAULT_COLOR = "#666666"

_env = Environment(
    loader=PackageLoader("fitvideo", "templates"),
    autoescape=select_autoescape(["html"]),
)


def segment_color(segment_type: str) -> str:
    return SEGMENT_COLORS.get(segment_type, DEFAULT_COLOR)


def render_overlay_html(
    segments: Sequence[Segment],
    width: int,
    height: int,
    sizing_duration: float | None = None,
    initial_state: Optional[RenderState] = None,
    unit: str = "mile",
    preview_url: str | None = None,
) -> str:
    """
    Build the overlay page.

    Bars are sized against sizing_duration (the full workout) even when the
    clip is shorter. The page exposes window.applyState(state), which takes
    RenderState.to_dict() and only copies values onto the DOM. With
    preview_url set, a scrubber fetches states from that endpoint.
    """
    bars = layout_bars(segments, width, sizing_duration)
    rows = []
    for seg, bar in zip(segments, bars):
        rows.append({
            "name": seg.name,
            "x": bar.x,
            "width": bar.width,
            "color": segment_color(seg.type),
            "pace": format_pace(seg.target_pace) if seg.target_pace is not None else "",
        })

    return _env.get_template("overlay.html").render(
        width=width,
        height=height,
        bar_top=BAR_TOP,
        bar_height=BAR_HEIGHT,
        band_height=BAR_TOP * 2 + BAR_HEIGHT,
        segments=rows,
        unit=unit,
        duration=sum(s.duration for s in segments),
        initial_state=json.dumps(initial_state.to_dict() if initial_state else None),
        preview_url=preview_url,
    )
