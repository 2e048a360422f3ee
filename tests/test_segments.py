import pytest

from fitvideo.config import Thresholds
from fitvideo.segments import (
    Lap,
    build_segments,
    classify_laps,
    format_pace,
    laps_from_messages,
    parse_pace,
    with_target_paces,
)


def _laps(*specs):
    return [Lap(index=i, duration=d, intensity=k) for i, (d, k) in enumerate(specs)]


def _summary(groups):
    return [(g.name, g.duration) for g in groups]


def test_adjacent_warmups_merge(workout_laps):
    segments = build_segments(classify_laps(workout_laps))
    assert [(s.name, s.duration) for s in segments] == [
        ("Warm Up", 70),
        ("Interval 1", 300),
        ("Cool Down", 60),
    ]
    assert segments[0].source_lap_indices == (0, 1)
    assert segments[0].type == "warmup"
    assert segments[1].type == "interval"
    assert segments[2].type == "cooldown"


def test_segments_are_contiguous_from_zero():
    laps = _laps(
        (600, "warmup"), (240, "interval"), (90, "recovery"), (240, "interval"),
        (90, "rest"), (3, "active"), (200, "active"), (300, "cooldown"), (120, "cooldown"),
    )
    segments = build_segments(classify_laps(laps))

    assert segments[0].start_time == 0
    for a, b in zip(segments, segments[1:]):
        assert a.end_time == b.start_time
    for s in segments:
        assert s.end_time == s.start_time + s.duration
    retained = sum(lap.duration for lap in laps if lap.duration >= 5)
    assert sum(s.duration for s in segments) == retained


def test_interval_numbering_and_rest():
    groups = classify_laps(_laps(
        (300, "warmup"), (120, "interval"), (60, "recovery"), (120, "interval"),
        (60, "rest"), (300, "cooldown"),
    ))
    assert [g.name for g in groups] == [
        "Warm Up", "Interval 1", "Rest", "Interval 2", "Rest", "Cool Down",
    ]
    assert [g.type for g in groups] == [
        "warmup", "interval", "rest", "interval", "rest", "cooldown",
    ]


def test_rest_and_interval_runs_never_merge():
    groups = classify_laps(_laps(
        (300, "warmup"), (60, "rest"), (60, "rest"), (120, "interval"), (120, "interval"), (300, "cooldown"),
    ))
    assert _summary(groups) == [
        ("Warm Up", 300), ("Rest", 60), ("Rest", 60),
        ("Interval 1", 120), ("Interval 2", 120), ("Cool Down", 300),
    ]


def test_trailing_cooldowns_merge():
    groups = classify_laps(_laps((300, "warmup"), (600, "active"), (200, "cooldown"), (100, "active")))
    assert _summary(groups) == [("Warm Up", 300), ("Segment 2", 600), ("Cool Down", 300)]
    assert groups[-1].lap_indices == [2, 3]
    assert groups[-1].start_time == 900


def test_short_laps_are_dropped_without_taking_time():
    groups = classify_laps(_laps((300, "active"), (2, "active"), (400, "active"), (500, "active"), (4.9, "active")))
    # lap 3 is the last one kept, so it is the cool down; names keep original lap numbers
    assert _summary(groups) == [("Warm Up", 300), ("Segment 3", 400), ("Cool Down", 500)]
    assert [g.start_time for g in groups] == [0, 300, 700]


def test_min_lap_duration_comes_from_config():
    laps = _laps((300, "warmup"), (8, "active"), (300, "cooldown"))
    assert len(classify_laps(laps, Thresholds(min_lap_duration_s=10))) == 2
    assert len(classify_laps(laps)) == 3


def test_single_lap_is_warmup():
    groups = classify_laps(_laps((1800, "active")))
    assert _summary(groups) == [("Warm Up", 1800)]


def test_first_lap_marked_cooldown_still_warmup():
    groups = classify_laps(_laps((300, "cooldown"), (600, "active"), (300, "active")))
    assert [g.type for g in groups] == ["warmup", "workout", "cooldown"]


def test_no_laps_no_segments():
    assert classify_laps([]) == []
    assert classify_laps(_laps((1, "active"), (2, "active"))) == []
    assert build_segments([]) == []


def test_unknown_intensity_is_generic_workout():
    groups = classify_laps(_laps((300, "warmup"), (600, "mystery"), (300, "cooldown")))
    assert groups[1].type == "workout"
    assert groups[1].name == "Segment 2"


def test_laps_from_messages():
    laps = laps_from_messages([
        {"total_timer_time": 120.5, "intensity": "warmup"},
        {"total_elapsed_time": 60, "intensity": 5},
        {"intensity": None},
    ])
    assert laps[0] == Lap(index=0, duration=120.5, intensity="warmup")
    assert laps[1] == Lap(index=1, duration=60.0, intensity="interval")
    assert laps[2] == Lap(index=2, duration=0.0, intensity="unknown")


def test_target_paces_attach_by_position(workout_laps):
    segments = build_segments(classify_laps(workout_laps), [None, 7.5, 9.0])
    assert [s.target_pace for s in segments] == [None, 7.5, 9.0]

    with pytest.raises(ValueError):
        build_segments(classify_laps(workout_laps), [7.5])


def test_with_target_paces_returns_new_segments(workout_laps):
    segments = build_segments(classify_laps(workout_laps))
    updated = with_target_paces(segments, [8.0, 6.5, None])
    assert [s.target_pace for s in segments] == [None, None, None]
    assert [s.target_pace for s in updated] == [8.0, 6.5, None]
    assert updated[1].start_time == segments[1].start_time


@pytest.mark.parametrize("text, expected", [
    ("7:30", 7.5),
    ("7:30 min/mile", 7.5),
    ("10:06", 10.1),
    ("7.5", 7.5),
    ("8", 8.0),
    (" 6.25 ", 6.25),
])
def test_parse_pace_accepts(text, expected):
    assert parse_pace(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["", "fast", "7:75", "0", "0:00", "pace", "skip"])
def test_parse_pace_rejects(text):
    assert parse_pace(text) is None


@pytest.mark.parametrize("minutes, text", [
    (7.5, "7:30"),
    (10.0, "10:00"),
    (6.999, "7:00"),
    (8.1, "8:06"),
])
def test_format_pace(minutes, text):
    assert format_pace(minutes) == text
