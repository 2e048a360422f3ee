from datetime import datetime, timedelta, timezone

import pytest
import yaml
from fitparse.utils import FitParseError

import fitvideo.parser as parser
from conftest import FakeFitFile
from fitvideo.parser import (
    Activity,
    MalformedActivityError,
    activity_from_fitfile,
    add_elapsed_fields,
    calculate_duration,
    dump_fit,
    parse_and_write,
)
from fitvideo.timeseries import ingest_records

NAIVE_T0 = datetime(2025, 11, 2, 8, 0, 0)


def _at(seconds):
    return NAIVE_T0 + timedelta(seconds=seconds)


@pytest.fixture
def paused_fit():
    return FakeFitFile({
        "record": [{"timestamp": _at(s), "heart_rate": 140} for s in (0, 1, 2, 32, 33)],
        "event": [
            {"timestamp": _at(0), "event": "timer", "event_type": "start"},
            {"timestamp": _at(2), "event": "timer", "event_type": "stop_all"},
            {"timestamp": _at(32), "event": "timer", "event_type": "start"},
        ],
        "lap": [{"total_timer_time": 3.0, "intensity": "active"}],
        "session": [{"total_timer_time": 3.0, "total_elapsed_time": 33.0}],
    })


def test_timestamps_become_utc(paused_fit):
    activity = activity_from_fitfile(paused_fit)
    assert activity.records[0]["timestamp"] == datetime(2025, 11, 2, 8, 0, tzinfo=timezone.utc)
    assert activity.events[1]["event_type"] == "stop_all"
    assert activity.session["total_elapsed_time"] == 33.0


def test_timer_stops_between_events(paused_fit):
    activity = activity_from_fitfile(paused_fit)
    assert [r["elapsed_time"] for r in activity.records] == [0, 1, 2, 32, 33]
    assert [r["timer_time"] for r in activity.records] == [0, 1, 2, 2, 3]


def test_synthesized_counters_reveal_pause(paused_fit):
    from fitvideo.gaps import find_pause

    report = find_pause(ingest_records(activity_from_fitfile(paused_fit).records))
    assert report.primary.index == 3
    assert report.primary.implied_pause == 30


def test_no_timer_events_means_timer_equals_elapsed():
    records = [{"timestamp": _at(s).replace(tzinfo=timezone.utc)} for s in (0, 5, 11)]
    add_elapsed_fields(records, [])
    assert [r["timer_time"] for r in records] == [r["elapsed_time"] for r in records] == [0, 5, 11]


def test_device_counters_are_kept():
    records = [
        {"timestamp": _at(0), "elapsed_time": 100.0, "timer_time": 90.0},
        {"timestamp": _at(1)},
    ]
    add_elapsed_fields(records, [])
    assert records[0]["elapsed_time"] == 100.0
    assert records[0]["timer_time"] == 90.0
    assert records[1]["elapsed_time"] == 1


def test_records_without_timestamps_are_left_alone():
    records = [{"heart_rate": 120}]
    add_elapsed_fields(records, [])
    assert records == [{"heart_rate": 120}]


def test_duration_prefers_session_timer():
    activity = Activity(sessions=[{"total_timer_time": 1800.0, "total_elapsed_time": 1900.0}])
    assert calculate_duration(activity) == 1800.0


def test_duration_falls_back_to_session_elapsed():
    activity = Activity(sessions=[{"total_timer_time": None, "total_elapsed_time": 1900.0}])
    assert calculate_duration(activity) == 1900.0


def test_duration_from_record_span():
    activity = Activity(records=[{"timestamp": _at(10)}, {"timestamp": _at(70)}])
    assert calculate_duration(activity) == 60.0


def test_duration_from_last_elapsed():
    activity = Activity(records=[{"elapsed_time": 0.0}, {"elapsed_time": 42.0}])
    assert calculate_duration(activity) == 42.0


def test_duration_unknown_raises():
    with pytest.raises(MalformedActivityError):
        calculate_duration(Activity())


def test_dump_fit_groups_by_message_name():
    ff = FakeFitFile({
        "file_id": [{"manufacturer": "garmin", "time_created": _at(0)}],
        "record": [{"heart_rate": 120, "position": (1, 2)}, {"heart_rate": 121, "raw": b"\x01\xff"}],
    })
    dumped = dump_fit(ff)
    assert list(dumped) == ["file_id", "record"]
    assert dumped["record"][0]["position"] == [1, 2]
    assert dumped["record"][1]["raw"] == "01ff"
    assert dumped["file_id"][0]["time_created"].tzinfo is timezone.utc


def test_parse_and_write(monkeypatch, tmp_path, paused_fit):
    monkeypatch.setattr(parser, "load_fit", lambda path: paused_fit)
    out = tmp_path / "activity.yaml"

    text = parse_and_write(tmp_path / "activity.fit", out)

    assert out.read_text(encoding="utf-8") == text
    data = yaml.safe_load(text)
    assert len(data["record"]) == 5
    assert data["session"][0]["total_elapsed_time"] == 33.0


def test_load_fit_wraps_decode_errors(monkeypatch, tmp_path):
    def broken(path):
        raise FitParseError("Invalid .FIT File Header")

    monkeypatch.setattr(parser, "FitFile", broken)
    with pytest.raises(MalformedActivityError):
        parser.load_fit(tmp_path / "broken.fit")


def test_main_missing_file(tmp_path):
    with pytest.raises(SystemExit) as exc:
        parser.main([str(tmp_path / "nope.fit")])
    assert exc.value.code == 2


def test_main_parse_error(monkeypatch, tmp_path):
    fit = tmp_path / "bad.fit"
    fit.write_bytes(b"not a fit file")

    def broken(path):
        raise MalformedActivityError("bad header")

    monkeypatch.setattr(parser, "load_fit", broken)
    with pytest.raises(SystemExit) as exc:
        parser.main([str(fit)])
    assert exc.value.code == 3


def test_main_writes_yaml_to_stdout(monkeypatch, tmp_path, capsys, paused_fit):
    fit = tmp_path / "run.fit"
    fit.write_bytes(b"")
    monkeypatch.setattr(parser, "load_fit", lambda path: paused_fit)
    parser.main([str(fit)])
    assert "record:" in capsys.readouterr().out
