from datetime import datetime, timedelta, timezone

import pytest

from fitvideo.parser import Activity
from fitvideo.segments import Lap
from fitvideo.timeseries import Sample

T0 = datetime(2025, 11, 2, 8, 0, 0, tzinfo=timezone.utc)


def make_sample(index, offset=None, elapsed=None, timer=None, **kwargs):
    """Sample at T0 + offset seconds (no timestamp when offset is None)."""
    ts = None if offset is None else T0 + timedelta(seconds=offset)
    return Sample(index=index, timestamp=ts, elapsed_time=elapsed, timer_time=timer, **kwargs)


def samples_from_deltas(deltas):
    """Timestamped samples whose consecutive wall-clock deltas are `deltas`."""
    offsets = [0.0]
    for d in deltas:
        offsets.append(offsets[-1] + d)
    return [make_sample(i, off, elapsed=off, timer=off) for i, off in enumerate(offsets)]


class FakeField:
    def __init__(self, name, value):
        self.name = name
        self.value = value


class FakeMessage:
    def __init__(self, name, values):
        self.name = name
        self._fields = [FakeField(k, v) for k, v in values.items()]

    def __iter__(self):
        return iter(self._fields)


class FakeFitFile:
    """Stands in for fitparse.FitFile: get_messages(name) and .messages."""

    def __init__(self, groups):
        self.messages = [
            FakeMessage(name, values)
            for name, items in groups.items()
            for values in items
        ]

    def get_messages(self, name):
        return [m for m in self.messages if m.name == name]


@pytest.fixture
def workout_laps():
    return [
        Lap(index=0, duration=30, intensity="warmup"),
        Lap(index=1, duration=40, intensity="warmup"),
        Lap(index=2, duration=300, intensity="interval"),
        Lap(index=3, duration=60, intensity="cooldown"),
    ]


@pytest.fixture
def activity():
    """Ten minutes of running at 1 Hz with four laps."""
    records = []
    for i in range(0, 601):
        records.append({
            "timestamp": T0 + timedelta(seconds=i),
            "elapsed_time": float(i),
            "timer_time": float(i),
            "heart_rate": 120 + i // 10,
            "distance": i * 2.68224,  # 10:00 min/mile
        })
    laps = [
        {"total_timer_time": 120.0, "intensity": "warmup"},
        {"total_timer_time": 300.0, "intensity": "interval"},
        {"total_timer_time": 2.0, "intensity": "active"},
        {"total_timer_time": 178.0, "intensity": "cooldown"},
    ]
    sessions = [{
        "total_timer_time": 600.0,
        "total_elapsed_time": 600.0,
        "total_distance": 1609.34,
        "sport": "running",
    }]
    return Activity(records=records, laps=laps, sessions=sessions, events=[])


class Script:
    """Feeds canned answers to a prompter and records what it printed."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.questions = []
        self.output = []

    def ask(self, question):
        self.questions.append(question)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    def say(self, text):
        self.output.append(text)

    def prompter(self, **kwargs):
        from fitvideo.prompt import PacePrompter

        return PacePrompter(ask=self.ask, say=self.say, **kwargs)
