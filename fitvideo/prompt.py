from __future__ import annotations

import enum
import logging
from typing import Callable, Optional, Sequence

from fitvideo.segments import SegmentGroup, format_pace, parse_pace

log = logging.getLogger(__name__)

SKIP_ANSWERS = {"", "skip"}
CANCEL_ANSWERS = {"cancel", "quit", "q"}
YES_ANSWERS = {"y", "yes"}


class PromptCancelled(Exception):
    """The user asked to abandon the run."""


class PromptState(enum.Enum):
    AWAITING = "awaiting"
    VALIDATED = "validated"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class PacePrompter:
    """
    Asks for one target pace per segment group, one question at a time.

    ask/say default to input/print and can be swapped for scripted answers.
    """

    def __init__(
        self,
        ask: Callable[[str], str] = input,
        say: Callable[[str], None] = print,
        max_attempts: int = 5,
        unit: str = "mile",
    ):
        self.ask = ask
        self.say = say
        self.max_attempts = max_attempts
        self.unit = unit

    def _read(self, question: str) -> str:
        try:
            return self.ask(question).strip()
        except EOFError:
            raise PromptCancelled("input closed") from None

    def prompt_group(self, group: SegmentGroup) -> Optional[float]:
        lap_numbers = ", ".join(str(i + 1) for i in group.lap_indices)
        self.say(f"\n{group.name}")
        if len(group.lap_indices) > 1:
            self.say(f"  Combined laps: {lap_numbers}")
        else:
            self.say(f"  Lap {lap_numbers}")
        self.say(f"  Duration: {group.duration / 60:.1f} minutes")

        state = PromptState.AWAITING
        pace: Optional[float] = None
        attempts = 0
        while state is PromptState.AWAITING:
            answer = self._read(
                f"  What is the target pace for this segment? "
                f"(format: 7:30 or 7.5 min/{self.unit}, 'skip' or 'cancel'): "
            )
            lowered = answer.lower()
            if lowered in SKIP_ANSWERS:
                state = PromptState.SKIPPED
            elif lowered in CANCEL_ANSWERS:
                state = PromptState.CANCELLED
            else:
                pace = parse_pace(answer)
                attempts += 1
                if pace is not None:
                    state = PromptState.VALIDATED
                elif attempts >= self.max_attempts:
                    log.warning("Giving up on %s after %d invalid answers", group.name, attempts)
                    state = PromptState.SKIPPED
                else:
                    self.say("  Invalid format. Please use format like '7:30' or '7.5'")

        if state is PromptState.CANCELLED:
            raise PromptCancelled(f"cancelled at {group.name}")
        if state is PromptState.SKIPPED:
            self.say("  No target pace set for this segment")
            return None
        self.say(f"  Set target pace: {format_pace(pace)} min/{self.unit}")
        return pace

    def prompt_all(self, groups: Sequence[SegmentGroup]) -> list[Optional[float]]:
        return [self.prompt_group(g) for g in groups]

    def confirm(self, question: str) -> bool:
        return self._read(question).lower() in YES_ANSWERS
