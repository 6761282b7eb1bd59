from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Protocol

from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

MIN_MINUTES_AFTER_BREAK = 2


@dataclass(frozen=True)
class TimingSignals:
    """Inputs for the next-scan timing suggestion.

    ``absence_rate_percent``: share of people who made scan 1 and then missed
    a later scan in recent sessions.
    """

    absence_rate_percent: float
    remaining_minutes: float
    break_minutes: float = 0.0

    def validated(self) -> "TimingSignals":
        values = (self.absence_rate_percent, self.remaining_minutes, self.break_minutes)
        try:
            rate, remaining, brk = (float(v) for v in values)
        except (TypeError, ValueError):
            raise ValidationError("Timing signals must be numbers")
        if not all(math.isfinite(v) for v in (rate, remaining, brk)):
            raise ValidationError("Timing signals must be finite")
        if not 0.0 <= rate <= 100.0:
            raise ValidationError("Absence rate must be between 0 and 100")
        if remaining <= 0:
            raise ValidationError("Remaining minutes must be > 0")
        if brk < 0:
            raise ValidationError("Break minutes must be >= 0")
        return TimingSignals(absence_rate_percent=rate, remaining_minutes=remaining, break_minutes=brk)


@dataclass(frozen=True)
class TimingSuggestion:
    minutes_after_break: int
    rationale: str

    def to_dict(self) -> dict:
        return {"minutes_after_break": self.minutes_after_break, "rationale": self.rationale}


class AdvisoryService(Protocol):
    def suggest_timing(self, signals: TimingSignals) -> TimingSuggestion:
        raise NotImplementedError


class HeuristicTimingAdvisor(AdvisoryService):
    """Suggest when to show the next scan code after a break.

    Starts from half the remaining time and pulls earlier as the absence rate
    grows. Never earlier than two minutes after the break, which also wins
    when half the remaining time is shorter than that.
    """

    def suggest_timing(self, signals: TimingSignals) -> TimingSuggestion:
        s = signals.validated()
        latest = s.remaining_minutes / 2.0
        scaled = latest * (1.0 - s.absence_rate_percent / 100.0)
        minutes = max(MIN_MINUTES_AFTER_BREAK, int(round(min(scaled, latest))))

        if s.absence_rate_percent >= 50:
            tone = "A high absence rate after the first scan"
        elif s.absence_rate_percent >= 20:
            tone = "A moderate absence rate after the first scan"
        else:
            tone = "A low absence rate after the first scan"
        rationale = (
            f"{tone} ({s.absence_rate_percent:.0f}%) with {s.remaining_minutes:.0f} minutes remaining: "
            f"show the next code {minutes} minutes after the break ends."
        )
        return TimingSuggestion(minutes_after_break=minutes, rationale=rationale)


class AdvisoryGateway:
    """Calls an advisor without letting its failures reach the caller."""

    def __init__(self, advisor: Optional[AdvisoryService]):
        self._advisor = advisor

    @property
    def enabled(self) -> bool:
        return self._advisor is not None

    def suggest_timing(self, signals: TimingSignals) -> Optional[TimingSuggestion]:
        if self._advisor is None:
            return None
        try:
            return self._advisor.suggest_timing(signals)
        except Exception:
            logger.warning("Advisory timing suggestion failed", exc_info=True)
            return None
