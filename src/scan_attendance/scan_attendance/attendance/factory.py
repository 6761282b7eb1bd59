from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .strategies.base import ScanStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose the scan strategy from the phase cutoff."""

    def for_scan(self, *, now: datetime, cutoff: Optional[datetime]) -> ScanStrategy:
        if cutoff is None or now <= cutoff:
            return OnTimeStrategy()
        return LateStrategy()
