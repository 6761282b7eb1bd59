from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import ScanStatus
from .base import ScanDecision, ScanStrategy


class OnTimeStrategy(ScanStrategy):
    """Scan before the phase cutoff (or in a phase without one)."""

    def decide_scan(self, *, now: datetime, cutoff: Optional[datetime]) -> ScanDecision:
        return ScanDecision(status=ScanStatus.PRESENT, minutes_late=0)
