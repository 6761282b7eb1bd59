from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from ...core.enums import ScanStatus
from .base import ScanDecision, ScanStrategy


class LateStrategy(ScanStrategy):
    """Scan after the phase cutoff."""

    def decide_scan(self, *, now: datetime, cutoff: Optional[datetime]) -> ScanDecision:
        minutes = 0
        if cutoff is not None:
            # half a minute rounds up
            minutes = int(math.floor((now - cutoff).total_seconds() / 60.0 + 0.5))
        return ScanDecision(status=ScanStatus.LATE, minutes_late=minutes)
