from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import ScanStatus


@dataclass(frozen=True)
class ScanDecision:
    status: ScanStatus
    minutes_late: int = 0


class ScanStrategy(ABC):
    """Strategy Pattern: encapsulate how a single accepted scan is classified."""

    @abstractmethod
    def decide_scan(self, *, now: datetime, cutoff: Optional[datetime]) -> ScanDecision:
        raise NotImplementedError
