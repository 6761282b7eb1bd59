from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from ..core.enums import AttendanceMode, CorrectionStatus, FinalStatus, ScanStatus
from ..records.model import CorrectionRequest, ScanSlot


@dataclass(frozen=True)
class StatusSummary:
    final_status: FinalStatus
    minutes_late: int = 0


class StatusDeriver:
    """Derives a person's final status from their scans.

    Pure: the same scans and correction always give the same summary.

    - no scan completed: ABSENT
    - every scan completed, none late: PRESENT
    - every scan completed, some late: LATE (minutes summed over late scans)
    - some but not all completed: LEFT_EARLY in class mode, ABSENT in hostel mode

    For live display a pending correction shows as ABSENT until an operator
    decides it. Archival passes ``live=False`` so an unresolved request is
    ignored.
    """

    def __init__(self, mode: AttendanceMode = AttendanceMode.CLASS):
        self._mode = mode

    @property
    def mode(self) -> AttendanceMode:
        return self._mode

    def derive(
        self,
        scans: Sequence[ScanSlot],
        correction: Optional[CorrectionRequest] = None,
        *,
        live: bool = True,
    ) -> StatusSummary:
        if live and correction is not None and correction.status == CorrectionStatus.PENDING:
            return StatusSummary(FinalStatus.ABSENT)

        completed = [s for s in scans if not s.is_absent]
        if not completed:
            return StatusSummary(FinalStatus.ABSENT)

        if len(completed) < len(scans):
            if self._mode == AttendanceMode.HOSTEL:
                return StatusSummary(FinalStatus.ABSENT)
            return StatusSummary(FinalStatus.LEFT_EARLY)

        late = [s for s in completed if s.status == ScanStatus.LATE]
        if late:
            return StatusSummary(FinalStatus.LATE, minutes_late=sum(int(s.minutes_late) for s in late))
        return StatusSummary(FinalStatus.PRESENT)
