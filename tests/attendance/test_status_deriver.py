from datetime import datetime, timezone

import pytest

from src.scan_attendance.scan_attendance.attendance.deriver import StatusDeriver
from src.scan_attendance.scan_attendance.core.enums import AttendanceMode, CorrectionStatus, FinalStatus, ScanStatus
from src.scan_attendance.scan_attendance.records.model import CorrectionRequest, ScanSlot

NOW = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)

ABSENT = ScanSlot()
PRESENT = ScanSlot(status=ScanStatus.PRESENT, timestamp=NOW, device_id="d")


def late(minutes):
    return ScanSlot(status=ScanStatus.LATE, minutes_late=minutes, timestamp=NOW, device_id="d")


@pytest.mark.parametrize(
    "scans,expected",
    [
        ((ABSENT, ABSENT), FinalStatus.ABSENT),
        ((PRESENT, PRESENT), FinalStatus.PRESENT),
        ((PRESENT, late(5)), FinalStatus.LATE),
        ((PRESENT, ABSENT), FinalStatus.LEFT_EARLY),
        ((ABSENT, PRESENT, ABSENT), FinalStatus.LEFT_EARLY),
    ],
)
def test_class_mode_derivation(scans, expected):
    assert StatusDeriver(AttendanceMode.CLASS).derive(scans).final_status == expected


def test_late_minutes_are_summed_over_late_scans():
    summary = StatusDeriver(AttendanceMode.CLASS).derive((late(3), PRESENT, late(7)))

    assert summary.final_status == FinalStatus.LATE
    assert summary.minutes_late == 10


def test_hostel_partial_attendance_is_absent():
    assert StatusDeriver(AttendanceMode.HOSTEL).derive((PRESENT, ABSENT)).final_status == FinalStatus.ABSENT


def test_pending_correction_shows_absent_live_but_not_at_archival():
    deriver = StatusDeriver(AttendanceMode.CLASS)
    pending = CorrectionRequest(reason="phone died", requested_at=NOW)

    assert deriver.derive((PRESENT, PRESENT), pending, live=True).final_status == FinalStatus.ABSENT
    assert deriver.derive((PRESENT, PRESENT), pending, live=False).final_status == FinalStatus.PRESENT


def test_denied_correction_is_ignored():
    denied = CorrectionRequest(reason="x", requested_at=NOW, status=CorrectionStatus.DENIED)

    assert StatusDeriver().derive((PRESENT, ABSENT), denied).final_status == FinalStatus.LEFT_EARLY


def test_derivation_is_deterministic():
    deriver = StatusDeriver(AttendanceMode.CLASS)
    scans = (PRESENT, late(4), ABSENT)

    assert deriver.derive(scans) == deriver.derive(scans)
