from datetime import datetime, timedelta, timezone

from src.scan_attendance.scan_attendance.attendance.factory import AttendanceStrategyFactory
from src.scan_attendance.scan_attendance.attendance.strategies.late_strategy import LateStrategy
from src.scan_attendance.scan_attendance.attendance.strategies.on_time_strategy import OnTimeStrategy
from src.scan_attendance.scan_attendance.core.enums import ScanStatus

CUTOFF = datetime(2025, 1, 1, 8, 10, tzinfo=timezone.utc)


def test_factory_on_time_at_cutoff():
    strategy = AttendanceStrategyFactory().for_scan(now=CUTOFF, cutoff=CUTOFF)

    assert isinstance(strategy, OnTimeStrategy)


def test_factory_late_after_cutoff():
    strategy = AttendanceStrategyFactory().for_scan(now=CUTOFF + timedelta(seconds=1), cutoff=CUTOFF)

    assert isinstance(strategy, LateStrategy)


def test_factory_without_cutoff_is_never_late():
    strategy = AttendanceStrategyFactory().for_scan(now=CUTOFF + timedelta(hours=5), cutoff=None)

    assert isinstance(strategy, OnTimeStrategy)


def test_late_minutes_are_rounded_from_the_cutoff():
    decision = LateStrategy().decide_scan(now=CUTOFF + timedelta(minutes=20, seconds=29), cutoff=CUTOFF)

    assert decision.status == ScanStatus.LATE
    assert decision.minutes_late == 20


def test_on_time_decision():
    decision = OnTimeStrategy().decide_scan(now=CUTOFF, cutoff=CUTOFF)

    assert decision.status == ScanStatus.PRESENT
    assert decision.minutes_late == 0


def test_half_minute_late_rounds_up():
    decision = LateStrategy().decide_scan(now=CUTOFF + timedelta(minutes=2, seconds=30), cutoff=CUTOFF)

    assert decision.minutes_late == 3
