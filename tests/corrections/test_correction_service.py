from __future__ import annotations

from datetime import timedelta

import pytest

from src.scan_attendance.scan_attendance.core.constants import MANUAL_OVERRIDE_DEVICE_ID
from src.scan_attendance.scan_attendance.core.enums import CorrectionStatus, FinalStatus, Role, ScanStatus
from src.scan_attendance.scan_attendance.core.exceptions import (
    AuthorizationError,
    NoPendingCorrectionError,
    SessionInactiveError,
    ValidationError,
)
from src.scan_attendance.scan_attendance.identity.provider import Identity

from conftest import OPERATOR, T0

STUDENT = Identity("s-1", Role.PARTICIPANT)


def _record(services, person_id):
    return {r.person_id: r for r in services.sessions.live_records()}[person_id]


def test_correction_round_trip_marks_first_scan_present(start_class, class_services):
    start_class(total_phases=1)

    requested = class_services.corrections.request_correction(STUDENT, "s-1", "Camera would not focus", now=T0 + timedelta(minutes=3))
    assert requested.correction.status == CorrectionStatus.PENDING
    assert [r.person_id for r in class_services.corrections.list_pending(OPERATOR)] == ["s-1"]

    approved_at = T0 + timedelta(minutes=9)
    resolved = class_services.corrections.resolve_correction(OPERATOR, "s-1", True, now=approved_at)

    assert resolved.correction.status == CorrectionStatus.APPROVED
    assert resolved.correction.resolved_by == "op-1"
    slot = resolved.scans[0]
    assert slot.status == ScanStatus.PRESENT
    assert slot.minutes_late == 0
    assert slot.timestamp == approved_at
    assert slot.device_id == MANUAL_OVERRIDE_DEVICE_ID
    assert _record(class_services, "s-1").final_status == FinalStatus.PRESENT
    assert class_services.corrections.list_pending(OPERATOR) == []


def test_pending_request_shows_absent_until_reviewed(start_class, scan, class_services):
    start_class(total_phases=1)
    scan("s-1", minutes=1)

    class_services.corrections.request_correction(STUDENT, "s-1", "Marked wrong", now=T0 + timedelta(minutes=2))

    assert _record(class_services, "s-1").final_status == FinalStatus.ABSENT


def test_denied_request_leaves_scans_untouched(start_class, class_services):
    start_class(total_phases=1)
    class_services.corrections.request_correction(STUDENT, "s-1", "Please", now=T0)

    resolved = class_services.corrections.resolve_correction(OPERATOR, "s-1", False, now=T0 + timedelta(minutes=1))

    assert resolved.correction.status == CorrectionStatus.DENIED
    assert resolved.scans[0].status == ScanStatus.ABSENT
    assert resolved.final_status == FinalStatus.ABSENT


def test_new_request_overwrites_previous_one(start_class, class_services):
    start_class()
    class_services.corrections.request_correction(STUDENT, "s-1", "first", now=T0)

    record = class_services.corrections.request_correction(STUDENT, "s-1", "second", now=T0 + timedelta(minutes=1))

    assert record.correction.reason == "second"


def test_participant_cannot_file_for_someone_else(start_class, class_services):
    start_class()

    with pytest.raises(AuthorizationError):
        class_services.corrections.request_correction(STUDENT, "s-2", "covering for a friend", now=T0)


def test_participant_cannot_resolve(start_class, class_services):
    start_class()
    class_services.corrections.request_correction(STUDENT, "s-1", "x", now=T0)

    with pytest.raises(AuthorizationError):
        class_services.corrections.resolve_correction(STUDENT, "s-1", True, now=T0)


def test_resolve_without_pending_request(start_class, class_services):
    start_class()

    with pytest.raises(NoPendingCorrectionError):
        class_services.corrections.resolve_correction(OPERATOR, "s-1", True, now=T0)


def test_empty_reason_is_invalid(start_class, class_services):
    start_class()

    with pytest.raises(ValidationError):
        class_services.corrections.request_correction(STUDENT, "s-1", "   ", now=T0)


def test_request_needs_an_active_session(class_services):
    with pytest.raises(SessionInactiveError):
        class_services.corrections.request_correction(STUDENT, "s-1", "late bus", now=T0)
