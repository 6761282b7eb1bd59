from __future__ import annotations

import pytest

from src.scan_attendance.scan_attendance.container import build_container
from src.scan_attendance.scan_attendance.core.constants import MANUAL_OVERRIDE_DEVICE_ID
from src.scan_attendance.scan_attendance.core.enums import (
    AttendanceMode,
    FinalStatus,
    RejectionReason,
    Role,
    ScanOutcomeKind,
    ScanStatus,
)
from src.scan_attendance.scan_attendance.core.exceptions import ScanRejected, ValidationError
from src.scan_attendance.scan_attendance.identity.provider import Identity
from src.scan_attendance.scan_attendance.sessions.model import SessionConfig
from src.scan_attendance.scan_attendance.store.memory_store import InMemoryRecordStore

from conftest import FAR_AWAY, NEARBY, OPERATOR, ROOM, T0, at


def _reason(excinfo) -> RejectionReason:
    return excinfo.value.reason


def test_scan_without_session_is_rejected(class_services):
    with pytest.raises(ScanRejected) as exc:
        class_services.scans.submit_scan("s-1", "scan1:ABCDEF:1", NEARBY, "phone", now=T0)

    assert _reason(exc) == RejectionReason.SESSION_INACTIVE


def test_scan_by_someone_not_on_the_roster_is_rejected(start_class, scan):
    start_class()

    with pytest.raises(ScanRejected) as exc:
        scan("r-1", minutes=1, code="scan9:nope:1")

    assert _reason(exc) == RejectionReason.RECORD_NOT_FOUND


def test_wrong_phase_message_names_both_phases(start_class, scan):
    start_class()

    with pytest.raises(ScanRejected) as exc:
        scan("s-1", minutes=1, code="scan2:WRONG!:1")

    assert _reason(exc) == RejectionReason.WRONG_PHASE
    assert "scan 2" in str(exc.value)
    assert "scan 1" in str(exc.value)


def test_wrong_token_is_invalid_code(start_class, scan):
    start_class()

    with pytest.raises(ScanRejected) as exc:
        scan("s-1", minutes=1, code="scan1:WRONG!:1")

    assert _reason(exc) == RejectionReason.INVALID_CODE


def test_typed_token_is_accepted_case_insensitively(start_class, scan):
    session = start_class()

    outcome = scan("s-1", minutes=1, code=f"scan1:{session.current_code.human_code.lower()}")

    assert outcome.kind == ScanOutcomeKind.ACCEPTED


def test_out_of_range_reports_distance(start_class, scan):
    start_class()

    with pytest.raises(ScanRejected) as exc:
        scan("s-1", minutes=1, location=FAR_AWAY)

    assert _reason(exc) == RejectionReason.OUT_OF_RANGE
    assert "m from the session location" in str(exc.value)


def test_out_of_range_is_checked_before_device_reuse(start_class, scan):
    start_class()
    scan("s-1", minutes=1, device="shared")

    with pytest.raises(ScanRejected) as exc:
        scan("s-2", minutes=1, device="shared", location=FAR_AWAY)

    assert _reason(exc) == RejectionReason.OUT_OF_RANGE


def test_same_device_for_two_people_is_rejected(start_class, scan):
    start_class()
    first = scan("s-1", minutes=1, device="shared")

    with pytest.raises(ScanRejected) as exc:
        scan("s-2", minutes=1, device="shared")

    assert first.accepted
    assert _reason(exc) == RejectionReason.DEVICE_ALREADY_USED


def test_two_devices_two_people_at_the_same_instant_are_both_accepted(start_class, scan):
    start_class()

    a = scan("s-1", minutes=2, device="phone-a")
    b = scan("s-2", minutes=2, device="phone-b")

    assert a.accepted and b.accepted


def test_repeat_scan_is_already_scanned_and_leaves_record_unchanged(start_class, scan, class_services):
    start_class()
    first = scan("s-1", minutes=1)
    before = {r.person_id: r for r in class_services.sessions.live_records()}["s-1"]

    second = scan("s-1", minutes=3)
    after = {r.person_id: r for r in class_services.sessions.live_records()}["s-1"]

    assert first.kind == ScanOutcomeKind.ACCEPTED
    assert second.kind == ScanOutcomeKind.ALREADY_SCANNED
    assert after.scans == before.scans
    assert after.scans[0].timestamp == at(1)


def test_device_is_free_again_in_the_next_phase(start_class, scan, class_services):
    start_class()
    scan("s-1", minutes=1, device="shared")
    class_services.sessions.activate_next_phase(operator=OPERATOR, now=at(30))

    outcome = scan("s-1", minutes=31, device="shared")

    assert outcome.accepted
    assert class_services.scans.device_usage().is_used(2, "shared")


def test_missing_previous_phase_is_rejected(start_class, scan, class_services):
    start_class()
    class_services.sessions.activate_next_phase(operator=OPERATOR, now=at(30))

    with pytest.raises(ScanRejected) as exc:
        scan("s-2", minutes=31)

    assert _reason(exc) == RejectionReason.PREVIOUS_PHASE_MISSED


def test_old_phase_code_is_wrong_phase_after_advance(start_class, scan, class_services):
    session = start_class()
    class_services.sessions.activate_next_phase(operator=OPERATOR, now=at(30))

    with pytest.raises(ScanRejected) as exc:
        scan("s-1", minutes=31, code=session.codes[0].code)

    assert _reason(exc) == RejectionReason.WRONG_PHASE


def test_second_scan_lateness_is_measured_from_session_start(start_class, scan, class_services):
    start_class(phase_late_overrides={2: 20})

    first = scan("s-1", minutes=5)
    class_services.sessions.activate_next_phase(operator=OPERATOR, now=at(30))
    second = scan("s-1", minutes=40)

    assert first.status == ScanStatus.PRESENT
    assert second.status == ScanStatus.LATE
    assert second.minutes_late == 20
    record = {r.person_id: r for r in class_services.sessions.live_records()}["s-1"]
    assert record.final_status == FinalStatus.LATE


def test_phase_activated_after_its_cutoff_is_late_immediately(start_class, scan, class_services):
    start_class(late_after_minutes=10)
    scan("s-1", minutes=5)
    class_services.sessions.activate_next_phase(operator=OPERATOR, now=at(30))

    outcome = scan("s-1", minutes=40)

    assert outcome.minutes_late == 30


def test_empty_device_id_is_invalid(start_class, class_services):
    session = start_class()

    with pytest.raises(ValidationError):
        class_services.scans.submit_scan("s-1", session.current_code.code, NEARBY, "  ", now=at(1))


class RacingStore(InMemoryRecordStore):
    """Runs ``on_next_commit`` right before the next commit, like a concurrent writer."""

    def __init__(self):
        super().__init__()
        self.on_next_commit = None

    def commit(self, batch):
        hook, self.on_next_commit = self.on_next_commit, None
        if hook is not None:
            hook()
        super().commit(batch)


@pytest.fixture
def racing(people):
    store = RacingStore()
    services = build_container({"SECRET_KEY": "t"}, store=store, people_repo=people).for_mode(AttendanceMode.CLASS)
    session = services.sessions.start(SessionConfig(total_phases=2), operator=OPERATOR, location=ROOM, now=T0)
    return store, services, session.current_code.code


def test_racing_duplicate_from_the_same_device_loses_with_device_already_used(racing):
    store, services, code = racing
    store.on_next_commit = lambda: services.scans.submit_scan("s-2", code, NEARBY, "shared", now=at(1))

    with pytest.raises(ScanRejected) as exc:
        services.scans.submit_scan("s-1", code, NEARBY, "shared", now=at(1))

    assert _reason(exc) == RejectionReason.DEVICE_ALREADY_USED
    accepted = [r for r in services.sessions.live_records() if not r.scans[0].is_absent]
    assert [r.person_id for r in accepted] == ["s-2"]


def test_racing_duplicate_for_the_same_person_resolves_to_already_scanned(racing):
    store, services, code = racing
    store.on_next_commit = lambda: services.scans.submit_scan("s-1", code, NEARBY, "phone-x", now=at(1))

    outcome = services.scans.submit_scan("s-1", code, NEARBY, "phone-y", now=at(2))

    assert outcome.kind == ScanOutcomeKind.ALREADY_SCANNED
    record = {r.person_id: r for r in services.sessions.live_records()}["s-1"]
    assert record.scans[0].device_id == "phone-x"


def test_code_from_an_ended_session_is_not_recorded_in_the_next_one(racing):
    store, services, old_code = racing

    def end_and_restart():
        services.sessions.end(operator=OPERATOR, now=at(5))
        services.sessions.start(SessionConfig(total_phases=2), operator=OPERATOR, location=ROOM, now=at(6))

    store.on_next_commit = end_and_restart

    with pytest.raises(ScanRejected) as exc:
        services.scans.submit_scan("s-1", old_code, NEARBY, "phone-1", now=at(7))

    assert _reason(exc) == RejectionReason.INVALID_CODE
    assert services.sessions.current().current_code.code != old_code
    record = {r.person_id: r for r in services.sessions.live_records()}["s-1"]
    assert record.scans[0].is_absent
    assert not services.scans.device_usage().is_used(1, "phone-1")


def test_photos_attach_to_the_current_hostel_scan(hostel_services):
    session = hostel_services.sessions.start(
        SessionConfig(total_phases=1, requires_photo=True), operator=OPERATOR, location=ROOM, now=T0
    )
    hostel_services.scans.submit_scan("r-1", session.current_code.code, NEARBY, "phone-r", now=at(200))

    record = hostel_services.scans.attach_photos("r-1", ["https://files.example.com/r-1.jpg", " "])

    assert session.requires_photo
    assert record.scans[0].status == ScanStatus.PRESENT
    assert record.scans[0].photo_urls == ("https://files.example.com/r-1.jpg",)


def test_photos_require_a_completed_scan(hostel_services):
    hostel_services.sessions.start(SessionConfig(total_phases=1), operator=OPERATOR, location=ROOM, now=T0)

    with pytest.raises(ValidationError):
        hostel_services.scans.attach_photos("r-1", ["https://files.example.com/r-1.jpg"])


def test_reserved_override_device_id_is_invalid(start_class, scan):
    start_class()

    with pytest.raises(ValidationError):
        scan("s-1", minutes=1, device=MANUAL_OVERRIDE_DEVICE_ID)


def test_device_stays_used_after_its_scan_is_corrected(start_class, scan, class_services):
    start_class()
    scan("s-1", minutes=1, device="shared")
    class_services.corrections.request_correction(Identity("s-1", Role.PARTICIPANT), "s-1", "Wrong time", now=at(2))
    class_services.corrections.resolve_correction(OPERATOR, "s-1", True, now=at(3))

    with pytest.raises(ScanRejected) as exc:
        scan("s-2", minutes=4, device="shared")

    assert _reason(exc) == RejectionReason.DEVICE_ALREADY_USED


def test_half_minute_past_the_cutoff_counts_as_the_next_minute(start_class, scan):
    start_class(late_after_minutes=10)

    outcome = scan("s-1", minutes=12.5)

    assert outcome.status == ScanStatus.LATE
    assert outcome.minutes_late == 3
