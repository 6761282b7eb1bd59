from __future__ import annotations

from datetime import timedelta

import pytest

from src.scan_attendance.scan_attendance.core.enums import AttendanceMode, FinalStatus, Role, ScanStatus
from src.scan_attendance.scan_attendance.core.exceptions import AuthorizationError, NotFoundError
from src.scan_attendance.scan_attendance.identity.provider import Identity
from src.scan_attendance.scan_attendance.sessions.model import SessionConfig

from conftest import OPERATOR, ROOM, T0


@pytest.fixture
def archived(class_services, scan):
    """A finished two-scan class session: s-1 stayed, s-2 left after scan 1."""

    class_services.sessions.start(SessionConfig(total_phases=2), operator=OPERATOR, location=ROOM, now=T0)
    scan("s-1", minutes=1)
    scan("s-2", minutes=1)
    class_services.sessions.activate_next_phase(operator=OPERATOR, now=T0 + timedelta(minutes=40))
    scan("s-1", minutes=41)
    return class_services.sessions.end(operator=OPERATOR, now=T0 + timedelta(minutes=90))


def test_list_sessions_newest_first(container, class_services, hostel_services, archived):
    hostel_services.sessions.start(SessionConfig(total_phases=1), operator=OPERATOR, location=ROOM, now=T0 + timedelta(days=1))
    hostel = hostel_services.sessions.end(operator=OPERATOR, now=T0 + timedelta(days=1, hours=1))

    listed = container.history_service.list_sessions()

    assert [s.archive_id for s in listed] == [hostel.archive_id, archived.archive_id]
    assert [s.archive_id for s in container.history_service.list_sessions(mode=AttendanceMode.CLASS)] == [archived.archive_id]
    assert len(container.history_service.list_sessions(limit=1)) == 1


def test_unknown_archive_is_not_found(container):
    with pytest.raises(NotFoundError):
        container.history_service.get_session("does-not-exist")


def test_live_session_is_not_history(container, class_services):
    class_services.sessions.start(SessionConfig(total_phases=1), operator=OPERATOR, location=ROOM, now=T0)

    with pytest.raises(NotFoundError):
        container.history_service.get_session("class-current")


def test_operator_override_changes_status_but_not_scans(container, archived):
    record = container.history_service.override_status(
        OPERATOR, archive_id=archived.archive_id, person_id="s-2", final_status=FinalStatus.PRESENT
    )

    stored = {r.person_id: r for r in container.history_service.get_records(archived.archive_id)}["s-2"]
    assert record.status_overridden
    assert stored.final_status == FinalStatus.PRESENT
    assert stored.scans[1].status == ScanStatus.ABSENT


def test_participant_cannot_override(container, archived):
    with pytest.raises(AuthorizationError):
        container.history_service.override_status(
            Identity("s-2", Role.PARTICIPANT),
            archive_id=archived.archive_id,
            person_id="s-2",
            final_status=FinalStatus.PRESENT,
        )


def test_override_of_unknown_record(container, archived):
    with pytest.raises(NotFoundError):
        container.history_service.override_status(
            OPERATOR, archive_id=archived.archive_id, person_id="nobody", final_status=FinalStatus.ABSENT
        )


def test_absence_rate_after_first_scan(container, archived):
    # s-1 and s-2 made scan 1; s-2 then missed scan 2
    assert container.history_service.absence_rate_after_first_scan() == pytest.approx(50.0)


def test_absence_rate_without_history(container):
    assert container.history_service.absence_rate_after_first_scan() is None
