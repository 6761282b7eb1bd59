"""Example: drive the service layer directly (no Flask), on the in-memory store.

One class session with two scans: one participant stays, one leaves after scan 1.
"""

from datetime import datetime, timedelta, timezone

from src.scan_attendance.scan_attendance.container import build_container
from src.scan_attendance.scan_attendance.core.enums import AttendanceMode, Role
from src.scan_attendance.scan_attendance.geo.geofence import GeoPoint
from src.scan_attendance.scan_attendance.identity.provider import Identity
from src.scan_attendance.scan_attendance.sessions.model import SessionConfig

ROSTER = [
    {"person_id": "s-1", "full_name": "An Nguyen", "email": "an@example.com", "roll": "CS-01"},
    {"person_id": "s-2", "full_name": "Binh Tran", "email": "binh@example.com", "roll": "CS-02"},
]


def main():
    container = build_container({"SECRET_KEY": "demo", "STORE_BACKEND": "memory", "DEMO_ROSTER": ROSTER})
    services = container.for_mode(AttendanceMode.CLASS)
    operator = Identity(person_id="op-1", role=Role.OPERATOR)
    room = GeoPoint(lat=10.7626, lng=106.6602)
    t0 = datetime(2025, 3, 3, 8, 0, tzinfo=timezone.utc)

    session = services.sessions.start(SessionConfig(total_phases=2), operator=operator, location=room, now=t0)
    for pid in ("s-1", "s-2"):
        outcome = services.scans.submit_scan(pid, session.current_code.code, room, f"phone-{pid}", now=t0 + timedelta(minutes=3))
        print(pid, outcome.message())

    session = services.sessions.activate_next_phase(operator=operator, now=t0 + timedelta(minutes=50))
    print("s-1", services.scans.submit_scan("s-1", session.current_code.code, room, "phone-s-1", now=t0 + timedelta(minutes=52)).message())

    result = services.sessions.end(operator=operator, now=t0 + timedelta(minutes=90))
    for record in container.history_service.get_records(result.archive_id):
        print(record.person.name, record.final_status.value)


if __name__ == "__main__":
    main()
