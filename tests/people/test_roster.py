from src.scan_attendance.scan_attendance.core.enums import AttendanceMode, Audience, Role
from src.scan_attendance.scan_attendance.people.memory_person_repository import InMemoryPersonRepository


def test_roster_filters_by_audience_role_and_activity():
    repo = InMemoryPersonRepository.from_rows(
        [
            {"person_id": "op", "full_name": "Op", "email": "op@x", "role": "operator", "audience": "both"},
            {"person_id": "s", "full_name": "Stu", "email": "s@x", "audience": "student"},
            {"person_id": "r", "full_name": "Res", "email": "r@x", "audience": "resident", "room": "A-1"},
            {"person_id": "b", "full_name": "Both", "email": "b@x", "audience": "both"},
            {"person_id": "x", "full_name": "Left", "email": "x@x", "is_active": False},
        ]
    )

    assert sorted(p.person_id for p in repo.list_roster(AttendanceMode.CLASS)) == ["b", "s"]
    assert sorted(p.person_id for p in repo.list_roster(AttendanceMode.HOSTEL)) == ["b", "r"]
    assert repo.get_by_id("op").role == Role.OPERATOR
    assert repo.get_by_id("r").audience == Audience.RESIDENT


def test_snapshot_copies_identity_fields():
    repo = InMemoryPersonRepository.from_rows([{"person_id": 7, "full_name": "Seven", "email": "7@x", "roll": "R7"}])

    snap = repo.get_by_id("7").snapshot()

    assert (snap.person_id, snap.name, snap.email, snap.roll, snap.room) == ("7", "Seven", "7@x", "R7", None)
