from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.scan_attendance.scan_attendance.container import build_container
from src.scan_attendance.scan_attendance.core.enums import AttendanceMode, Audience, Role
from src.scan_attendance.scan_attendance.geo.geofence import GeoPoint
from src.scan_attendance.scan_attendance.identity.provider import Identity
from src.scan_attendance.scan_attendance.people.memory_person_repository import InMemoryPersonRepository
from src.scan_attendance.scan_attendance.people.model import Person
from src.scan_attendance.scan_attendance.sessions.model import SessionConfig
from src.scan_attendance.scan_attendance.store.memory_store import InMemoryRecordStore

T0 = datetime(2025, 3, 3, 8, 0, tzinfo=timezone.utc)

# A classroom; NEARBY is roughly 20 m north of it.
ROOM = GeoPoint(lat=10.7626, lng=106.6602)
NEARBY = GeoPoint(lat=10.76278, lng=106.6602)
FAR_AWAY = GeoPoint(lat=10.7726, lng=106.6602)

OPERATOR = Identity(person_id="op-1", role=Role.OPERATOR)

TEST_SETTINGS = {
    "SECRET_KEY": "test-secret",
    "STORE_BACKEND": "memory",
    "TOKEN_TTL_SECONDS": 3600,
    "STORE_RETRY_ATTEMPTS": 2,
    "STORE_RETRY_BACKOFF_SECONDS": 0.0,
    "LOG_LEVEL": "WARNING",
}


def at(minutes: float) -> datetime:
    return T0 + timedelta(minutes=minutes)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def people():
    return InMemoryPersonRepository(
        [
            Person(person_id="op-1", full_name="Olivia Operator", email="op@example.com", role=Role.OPERATOR),
            Person(person_id="s-1", full_name="An Nguyen", email="an@example.com", roll="CS-01"),
            Person(person_id="s-2", full_name="Binh Tran", email="binh@example.com", roll="CS-02"),
            Person(person_id="s-3", full_name="Cuong Pham", email="cuong@example.com", roll="CS-03"),
            Person(person_id="r-1", full_name="Dung Vo", email="dung@example.com", room="A-101", audience=Audience.RESIDENT),
            Person(person_id="b-1", full_name="Em Ho", email="em@example.com", roll="CS-04", room="B-204", audience=Audience.BOTH),
            Person(person_id="s-9", full_name="Gone Student", email="gone@example.com", is_active=False),
        ]
    )


@pytest.fixture
def container(store, people):
    return build_container(TEST_SETTINGS, store=store, people_repo=people)


@pytest.fixture
def class_services(container):
    return container.for_mode(AttendanceMode.CLASS)


@pytest.fixture
def hostel_services(container):
    return container.for_mode(AttendanceMode.HOSTEL)


@pytest.fixture
def operator():
    return OPERATOR


@pytest.fixture
def start_class(class_services):
    """Start a class session at T0 in ROOM; returns the session."""

    def _start(**overrides):
        config = SessionConfig(**{"total_phases": 2, "late_after_minutes": 10, "radius_meters": 100, **overrides})
        return class_services.sessions.start(config, operator=OPERATOR, location=ROOM, now=T0)

    return _start


@pytest.fixture
def scan(class_services):
    """Submit a class-mode scan with the current code from NEARBY."""

    def _scan(person_id, *, minutes, device=None, code=None, location=NEARBY):
        if code is None:
            code = class_services.sessions.current().current_code.code
        return class_services.scans.submit_scan(
            person_id, code, location, device or f"phone-{person_id}", now=at(minutes)
        )

    return _scan
