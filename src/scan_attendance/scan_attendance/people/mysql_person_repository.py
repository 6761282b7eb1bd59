from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import AttendanceMode, Audience, Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Person, audiences_for
from .repository import PersonRepository


def _row_to_person(row: dict) -> Person:
    return Person(
        person_id=str(row["person_id"]),
        full_name=row["full_name"],
        email=row["email"],
        role=Role(row["role"]),
        audience=Audience(row["audience"]),
        roll=row.get("roll"),
        room=row.get("room"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLPersonRepository(PersonRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, person_id: str) -> Optional[Person]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT person_id, full_name, email, roll, room, role, audience, is_active
                FROM people
                WHERE person_id=%s
                """,
                (str(person_id),),
            )
            row = fetchone(cur)
            return _row_to_person(row) if row else None

    def list_roster(self, mode: AttendanceMode) -> Sequence[Person]:
        audiences = sorted(a.value for a in audiences_for(mode))
        placeholders = ", ".join(["%s"] * len(audiences))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT person_id, full_name, email, roll, room, role, audience, is_active
                FROM people
                WHERE is_active=1 AND role=%s AND audience IN ({placeholders})
                ORDER BY full_name ASC
                """,
                (Role.PARTICIPANT.value, *audiences),
            )
            return [_row_to_person(r) for r in fetchall(cur)]
