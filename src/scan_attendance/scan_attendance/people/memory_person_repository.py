from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..core.enums import AttendanceMode, Audience, Role
from .model import Person, is_enrolled
from .repository import PersonRepository


class InMemoryPersonRepository(PersonRepository):
    def __init__(self, people: Iterable[Person] = ()):
        self._people: dict[str, Person] = {p.person_id: p for p in people}

    @staticmethod
    def from_rows(rows: Iterable[dict]) -> "InMemoryPersonRepository":
        """Build from plain dicts (e.g. the ``DEMO_ROSTER`` setting)."""

        return InMemoryPersonRepository(
            Person(
                person_id=str(r["person_id"]),
                full_name=str(r["full_name"]),
                email=str(r.get("email", "")),
                role=Role(r.get("role", Role.PARTICIPANT.value)),
                audience=Audience(r.get("audience", Audience.STUDENT.value)),
                roll=r.get("roll"),
                room=r.get("room"),
                is_active=bool(r.get("is_active", True)),
            )
            for r in rows
        )

    def add(self, person: Person) -> None:
        self._people[person.person_id] = person

    def get_by_id(self, person_id: str) -> Optional[Person]:
        return self._people.get(str(person_id))

    def list_roster(self, mode: AttendanceMode) -> Sequence[Person]:
        return [p for p in self._people.values() if is_enrolled(p, mode)]
