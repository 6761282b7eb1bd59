from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import AttendanceMode, Audience, Role
from ..records.model import PersonSnapshot


@dataclass(frozen=True)
class Person:
    """Domain entity: a roster member (or operator).

    Note: Plain data object; sessions copy it into a PersonSnapshot at start so
    later edits here never rewrite history.
    """

    person_id: str
    full_name: str
    email: str
    role: Role = Role.PARTICIPANT
    audience: Audience = Audience.STUDENT
    roll: Optional[str] = None
    room: Optional[str] = None
    is_active: bool = True

    def snapshot(self) -> PersonSnapshot:
        return PersonSnapshot(
            person_id=self.person_id,
            name=self.full_name,
            email=self.email,
            roll=self.roll,
            room=self.room,
        )


def audiences_for(mode: AttendanceMode) -> frozenset[Audience]:
    if mode == AttendanceMode.HOSTEL:
        return frozenset({Audience.RESIDENT, Audience.BOTH})
    return frozenset({Audience.STUDENT, Audience.BOTH})


def is_enrolled(person: Person, mode: AttendanceMode) -> bool:
    return person.is_active and person.role == Role.PARTICIPANT and person.audience in audiences_for(mode)
