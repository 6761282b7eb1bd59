from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceMode
from .model import Person


class PersonRepository(Protocol):
    """Roster source.

    Note (DIP): the session service depends on this interface, never on a concrete DB.
    """

    def get_by_id(self, person_id: str) -> Optional[Person]:
        raise NotImplementedError

    def list_roster(self, mode: AttendanceMode) -> Sequence[Person]:
        """Active participants enrolled for ``mode``."""

        raise NotImplementedError
