from __future__ import annotations

from typing import Iterable

from ..records.model import PersonRecord
from ..sessions.model import Session


def session_to_json(session: Session, *, include_codes: bool = False) -> dict:
    """Session view for API responses.

    Codes are only exposed to operators; participants must scan them.
    """

    data = session.to_document()
    if include_codes:
        current = session.current_code
        data["current_code"] = current.code if current else None
        data["current_human_code"] = current.human_code if current else None
    else:
        data.pop("codes", None)
    return data


def record_to_json(record: PersonRecord) -> dict:
    data = record.to_document()
    data["person_id"] = record.person_id
    return data


def records_to_json(records: Iterable[PersonRecord]) -> list[dict]:
    return [record_to_json(r) for r in records]
