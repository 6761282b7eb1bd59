from __future__ import annotations

from ..core.enums import AttendanceMode
from ..records.model import PersonRecord
from ..store.base import RecordStore
from ..store.paths import live_records_collection, live_session_path
from .model import Session


def load_live_session(store: RecordStore, mode: AttendanceMode) -> Session:
    """The live session of ``mode``; an inactive placeholder when none exists."""

    doc = store.get(live_session_path(mode))
    if doc is None:
        return Session.inactive(mode)
    return Session.from_document(doc.data, version=doc.version)


def load_live_records(store: RecordStore, mode: AttendanceMode) -> list[PersonRecord]:
    return [PersonRecord.from_document(d.data, version=d.version) for d in store.list(live_records_collection(mode))]
