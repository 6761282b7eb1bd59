from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..attendance.deriver import StatusDeriver
from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_HISTORY_LIMIT, MAX_FINALIZE_ATTEMPTS
from ..core.enums import AttendanceMode, CorrectionStatus, FinalStatus, RecordLifecycle, ScanStatus, SessionStatus
from ..core.exceptions import ConflictError, NotFoundError, SessionInactiveError
from ..identity.provider import Identity, require_operator
from ..records.model import PersonRecord
from ..sessions.model import Session
from ..sessions.repository import load_live_records, load_live_session
from ..store.base import RecordStore, WriteBatch
from ..store.paths import (
    SESSIONS,
    archive_record_path,
    archive_records_collection,
    archive_session_path,
    device_claims_collection,
    live_record_path,
    live_session_path,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveResult:
    archive_id: str
    record_count: int
    session: Session


def _new_archive_id() -> str:
    return uuid.uuid4().hex


class ArchivalService:
    """Turns the live session of a mode into immutable history.

    Pass 1 (finalize) freezes every record's final status and marks the session
    ``ended`` with a pre-allocated archive id. Pass 2 copies session and records
    under that id and deletes the live documents. Each pass is one atomic
    batch. A retry after a failed pass 2 finds the session already ``ended``,
    skips pass 1 and rewrites the same archive id.
    """

    def __init__(self, store: RecordStore, *, id_factory: Callable[[], str] = _new_archive_id):
        self._store = store
        self._id_factory = id_factory

    def archive(self, mode: AttendanceMode, *, now: datetime | None = None) -> ArchiveResult:
        now = now or now_utc()
        session = self._finalize(mode, now=now)
        return self._copy_and_clear(session, now=now)

    def _finalize(self, mode: AttendanceMode, *, now: datetime) -> Session:
        for attempt in range(1, MAX_FINALIZE_ATTEMPTS + 1):
            session = load_live_session(self._store, mode)
            if session.status == SessionStatus.INACTIVE:
                raise SessionInactiveError("No live session to end")
            if session.status == SessionStatus.ENDED and session.archive_id:
                logger.info("Resuming archival of %s session into %s", mode.value, session.archive_id)
                return session

            deriver = StatusDeriver(mode)
            ended = replace(session, status=SessionStatus.ENDED, archive_id=session.archive_id or self._id_factory())

            batch = WriteBatch().set(live_session_path(mode), ended.to_document(), expected_version=session.version)
            records = load_live_records(self._store, mode)
            for record in records:
                correction = record.correction
                if correction is not None and correction.is_pending:
                    # unresolved at end of session: implicitly denied
                    correction = replace(correction, status=CorrectionStatus.DENIED, resolved_at=now)
                summary = deriver.derive(record.scans, correction, live=False)
                final = replace(record, final_status=summary.final_status, correction=correction)
                batch.set(
                    live_record_path(mode, record.person_id),
                    final.to_document(),
                    expected_version=record.version,
                )

            try:
                self._store.commit(batch)
            except ConflictError as exc:
                logger.warning("Finalize pass raced with a writer (attempt %d/%d): %s", attempt, MAX_FINALIZE_ATTEMPTS, exc)
                continue

            logger.info("Finalized %d records of %s session (archive %s)", len(records), mode.value, ended.archive_id)
            return replace(ended, version=session.version + 1)

        raise ConflictError("Could not finalize the session; please retry")

    def _copy_and_clear(self, session: Session, *, now: datetime) -> ArchiveResult:
        mode = session.mode
        archive_id = session.archive_id
        archived_session = replace(session, lifecycle=RecordLifecycle.ARCHIVED, archived_at=now, version=0)

        records = load_live_records(self._store, mode)
        batch = WriteBatch().set(archive_session_path(archive_id), archived_session.to_document())
        for record in records:
            batch.set(archive_record_path(archive_id, record.person_id), record.archived().to_document())
            batch.delete(live_record_path(mode, record.person_id))
        for claim in self._store.list(device_claims_collection(mode)):
            batch.delete(claim.path)
        batch.delete(live_session_path(mode), expected_version=session.version)

        self._store.commit(batch)
        logger.info("Archived %s session as %s (%d records)", mode.value, archive_id, len(records))
        return ArchiveResult(archive_id=archive_id, record_count=len(records), session=archived_session)


class HistoryService:
    """Read access to archived sessions plus the operator override path."""

    def __init__(self, store: RecordStore):
        self._store = store

    def list_sessions(self, *, limit: int = DEFAULT_HISTORY_LIMIT, mode: Optional[AttendanceMode] = None) -> Sequence[Session]:
        sessions = [
            Session.from_document(d.data, version=d.version)
            for d in self._store.list(SESSIONS)
            if d.data.get("lifecycle") == RecordLifecycle.ARCHIVED.value
        ]
        if mode is not None:
            sessions = [s for s in sessions if s.mode == mode]
        sessions.sort(key=lambda s: s.archived_at or s.start_time, reverse=True)
        return sessions[: int(limit)]

    def get_session(self, archive_id: str) -> Session:
        doc = self._store.get(archive_session_path(archive_id))
        if doc is None or doc.data.get("lifecycle") != RecordLifecycle.ARCHIVED.value:
            raise NotFoundError(f"Archived session {archive_id} not found")
        return Session.from_document(doc.data, version=doc.version)

    def get_records(self, archive_id: str) -> Sequence[PersonRecord]:
        self.get_session(archive_id)
        records = [
            PersonRecord.from_document(d.data, version=d.version)
            for d in self._store.list(archive_records_collection(archive_id))
        ]
        records.sort(key=lambda r: r.person.name)
        return records

    def override_status(
        self,
        caller: Identity,
        *,
        archive_id: str,
        person_id: str,
        final_status: FinalStatus,
    ) -> PersonRecord:
        """Operator edit of an archived record. Scans are left as recorded."""

        require_operator(caller)
        path = archive_record_path(archive_id, person_id)
        for _ in range(MAX_FINALIZE_ATTEMPTS):
            doc = self._store.get(path)
            if doc is None:
                raise NotFoundError(f"No archived record for {person_id} in {archive_id}")
            record = PersonRecord.from_document(doc.data, version=doc.version)
            updated = replace(record, final_status=final_status, status_overridden=True)
            if self._store.compare_and_set(path, updated.to_document(), expected_version=doc.version):
                logger.info("Archived status of %s in %s set to %s by %s", person_id, archive_id, final_status.value, caller.person_id)
                return replace(updated, version=doc.version + 1)
        raise ConflictError("Could not update the archived record; please retry")

    def absence_rate_after_first_scan(self, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Optional[float]:
        """Percent of people who made scan 1 but missed a later scan.

        Computed over recent archived class sessions with more than one scan;
        None when there is no such history.
        """

        started = 0
        dropped = 0
        for session in self.list_sessions(limit=limit, mode=AttendanceMode.CLASS):
            if session.total_phases < 2:
                continue
            for record in self.get_records(session.archive_id):
                if not record.scans or record.scans[0].status == ScanStatus.ABSENT:
                    continue
                started += 1
                if any(s.status == ScanStatus.ABSENT for s in record.scans[1:]):
                    dropped += 1
        if started == 0:
            return None
        return 100.0 * dropped / started
