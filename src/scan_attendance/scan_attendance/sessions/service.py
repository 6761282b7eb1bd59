from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..archive.service import ArchivalService, ArchiveResult
from ..attendance.deriver import StatusDeriver
from ..codes.generator import CodeGenerator
from ..common.datetime_utils import now_utc
from ..core.constants import MAX_TRANSITION_ATTEMPTS
from ..core.enums import AttendanceMode, SessionStatus
from ..core.exceptions import (
    ConflictError,
    LocationUnavailableError,
    NoMorePhasesError,
    NoRosterError,
    SessionAlreadyActiveError,
    SessionInactiveError,
    ValidationError,
)
from ..geo.geofence import GeoPoint, validate_point
from ..identity.provider import Identity, require_operator
from ..people.repository import PersonRepository
from ..records.model import PersonRecord
from ..store.base import ChangeCallback, RecordStore, Subscription, WriteBatch
from ..store.paths import live_record_path, live_session_path
from .model import Session, SessionConfig
from .repository import load_live_records, load_live_session

logger = logging.getLogger(__name__)


class SessionService:
    """Session lifecycle for one attendance mode.

    inactive -> active(1) -> active(2..N) -> ended -> archived

    Operator commands are serialized by a per-service lock and guarded by the
    session document version in the store, so they also serialize against
    other processes. Scan submissions never take the lock.
    """

    def __init__(
        self,
        store: RecordStore,
        people: PersonRepository,
        archival: ArchivalService,
        *,
        mode: AttendanceMode = AttendanceMode.CLASS,
        codes: Optional[CodeGenerator] = None,
        deriver: Optional[StatusDeriver] = None,
    ):
        self._store = store
        self._people = people
        self._archival = archival
        self._mode = mode
        self._codes = codes or CodeGenerator()
        self._deriver = deriver or StatusDeriver(mode)
        self._lock = threading.Lock()

    @property
    def mode(self) -> AttendanceMode:
        return self._mode

    def current(self) -> Session:
        return load_live_session(self._store, self._mode)

    def live_records(self) -> Sequence[PersonRecord]:
        """Live records with their display status re-derived."""

        out = []
        for record in load_live_records(self._store, self._mode):
            summary = self._deriver.derive(record.scans, record.correction, live=True)
            out.append(replace(record, final_status=summary.final_status))
        return out

    def subscribe(self, callback: ChangeCallback) -> Subscription:
        """Push notifications for the live session and every live record."""

        return self._store.subscribe(live_session_path(self._mode), callback)

    def start(
        self,
        config: SessionConfig,
        *,
        operator: Identity,
        location: Optional[GeoPoint],
        now: datetime | None = None,
    ) -> Session:
        require_operator(operator)
        cfg = config.validated()

        with self._lock:
            if self.current().status != SessionStatus.INACTIVE:
                raise SessionAlreadyActiveError("A session is already running; end it first")

            roster = list(self._people.list_roster(self._mode))
            if not roster:
                raise NoRosterError("No participants are enrolled for this mode")

            if location is None:
                raise LocationUnavailableError("Operator location is required to start a session")
            try:
                location = validate_point(location.lat, location.lng)
            except ValidationError as exc:
                raise LocationUnavailableError(f"Operator location is unusable: {exc}")

            now = now or now_utc()
            session = Session(
                mode=self._mode,
                status=SessionStatus.ACTIVE,
                phase=1,
                total_phases=cfg.total_phases,
                codes=(self._codes.issue(1, now=now),),
                start_time=now,
                late_policy=cfg.late_policy(self._mode),
                location=location,
                radius_meters=cfg.radius_meters,
                requires_photo=cfg.requires_photo if self._mode == AttendanceMode.HOSTEL else False,
                subject=cfg.subject,
                operator_id=operator.person_id,
            )

            batch = WriteBatch().create(live_session_path(self._mode), session.to_document())
            for person in roster:
                record = PersonRecord.new(person.snapshot(), cfg.total_phases)
                batch.set(live_record_path(self._mode, person.person_id), record.to_document())

            try:
                self._store.commit(batch)
            except ConflictError:
                raise SessionAlreadyActiveError("Another operator started a session first")

        logger.info(
            "Session started: mode=%s phases=%d roster=%d radius=%.0fm",
            self._mode.value, cfg.total_phases, len(roster), cfg.radius_meters,
        )
        created = self._store.get(live_session_path(self._mode))
        return replace(session, version=created.version if created else 1)

    def activate_next_phase(self, *, operator: Identity, now: datetime | None = None) -> Session:
        require_operator(operator)
        now = now or now_utc()

        with self._lock:
            for _ in range(MAX_TRANSITION_ATTEMPTS):
                session = self.current()
                if not session.is_active:
                    raise SessionInactiveError("No active session")
                if session.phase >= session.total_phases:
                    raise NoMorePhasesError(f"Scan {session.phase} was the final scan of this session")

                next_phase = session.phase + 1
                codes = session.codes
                if session.code_for(next_phase) is None:
                    codes = codes + (self._codes.issue(next_phase, now=now),)
                updated = replace(session, phase=next_phase, codes=codes)

                if self._store.compare_and_set(
                    live_session_path(self._mode), updated.to_document(), expected_version=session.version
                ):
                    logger.info("Scan %d activated: mode=%s", next_phase, self._mode.value)
                    return replace(updated, version=session.version + 1)
                logger.warning("Phase activation raced with another writer; re-reading session")

        raise ConflictError("Could not activate the next scan; please retry")

    def end(self, *, operator: Identity, now: datetime | None = None) -> ArchiveResult:
        """Finalize and archive the live session. Safe to call again after a failure."""

        require_operator(operator)
        with self._lock:
            if self.current().status == SessionStatus.INACTIVE:
                raise SessionInactiveError("No live session to end")
            return self._archival.archive(self._mode, now=now)
