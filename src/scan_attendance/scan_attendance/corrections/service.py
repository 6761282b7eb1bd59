from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Sequence

from ..attendance.deriver import StatusDeriver
from ..common.datetime_utils import now_utc
from ..common.validators import require_non_empty
from ..core.constants import MANUAL_OVERRIDE_DEVICE_ID, MAX_SCAN_ATTEMPTS
from ..core.enums import AttendanceMode, CorrectionStatus, ScanStatus
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    NoPendingCorrectionError,
    NotFoundError,
    SessionInactiveError,
)
from ..identity.provider import Identity, require_operator
from ..records.model import CorrectionRequest, PersonRecord
from ..sessions.repository import load_live_records, load_live_session
from ..store.base import RecordStore, WriteBatch
from ..store.paths import live_record_path, live_session_path

logger = logging.getLogger(__name__)


class CorrectionService:
    """Participant correction requests for scan 1 and their operator review."""

    def __init__(self, store: RecordStore, *, mode: AttendanceMode = AttendanceMode.CLASS, deriver: StatusDeriver | None = None):
        self._store = store
        self._mode = mode
        self._deriver = deriver or StatusDeriver(mode)

    def _load(self, person_id: str) -> PersonRecord:
        doc = self._store.get(live_record_path(self._mode, person_id))
        if doc is None:
            raise NotFoundError(f"No attendance record for {person_id} in the current session")
        return PersonRecord.from_document(doc.data, version=doc.version)

    def request_correction(
        self,
        caller: Identity,
        person_id: str,
        reason: str,
        *,
        now: datetime | None = None,
    ) -> PersonRecord:
        """File (or replace) a pending correction request. Scans are not touched."""

        if caller.person_id != str(person_id) and not caller.is_operator:
            raise AuthorizationError("PermissionDenied: you can only request a correction for yourself")
        reason = require_non_empty(reason, "Reason")
        now = now or now_utc()

        for attempt in range(1, MAX_SCAN_ATTEMPTS + 1):
            session = load_live_session(self._store, self._mode)
            if not session.is_active:
                raise SessionInactiveError("Corrections can only be requested during an active session")

            record = self._load(person_id)
            request = CorrectionRequest(reason=reason, requested_at=now)
            summary = self._deriver.derive(record.scans, request, live=True)
            updated = replace(record, correction=request, final_status=summary.final_status)

            if self._store.compare_and_set(
                live_record_path(self._mode, person_id), updated.to_document(), expected_version=record.version
            ):
                logger.info("Correction requested: mode=%s person=%s", self._mode.value, person_id)
                return replace(updated, version=record.version + 1)
            logger.warning("Correction request for %s raced (attempt %d/%d)", person_id, attempt, MAX_SCAN_ATTEMPTS)

        raise ConflictError("Could not save the correction request; please retry")

    def resolve_correction(
        self,
        caller: Identity,
        person_id: str,
        approve: bool,
        *,
        now: datetime | None = None,
    ) -> PersonRecord:
        """Approve (scan 1 becomes present) or deny a pending request."""

        require_operator(caller)
        now = now or now_utc()

        for attempt in range(1, MAX_SCAN_ATTEMPTS + 1):
            session = load_live_session(self._store, self._mode)
            if not session.is_active:
                raise SessionInactiveError("No active session")

            record = self._load(person_id)
            if record.correction is None or not record.correction.is_pending:
                raise NoPendingCorrectionError(f"{person_id} has no pending correction request")

            status = CorrectionStatus.APPROVED if approve else CorrectionStatus.DENIED
            correction = replace(record.correction, status=status, resolved_at=now, resolved_by=caller.person_id)
            updated = replace(record, correction=correction)
            if approve and updated.scans:
                slot = replace(
                    updated.scans[0],
                    status=ScanStatus.PRESENT,
                    minutes_late=0,
                    timestamp=now,
                    device_id=MANUAL_OVERRIDE_DEVICE_ID,
                )
                updated = updated.with_scan(0, slot)
            summary = self._deriver.derive(updated.scans, updated.correction, live=True)
            updated = replace(updated, final_status=summary.final_status)

            batch = (
                WriteBatch()
                .require(live_session_path(self._mode), session.version)
                .set(live_record_path(self._mode, person_id), updated.to_document(), expected_version=record.version)
            )
            try:
                self._store.commit(batch)
            except ConflictError as exc:
                logger.warning("Correction resolve for %s raced (attempt %d/%d): %s", person_id, attempt, MAX_SCAN_ATTEMPTS, exc)
                continue

            logger.info("Correction %s: mode=%s person=%s by=%s", status.value, self._mode.value, person_id, caller.person_id)
            return replace(updated, version=record.version + 1)

        raise ConflictError("Could not resolve the correction; please retry")

    def list_pending(self, caller: Identity) -> Sequence[PersonRecord]:
        require_operator(caller)
        return [
            r
            for r in load_live_records(self._store, self._mode)
            if r.correction is not None and r.correction.is_pending
        ]
