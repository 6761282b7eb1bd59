from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Sequence

from ..codes.generator import parse_code, tokens_match
from ..common.datetime_utils import now_utc, to_iso
from ..common.validators import require_non_empty
from ..core.constants import MANUAL_OVERRIDE_DEVICE_ID, MAX_SCAN_ATTEMPTS
from ..core.enums import AttendanceMode, RejectionReason, ScanOutcomeKind, ScanStatus
from ..core.exceptions import ConflictError, ScanRejected, ValidationError
from ..geo.geofence import GeoPoint, distance_meters, within_radius
from ..records.model import DeviceUsage, PersonRecord
from ..sessions.model import Session
from ..sessions.repository import load_live_records, load_live_session
from ..store.base import RecordStore, WriteBatch
from ..store.paths import device_claim_path, live_record_path, live_session_path
from .deriver import StatusDeriver
from .factory import AttendanceStrategyFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanOutcome:
    """Result of a scan that was not rejected."""

    kind: ScanOutcomeKind
    phase: int
    status: ScanStatus
    minutes_late: int = 0

    @property
    def accepted(self) -> bool:
        return self.kind == ScanOutcomeKind.ACCEPTED

    def message(self) -> str:
        if self.kind == ScanOutcomeKind.ALREADY_SCANNED:
            return f"You have already completed scan {self.phase}."
        suffix = f" ({self.minutes_late} min late)" if self.minutes_late > 0 else ""
        return f"You are marked as {self.status.value.upper()}{suffix}."


class ScanService:
    """Validates and records participant scans for one attendance mode."""

    def __init__(
        self,
        store: RecordStore,
        *,
        mode: AttendanceMode = AttendanceMode.CLASS,
        strategy_factory: AttendanceStrategyFactory | None = None,
        deriver: StatusDeriver | None = None,
    ):
        self._store = store
        self._mode = mode
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._deriver = deriver or StatusDeriver(mode)

    def device_usage(self) -> DeviceUsage:
        return DeviceUsage.from_records(load_live_records(self._store, self._mode))

    def submit_scan(
        self,
        person_id: str,
        submitted_code: str,
        location: GeoPoint,
        device_id: str,
        *,
        now: datetime | None = None,
    ) -> ScanOutcome:
        """Run the ordered checks and record the scan.

        Raises ScanRejected for the first failing check. A lost write race
        re-runs the whole pass, so a concurrent duplicate resolves to
        ALREADY_SCANNED or DEVICE_ALREADY_USED.
        """

        device_id = require_non_empty(device_id, "Device id")
        if device_id == MANUAL_OVERRIDE_DEVICE_ID:
            raise ValidationError(f"Device id \"{MANUAL_OVERRIDE_DEVICE_ID}\" is reserved for operator corrections")
        now = now or now_utc()

        for attempt in range(1, MAX_SCAN_ATTEMPTS + 1):
            try:
                return self._attempt(str(person_id), submitted_code or "", location, device_id, now=now)
            except ConflictError as exc:
                logger.warning(
                    "Scan write for %s lost a race (attempt %d/%d): %s", person_id, attempt, MAX_SCAN_ATTEMPTS, exc
                )
        raise ConflictError("Your scan could not be recorded; please try again")

    def _reject(self, person_id: str, reason: RejectionReason, message: str) -> ScanRejected:
        logger.info("Scan rejected: mode=%s person=%s reason=%s", self._mode.value, person_id, reason.value)
        return ScanRejected(reason, message)

    def _attempt(self, person_id: str, submitted_code: str, location: GeoPoint, device_id: str, *, now: datetime) -> ScanOutcome:
        session = load_live_session(self._store, self._mode)
        if not session.is_active:
            raise self._reject(person_id, RejectionReason.SESSION_INACTIVE, "The attendance session is not active.")

        record_doc = self._store.get(live_record_path(self._mode, person_id))
        if record_doc is None:
            raise self._reject(person_id, RejectionReason.RECORD_NOT_FOUND, "Your attendance record could not be found.")
        record = PersonRecord.from_document(record_doc.data, version=record_doc.version)

        parsed = parse_code(submitted_code)
        if parsed.phase != session.phase:
            raise self._reject(
                person_id,
                RejectionReason.WRONG_PHASE,
                f"This code belongs to scan {parsed.phase_label()}, but scan {session.phase} is currently active.",
            )

        current = session.current_code
        if current is None or not tokens_match(parsed.token, current.human_code):
            raise self._reject(person_id, RejectionReason.INVALID_CODE, "The code you scanned is incorrect for the current scan.")

        distance = distance_meters(session.location, location)
        if not within_radius(distance, session.radius_meters):
            raise self._reject(
                person_id,
                RejectionReason.OUT_OF_RANGE,
                f"You are {distance:.0f} m from the session location; the allowed radius is {session.radius_meters:.0f} m.",
            )

        # A device counts as used only through someone else's record or claim;
        # the person's own repeat lands on the already-scanned branch below.
        others = [r for r in load_live_records(self._store, self._mode) if r.person_id != person_id]
        if DeviceUsage.from_records(others).is_used(session.phase, device_id) or self._claimed_by_other(
            session.phase, device_id, person_id
        ):
            raise self._reject(
                person_id, RejectionReason.DEVICE_ALREADY_USED, "This device has already marked attendance for this scan."
            )

        index = session.phase - 1
        slot = record.scans[index]
        if not slot.is_absent:
            logger.debug("Already scanned: mode=%s person=%s phase=%d", self._mode.value, person_id, session.phase)
            return ScanOutcome(ScanOutcomeKind.ALREADY_SCANNED, session.phase, slot.status, slot.minutes_late)

        if session.phase > 1 and record.scans[index - 1].is_absent:
            raise self._reject(
                person_id,
                RejectionReason.PREVIOUS_PHASE_MISSED,
                f"You missed scan {session.phase - 1}, so scan {session.phase} cannot be recorded.",
            )

        cutoff = session.late_cutoff(session.phase)
        decision = self._factory.for_scan(now=now, cutoff=cutoff).decide_scan(now=now, cutoff=cutoff)

        updated = record.with_scan(
            index,
            replace(slot, status=decision.status, minutes_late=decision.minutes_late, timestamp=now, device_id=device_id),
        )
        summary = self._deriver.derive(updated.scans, updated.correction, live=True)
        updated = replace(updated, final_status=summary.final_status)

        batch = (
            WriteBatch()
            .require(live_session_path(self._mode), session.version)
            .set(live_record_path(self._mode, person_id), updated.to_document(), expected_version=record.version)
            .create(
                device_claim_path(self._mode, session.phase, device_id),
                {"person_id": person_id, "phase": session.phase, "device_id": device_id, "claimed_at": to_iso(now)},
            )
        )
        self._store.commit(batch)

        logger.info(
            "Scan accepted: mode=%s person=%s phase=%d status=%s minutes_late=%d",
            self._mode.value, person_id, session.phase, decision.status.value, decision.minutes_late,
        )
        return ScanOutcome(ScanOutcomeKind.ACCEPTED, session.phase, decision.status, decision.minutes_late)

    def _claimed_by_other(self, phase: int, device_id: str, person_id: str) -> bool:
        claim = self._store.get(device_claim_path(self._mode, phase, device_id))
        return claim is not None and claim.data.get("person_id") != person_id

    def attach_photos(self, person_id: str, photo_urls: Sequence[str]) -> PersonRecord:
        """Attach verification photos to the person's current-scan slot."""

        urls = tuple(u.strip() for u in photo_urls if u and u.strip())
        if not urls:
            raise ValidationError("At least one photo URL is required")

        for _ in range(MAX_SCAN_ATTEMPTS):
            session = load_live_session(self._store, self._mode)
            if not session.is_active:
                raise ScanRejected(RejectionReason.SESSION_INACTIVE, "The attendance session is not active.")

            path = live_record_path(self._mode, person_id)
            doc = self._store.get(path)
            if doc is None:
                raise ScanRejected(RejectionReason.RECORD_NOT_FOUND, "Your attendance record could not be found.")
            record = PersonRecord.from_document(doc.data, version=doc.version)

            index = session.phase - 1
            slot = record.scans[index]
            if slot.is_absent:
                raise ValidationError(f"Complete scan {session.phase} before attaching photos")

            updated = record.with_scan(index, replace(slot, photo_urls=slot.photo_urls + urls))
            if self._store.compare_and_set(path, updated.to_document(), expected_version=record.version):
                logger.info("Photos attached: mode=%s person=%s phase=%d count=%d", self._mode.value, person_id, session.phase, len(urls))
                return replace(updated, version=record.version + 1)

        raise ConflictError("Could not attach photos; please retry")

    def session(self) -> Session:
        return load_live_session(self._store, self._mode)
