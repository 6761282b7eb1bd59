from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

from ..common.datetime_utils import parse_wall_clock, to_iso
from ..core.constants import MANUAL_OVERRIDE_DEVICE_ID
from ..core.enums import CorrectionStatus, FinalStatus, RecordLifecycle, ScanStatus


@dataclass(frozen=True)
class PersonSnapshot:
    """Identity captured at session start, decoupled from the live person record."""

    person_id: str
    name: str
    email: str
    roll: Optional[str] = None
    room: Optional[str] = None

    def to_document(self) -> dict:
        return {
            "person_id": self.person_id,
            "name": self.name,
            "email": self.email,
            "roll": self.roll,
            "room": self.room,
        }

    @staticmethod
    def from_document(data: dict) -> "PersonSnapshot":
        return PersonSnapshot(
            person_id=str(data["person_id"]),
            name=str(data.get("name", "")),
            email=str(data.get("email", "")),
            roll=data.get("roll"),
            room=data.get("room"),
        )


@dataclass(frozen=True)
class ScanSlot:
    """One phase of a person's record."""

    status: ScanStatus = ScanStatus.ABSENT
    minutes_late: int = 0
    timestamp: Optional[datetime] = None
    device_id: Optional[str] = None
    photo_urls: tuple[str, ...] = ()

    @property
    def is_absent(self) -> bool:
        return self.status == ScanStatus.ABSENT

    def to_document(self) -> dict:
        return {
            "status": self.status.value,
            "minutes_late": int(self.minutes_late),
            "timestamp": to_iso(self.timestamp),
            "device_id": self.device_id,
            "photo_urls": list(self.photo_urls),
        }

    @staticmethod
    def from_document(data: dict) -> "ScanSlot":
        return ScanSlot(
            status=ScanStatus(data.get("status", ScanStatus.ABSENT.value)),
            minutes_late=int(data.get("minutes_late") or 0),
            timestamp=parse_wall_clock(data.get("timestamp")),
            device_id=data.get("device_id"),
            photo_urls=tuple(data.get("photo_urls") or ()),
        )


@dataclass(frozen=True)
class CorrectionRequest:
    reason: str
    requested_at: datetime
    status: CorrectionStatus = CorrectionStatus.PENDING
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == CorrectionStatus.PENDING

    def to_document(self) -> dict:
        return {
            "reason": self.reason,
            "requested_at": to_iso(self.requested_at),
            "status": self.status.value,
            "resolved_at": to_iso(self.resolved_at),
            "resolved_by": self.resolved_by,
        }

    @staticmethod
    def from_document(data: Optional[dict]) -> Optional["CorrectionRequest"]:
        if not data:
            return None
        return CorrectionRequest(
            reason=str(data.get("reason", "")),
            requested_at=parse_wall_clock(data.get("requested_at")),
            status=CorrectionStatus(data.get("status", CorrectionStatus.PENDING.value)),
            resolved_at=parse_wall_clock(data.get("resolved_at")),
            resolved_by=data.get("resolved_by"),
        )


@dataclass(frozen=True)
class PersonRecord:
    """A person's scans for one session, live or archived.

    ``version`` is the store version the record was read at; it is not part of
    the stored document.
    """

    person: PersonSnapshot
    scans: tuple[ScanSlot, ...]
    final_status: FinalStatus = FinalStatus.ABSENT
    correction: Optional[CorrectionRequest] = None
    lifecycle: RecordLifecycle = RecordLifecycle.LIVE
    status_overridden: bool = False
    version: int = 0

    @property
    def person_id(self) -> str:
        return self.person.person_id

    @staticmethod
    def new(person: PersonSnapshot, total_phases: int) -> "PersonRecord":
        return PersonRecord(person=person, scans=tuple(ScanSlot() for _ in range(int(total_phases))))

    def with_scan(self, index: int, slot: ScanSlot) -> "PersonRecord":
        scans = list(self.scans)
        scans[index] = slot
        return replace(self, scans=tuple(scans))

    def archived(self) -> "PersonRecord":
        return replace(self, lifecycle=RecordLifecycle.ARCHIVED, version=0)

    def to_document(self) -> dict:
        return {
            "person": self.person.to_document(),
            "scans": [s.to_document() for s in self.scans],
            "final_status": self.final_status.value,
            "correction": self.correction.to_document() if self.correction else None,
            "lifecycle": self.lifecycle.value,
            "status_overridden": self.status_overridden,
        }

    @staticmethod
    def from_document(data: dict, *, version: int = 0) -> "PersonRecord":
        return PersonRecord(
            person=PersonSnapshot.from_document(data["person"]),
            scans=tuple(ScanSlot.from_document(s) for s in data.get("scans") or ()),
            final_status=FinalStatus(data.get("final_status", FinalStatus.ABSENT.value)),
            correction=CorrectionRequest.from_document(data.get("correction")),
            lifecycle=RecordLifecycle(data.get("lifecycle", RecordLifecycle.LIVE.value)),
            status_overridden=bool(data.get("status_overridden", False)),
            version=int(version),
        )


@dataclass(frozen=True)
class DeviceUsage:
    """Devices that completed a scan, per phase.

    Always rebuilt from the live scan records; never stored on its own.
    """

    by_phase: dict[int, frozenset[str]]

    @staticmethod
    def from_records(records: Iterable[PersonRecord]) -> "DeviceUsage":
        usage: dict[int, set[str]] = {}
        for record in records:
            for index, slot in enumerate(record.scans):
                if slot.is_absent or not slot.device_id or slot.device_id == MANUAL_OVERRIDE_DEVICE_ID:
                    continue
                usage.setdefault(index + 1, set()).add(slot.device_id)
        return DeviceUsage(by_phase={phase: frozenset(devices) for phase, devices in usage.items()})

    def is_used(self, phase: int, device_id: str) -> bool:
        return device_id in self.by_phase.get(int(phase), frozenset())
