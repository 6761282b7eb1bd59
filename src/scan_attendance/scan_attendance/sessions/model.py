from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Mapping, Optional

from ..codes.generator import IssuedCode
from ..common.datetime_utils import parse_wall_clock, to_iso
from ..common.validators import require_int_range, require_positive_number
from ..core.constants import DEFAULT_LATE_AFTER_MINUTES, DEFAULT_RADIUS_METERS, MAX_PHASES, MIN_PHASES
from ..core.enums import AttendanceMode, RecordLifecycle, SessionStatus
from ..geo.geofence import GeoPoint


@dataclass(frozen=True)
class SessionConfig:
    """Operator-supplied settings for ``SessionService.start``."""

    total_phases: int
    late_after_minutes: int = DEFAULT_LATE_AFTER_MINUTES
    radius_meters: float = DEFAULT_RADIUS_METERS
    subject: str = ""
    requires_photo: bool = False
    # phase number (1-based) -> minutes after start; wins over late_after_minutes
    phase_late_overrides: Mapping[int, int] = field(default_factory=dict)

    def validated(self) -> "SessionConfig":
        total = require_int_range(self.total_phases, "Total phases", minimum=MIN_PHASES, maximum=MAX_PHASES)
        late = require_int_range(self.late_after_minutes, "Late after minutes", minimum=0)
        radius = require_positive_number(self.radius_meters, "Radius")
        overrides = {
            require_int_range(phase, "Override phase", minimum=1, maximum=total): require_int_range(
                minutes, f"Late after minutes (phase {phase})", minimum=0
            )
            for phase, minutes in dict(self.phase_late_overrides or {}).items()
        }
        return SessionConfig(
            total_phases=total,
            late_after_minutes=late,
            radius_meters=radius,
            subject=(self.subject or "").strip(),
            requires_photo=bool(self.requires_photo),
            phase_late_overrides=overrides,
        )

    def late_policy(self, mode: AttendanceMode) -> tuple[Optional[int], ...]:
        if mode == AttendanceMode.HOSTEL:
            return tuple(None for _ in range(self.total_phases))
        return tuple(
            int(self.phase_late_overrides.get(phase, self.late_after_minutes))
            for phase in range(1, self.total_phases + 1)
        )


@dataclass(frozen=True)
class Session:
    """The live session of a mode, or an archived copy of one."""

    mode: AttendanceMode
    status: SessionStatus
    phase: int = 0
    total_phases: int = 0
    codes: tuple[IssuedCode, ...] = ()
    start_time: Optional[datetime] = None
    late_policy: tuple[Optional[int], ...] = ()
    location: Optional[GeoPoint] = None
    radius_meters: float = DEFAULT_RADIUS_METERS
    requires_photo: bool = False
    subject: str = ""
    operator_id: Optional[str] = None
    archive_id: Optional[str] = None
    archived_at: Optional[datetime] = None
    lifecycle: RecordLifecycle = RecordLifecycle.LIVE
    version: int = 0

    @staticmethod
    def inactive(mode: AttendanceMode) -> "Session":
        return Session(mode=mode, status=SessionStatus.INACTIVE)

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def current_code(self) -> Optional[IssuedCode]:
        return self.code_for(self.phase)

    def code_for(self, phase: int) -> Optional[IssuedCode]:
        for code in self.codes:
            if code.phase == phase:
                return code
        return None

    def late_cutoff(self, phase: int) -> Optional[datetime]:
        """Cutoff for ``phase``; always measured from the session start time."""

        index = int(phase) - 1
        if self.start_time is None or not 0 <= index < len(self.late_policy):
            return None
        minutes = self.late_policy[index]
        if minutes is None:
            return None
        return self.start_time + timedelta(minutes=int(minutes))

    def to_document(self) -> dict:
        return {
            "mode": self.mode.value,
            "status": self.status.value,
            "phase": self.phase,
            "total_phases": self.total_phases,
            "codes": [c.to_document() for c in self.codes],
            "start_time": to_iso(self.start_time),
            "late_policy": list(self.late_policy),
            "location": self.location.to_document() if self.location else None,
            "radius_meters": self.radius_meters,
            "requires_photo": self.requires_photo,
            "subject": self.subject,
            "operator_id": self.operator_id,
            "archive_id": self.archive_id,
            "archived_at": to_iso(self.archived_at),
            "lifecycle": self.lifecycle.value,
        }

    @staticmethod
    def from_document(data: dict, *, version: int = 0) -> "Session":
        location = data.get("location")
        return Session(
            mode=AttendanceMode(data["mode"]),
            status=SessionStatus(data.get("status", SessionStatus.ACTIVE.value)),
            phase=int(data.get("phase") or 0),
            total_phases=int(data.get("total_phases") or 0),
            codes=tuple(IssuedCode.from_document(c) for c in data.get("codes") or ()),
            start_time=parse_wall_clock(data.get("start_time")),
            late_policy=tuple(None if m is None else int(m) for m in data.get("late_policy") or ()),
            location=GeoPoint.from_document(location) if location else None,
            radius_meters=float(data.get("radius_meters") or DEFAULT_RADIUS_METERS),
            requires_photo=bool(data.get("requires_photo", False)),
            subject=str(data.get("subject") or ""),
            operator_id=data.get("operator_id"),
            archive_id=data.get("archive_id"),
            archived_at=parse_wall_clock(data.get("archived_at")),
            lifecycle=RecordLifecycle(data.get("lifecycle", RecordLifecycle.LIVE.value)),
            version=int(version),
        )
