from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller roles as resolved by the identity provider."""

    OPERATOR = "operator"
    PARTICIPANT = "participant"


class AttendanceMode(str, Enum):
    """Class sessions (students) or hostel roll-calls (residents)."""

    CLASS = "class"
    HOSTEL = "hostel"


class Audience(str, Enum):
    """Which attendance modes a person is enrolled for."""

    STUDENT = "student"
    RESIDENT = "resident"
    BOTH = "both"


class SessionStatus(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    ENDED = "ended"


class ScanStatus(str, Enum):
    """Status of a single phase slot."""

    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"


class FinalStatus(str, Enum):
    """Derived status of a person for the whole session."""

    PRESENT = "present"
    LATE = "late"
    LEFT_EARLY = "left_early"
    ABSENT = "absent"


class CorrectionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class RecordLifecycle(str, Enum):
    LIVE = "live"
    ARCHIVED = "archived"


class RejectionReason(str, Enum):
    """Why a scan attempt was refused (surfaced verbatim to the participant)."""

    SESSION_INACTIVE = "SessionInactive"
    RECORD_NOT_FOUND = "RecordNotFound"
    WRONG_PHASE = "WrongPhase"
    INVALID_CODE = "InvalidCode"
    OUT_OF_RANGE = "OutOfRange"
    DEVICE_ALREADY_USED = "DeviceAlreadyUsed"
    PREVIOUS_PHASE_MISSED = "PreviousPhaseMissed"


class ScanOutcomeKind(str, Enum):
    ACCEPTED = "Accepted"
    ALREADY_SCANNED = "AlreadyScanned"
