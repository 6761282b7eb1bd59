"""Document paths for live and archived sessions."""

from __future__ import annotations

from urllib.parse import quote

from ..core.enums import AttendanceMode

SESSIONS = "sessions"


def live_session_path(mode: AttendanceMode) -> str:
    return f"{SESSIONS}/{mode.value}-current"


def live_records_collection(mode: AttendanceMode) -> str:
    return f"{live_session_path(mode)}/records"


def live_record_path(mode: AttendanceMode, person_id: str) -> str:
    return f"{live_records_collection(mode)}/{quote(str(person_id), safe='')}"


def device_claims_collection(mode: AttendanceMode) -> str:
    return f"{live_session_path(mode)}/device_claims"


def device_claim_path(mode: AttendanceMode, phase: int, device_id: str) -> str:
    return f"{device_claims_collection(mode)}/{int(phase)}-{quote(str(device_id), safe='')}"


def archive_session_path(archive_id: str) -> str:
    return f"{SESSIONS}/{archive_id}"


def archive_records_collection(archive_id: str) -> str:
    return f"{archive_session_path(archive_id)}/records"


def archive_record_path(archive_id: str, person_id: str) -> str:
    return f"{archive_records_collection(archive_id)}/{quote(str(person_id), safe='')}"
