from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_utc, to_epoch_ms, to_iso, parse_wall_clock
from ..core.constants import HUMAN_TOKEN_LENGTH, PHASE_TAG_PREFIX

_TOKEN_ALPHABET = string.digits + string.ascii_uppercase


@dataclass(frozen=True)
class IssuedCode:
    """A scan code as shown to participants (QR payload + manual-entry token)."""

    phase: int
    code: str
    human_code: str
    issued_at: datetime

    def to_document(self) -> dict:
        return {
            "phase": self.phase,
            "code": self.code,
            "human_code": self.human_code,
            "issued_at": to_iso(self.issued_at),
        }

    @staticmethod
    def from_document(data: dict) -> "IssuedCode":
        return IssuedCode(
            phase=int(data["phase"]),
            code=str(data["code"]),
            human_code=str(data["human_code"]),
            issued_at=parse_wall_clock(data["issued_at"]),
        )


@dataclass(frozen=True)
class ParsedCode:
    phase: Optional[int]
    token: str
    issued_at_ms: Optional[int]

    def phase_label(self) -> str:
        return str(self.phase) if self.phase is not None else "unknown"


def phase_tag(phase: int) -> str:
    return f"{PHASE_TAG_PREFIX}{int(phase)}"


def parse_code(value: str) -> ParsedCode:
    """Parse ``"scan<N>:<TOKEN>:<epochMs>"`` positionally.

    Missing or malformed parts do not raise: the validator decides what a
    missing phase tag or token means.
    """

    parts = (value or "").strip().split(":")
    tag = parts[0] if len(parts) > 0 else ""
    token = parts[1] if len(parts) > 1 else ""
    raw_ts = parts[2] if len(parts) > 2 else ""

    phase: Optional[int] = None
    if tag.lower().startswith(PHASE_TAG_PREFIX):
        suffix = tag[len(PHASE_TAG_PREFIX):]
        if suffix.isdigit():
            phase = int(suffix)

    issued_at_ms = int(raw_ts) if raw_ts.isdigit() else None
    return ParsedCode(phase=phase, token=token.strip(), issued_at_ms=issued_at_ms)


def tokens_match(submitted: str, expected: str) -> bool:
    return bool(submitted) and submitted.upper() == (expected or "").upper()


class CodeGenerator:
    """Issues rotating scan codes.

    Tokens are drawn from ``secrets``; 36**6 values make collisions within one
    session negligible, so they are not checked.
    """

    def __init__(self, *, token_length: int = HUMAN_TOKEN_LENGTH):
        self._token_length = int(token_length)

    def new_token(self) -> str:
        return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(self._token_length))

    def issue(self, phase: int, *, now: datetime | None = None) -> IssuedCode:
        now = now or now_utc()
        token = self.new_token()
        code = f"{phase_tag(phase)}:{token}:{to_epoch_ms(now)}"
        return IssuedCode(phase=int(phase), code=code, human_code=token, issued_at=now)
