"""Print a bearer token for local testing.

Usage: python scripts/issue_token.py <person_id> [operator|participant]
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.scan_attendance.scan_attendance.core.enums import Role
from src.scan_attendance.scan_attendance.identity.provider import SignedTokenIdentityProvider


def main(argv: list[str]) -> None:
    if len(argv) < 2:
        print(__doc__.strip())
        raise SystemExit(2)

    settings = importlib.import_module(get_settings_module())
    role = Role(argv[2]) if len(argv) > 2 else Role.PARTICIPANT
    provider = SignedTokenIdentityProvider(settings.SECRET_KEY, max_age_seconds=settings.TOKEN_TTL_SECONDS)
    print(provider.issue_token(argv[1], role))


if __name__ == "__main__":
    main(sys.argv)
