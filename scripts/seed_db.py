"""Load a roster into the ``people`` table.

Usage: python scripts/seed_db.py [roster.json]

Without a file the settings' ``DEMO_ROSTER`` is used.
"""

from __future__ import annotations

import importlib
import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.scan_attendance.scan_attendance.database.bootstrap import seed_people
from src.scan_attendance.scan_attendance.people.memory_person_repository import InMemoryPersonRepository


def main(argv: list[str]) -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    if len(argv) > 1:
        rows = json.loads(Path(argv[1]).read_text(encoding="utf-8"))
    else:
        rows = list(getattr(settings, "DEMO_ROSTER", []))

    repo = InMemoryPersonRepository.from_rows(rows)
    people = [repo.get_by_id(str(r["person_id"])) for r in rows]
    count = seed_people(db_config, people)

    print(
        f"OK: Seeded {count} people -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )


if __name__ == "__main__":
    main(sys.argv)
