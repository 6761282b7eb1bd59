from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .advisory.service import AdvisoryGateway, HeuristicTimingAdvisor
from .archive.service import ArchivalService, HistoryService
from .attendance.deriver import StatusDeriver
from .attendance.factory import AttendanceStrategyFactory
from .attendance.service import ScanService
from .codes.generator import CodeGenerator
from .core.enums import AttendanceMode
from .core.exceptions import ValidationError
from .corrections.service import CorrectionService
from .database.connection import DBConfig, DatabaseConnection
from .identity.provider import SignedTokenIdentityProvider
from .people.memory_person_repository import InMemoryPersonRepository
from .people.mysql_person_repository import MySQLPersonRepository
from .people.repository import PersonRepository
from .sessions.service import SessionService
from .store.base import RecordStore
from .store.memory_store import InMemoryRecordStore
from .store.mysql_store import MySQLRecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModeServices:
    sessions: SessionService
    scans: ScanService
    corrections: CorrectionService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    store: RecordStore
    people_repo: PersonRepository
    identity: SignedTokenIdentityProvider

    archival_service: ArchivalService
    history_service: HistoryService
    advisory: AdvisoryGateway
    modes: Mapping[AttendanceMode, ModeServices]

    store_retry_attempts: int = 3
    store_retry_backoff_seconds: float = 0.2
    default_radius_meters: float = 100.0
    default_late_after_minutes: int = 10

    def for_mode(self, mode: str | AttendanceMode) -> ModeServices:
        try:
            return self.modes[AttendanceMode(mode)]
        except ValueError:
            raise ValidationError(f"Unknown attendance mode: {mode}")


def _setting(settings: Any, name: str, default=None):
    if isinstance(settings, Mapping):
        return settings.get(name, default)
    return getattr(settings, name, default)


def build_container(
    settings: Any,
    *,
    store: Optional[RecordStore] = None,
    people_repo: Optional[PersonRepository] = None,
) -> Container:
    """Wire stores, repositories and services from a settings module (or dict).

    ``store`` and ``people_repo`` override the configured backend (tests).
    """

    backend = str(_setting(settings, "STORE_BACKEND", "memory")).lower()
    conn: Optional[DatabaseConnection] = None

    if backend == "mysql" and (store is None or people_repo is None):
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(_setting(settings, "DB_CONFIG")))
    elif backend not in {"memory", "mysql"}:
        raise ValueError(f"Unsupported STORE_BACKEND: {backend}")

    if store is None:
        store = MySQLRecordStore(conn) if backend == "mysql" else InMemoryRecordStore()
    if people_repo is None:
        if backend == "mysql":
            people_repo = MySQLPersonRepository(conn)
        else:
            people_repo = InMemoryPersonRepository.from_rows(_setting(settings, "DEMO_ROSTER", ()) or ())

    identity = SignedTokenIdentityProvider(
        str(_setting(settings, "SECRET_KEY")),
        max_age_seconds=int(_setting(settings, "TOKEN_TTL_SECONDS", 43200)),
    )

    archival_service = ArchivalService(store)
    history_service = HistoryService(store)
    codes = CodeGenerator()
    factory = AttendanceStrategyFactory()

    modes = {}
    for mode in AttendanceMode:
        deriver = StatusDeriver(mode)
        modes[mode] = ModeServices(
            sessions=SessionService(store, people_repo, archival_service, mode=mode, codes=codes, deriver=deriver),
            scans=ScanService(store, mode=mode, strategy_factory=factory, deriver=deriver),
            corrections=CorrectionService(store, mode=mode, deriver=deriver),
        )

    logger.info("Container ready: store=%s", backend)
    return Container(
        conn=conn,
        store=store,
        people_repo=people_repo,
        identity=identity,
        archival_service=archival_service,
        history_service=history_service,
        advisory=AdvisoryGateway(HeuristicTimingAdvisor()),
        modes=modes,
        store_retry_attempts=int(_setting(settings, "STORE_RETRY_ATTEMPTS", 3)),
        store_retry_backoff_seconds=float(_setting(settings, "STORE_RETRY_BACKOFF_SECONDS", 0.2)),
        default_radius_meters=float(_setting(settings, "DEFAULT_RADIUS_METERS", 100.0)),
        default_late_after_minutes=int(_setting(settings, "DEFAULT_LATE_AFTER_MINUTES", 10)),
    )
