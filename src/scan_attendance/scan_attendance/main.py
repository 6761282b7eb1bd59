from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .advisory.controller import register as register_advisory
from .archive.controller import register as register_history
from .attendance.controller import register as register_scans
from .common.web import register_error_handlers
from .container import Container, build_container
from .core.logging import setup_logging
from .corrections.controller import register as register_corrections
from .database.bootstrap import apply_schema, list_tables
from .sessions.controller import register as register_sessions

logger = logging.getLogger(__name__)


def _get(settings: Any, name: str, default=None):
    if isinstance(settings, dict):
        return settings.get(name, default)
    return getattr(settings, name, default)


def create_app(settings: Any = None, *, container: Optional[Container] = None) -> Flask:
    """Build the Flask app.

    ``settings`` defaults to the module chosen by ``APP_ENV``; a dict works too.
    A prebuilt ``container`` skips store wiring (tests).
    """

    load_dotenv(override=False)
    if settings is None:
        settings = importlib.import_module(get_settings_module())

    setup_logging(level=str(_get(settings, "LOG_LEVEL", "INFO")), fmt=str(_get(settings, "LOG_FORMAT", "text")))

    app = Flask(__name__)
    app.secret_key = _get(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(_get(settings, "DEBUG", False))
    app.config["TESTING"] = bool(_get(settings, "TESTING", False))

    backend = str(_get(settings, "STORE_BACKEND", "memory")).lower()
    if container is None and backend == "mysql" and bool(_get(settings, "AUTO_INIT_DB", False)):
        db_config = _get(settings, "DB_CONFIG")
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

    if container is None:
        container = build_container(settings)
    app.extensions["scan_attendance"] = container

    register_error_handlers(app)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok"})

    register_sessions(app, container)
    register_scans(app, container)
    register_corrections(app, container)
    register_history(app, container)
    register_advisory(app, container)

    logger.info("App ready: backend=%s debug=%s", backend, app.config["DEBUG"])
    return app
