from __future__ import annotations

import io

from flask import Flask, jsonify, send_file

from ..codes.qr import render_qr_png
from ..common import web
from ..common.serializers import records_to_json, session_to_json
from ..container import Container
from ..core.exceptions import SessionInactiveError, ValidationError
from ..geo.geofence import GeoPoint
from .model import SessionConfig


def _location_from(body: dict):
    loc = body.get("location")
    if not isinstance(loc, dict) or loc.get("lat") is None or loc.get("lng") is None:
        return None
    return GeoPoint(lat=loc["lat"], lng=loc["lng"])


def _config_from(body: dict, container: Container) -> SessionConfig:
    overrides = body.get("phase_late_overrides") or {}
    if not isinstance(overrides, dict):
        raise ValidationError("phase_late_overrides must be an object of phase -> minutes")
    try:
        overrides = {int(k): v for k, v in overrides.items()}
    except (TypeError, ValueError):
        raise ValidationError("phase_late_overrides keys must be phase numbers")

    return SessionConfig(
        total_phases=body.get("total_phases"),
        late_after_minutes=body.get("late_after_minutes", container.default_late_after_minutes),
        radius_meters=body.get("radius_meters", container.default_radius_meters),
        subject=str(body.get("subject") or ""),
        requires_photo=bool(body.get("requires_photo", False)),
        phase_late_overrides=overrides,
    )


def register(app: Flask, container: Container) -> None:
    login_required = web.login_required(container)
    operator_required = web.operator_required(container)

    @app.route("/api/<mode>/session", methods=["GET"], endpoint="session_current")
    @login_required
    def session_current(mode: str):
        services = container.for_mode(mode)
        session = web.with_store_retry(container, services.sessions.current)
        identity = web.current_identity()
        return jsonify({"success": True, "session": session_to_json(session, include_codes=identity.is_operator)})

    @app.route("/api/<mode>/session/start", methods=["POST"], endpoint="session_start")
    @operator_required
    def session_start(mode: str):
        services = container.for_mode(mode)
        body = web.json_body()
        config = _config_from(body, container)
        location = _location_from(body)

        session = web.with_store_retry(
            container,
            lambda: services.sessions.start(config, operator=web.current_identity(), location=location),
        )
        return jsonify({"success": True, "session": session_to_json(session, include_codes=True)}), 201

    @app.route("/api/<mode>/session/next-phase", methods=["POST"], endpoint="session_next_phase")
    @operator_required
    def session_next_phase(mode: str):
        services = container.for_mode(mode)
        session = services.sessions.activate_next_phase(operator=web.current_identity())
        return jsonify({"success": True, "session": session_to_json(session, include_codes=True)})

    @app.route("/api/<mode>/session/end", methods=["POST"], endpoint="session_end")
    @operator_required
    def session_end(mode: str):
        services = container.for_mode(mode)
        result = web.with_store_retry(container, lambda: services.sessions.end(operator=web.current_identity()))
        return jsonify({"success": True, "archive_id": result.archive_id, "record_count": result.record_count})

    @app.route("/api/<mode>/session/qr.png", methods=["GET"], endpoint="session_qr_image")
    @operator_required
    def session_qr_image(mode: str):
        """Current scan code as a PNG QR image."""

        session = container.for_mode(mode).sessions.current()
        code = session.current_code if session.is_active else None
        if code is None:
            raise SessionInactiveError("No active session")

        buf = io.BytesIO(render_qr_png(code.code))
        buf.seek(0)
        return send_file(buf, mimetype="image/png")

    @app.route("/api/<mode>/session/records", methods=["GET"], endpoint="session_records")
    @operator_required
    def session_records(mode: str):
        records = web.with_store_retry(container, container.for_mode(mode).sessions.live_records)
        return jsonify({"success": True, "records": records_to_json(records)})
