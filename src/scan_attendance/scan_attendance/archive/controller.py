from __future__ import annotations

from flask import Flask, jsonify, request

from ..common import web
from ..common.serializers import record_to_json, records_to_json, session_to_json
from ..common.validators import require_int_range
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import FinalStatus
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    operator_required = web.operator_required(container)

    @app.route("/api/history", methods=["GET"], endpoint="history_list")
    @operator_required
    def history_list():
        limit = require_int_range(request.args.get("limit", DEFAULT_HISTORY_LIMIT), "limit", minimum=1, maximum=500)
        mode = request.args.get("mode")
        sessions = container.history_service.list_sessions(
            limit=limit, mode=container.for_mode(mode).sessions.mode if mode else None
        )
        return jsonify({"success": True, "sessions": [session_to_json(s, include_codes=True) for s in sessions]})

    @app.route("/api/history/<archive_id>", methods=["GET"], endpoint="history_detail")
    @operator_required
    def history_detail(archive_id: str):
        session = container.history_service.get_session(archive_id)
        records = container.history_service.get_records(archive_id)
        return jsonify(
            {
                "success": True,
                "session": session_to_json(session, include_codes=True),
                "records": records_to_json(records),
            }
        )

    @app.route("/api/history/<archive_id>/records/<person_id>", methods=["PATCH"], endpoint="history_override")
    @operator_required
    def history_override(archive_id: str, person_id: str):
        """Operator edit of an archived person's final status."""

        raw = web.json_body().get("final_status")
        try:
            final_status = FinalStatus(raw)
        except ValueError:
            allowed = ", ".join(s.value for s in FinalStatus)
            raise ValidationError(f"final_status must be one of: {allowed}")

        record = container.history_service.override_status(
            web.current_identity(), archive_id=archive_id, person_id=person_id, final_status=final_status
        )
        return jsonify({"success": True, "record": record_to_json(record)})
