from __future__ import annotations

from flask import Flask, jsonify

from ..common import web
from ..common.serializers import record_to_json, records_to_json
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    login_required = web.login_required(container)
    operator_required = web.operator_required(container)

    @app.route("/api/<mode>/corrections", methods=["POST"], endpoint="correction_request")
    @login_required
    def correction_request(mode: str):
        body = web.json_body()
        identity = web.current_identity()
        # operators may file on someone's behalf
        person_id = str(body.get("person_id") or identity.person_id)

        record = container.for_mode(mode).corrections.request_correction(
            identity, person_id, str(body.get("reason") or "")
        )
        return jsonify({"success": True, "record": record_to_json(record)}), 201

    @app.route("/api/<mode>/corrections/pending", methods=["GET"], endpoint="correction_pending")
    @operator_required
    def correction_pending(mode: str):
        records = container.for_mode(mode).corrections.list_pending(web.current_identity())
        return jsonify({"success": True, "records": records_to_json(records)})

    @app.route("/api/<mode>/corrections/<person_id>/resolve", methods=["POST"], endpoint="correction_resolve")
    @operator_required
    def correction_resolve(mode: str, person_id: str):
        approve = web.json_body().get("approve")
        if not isinstance(approve, bool):
            raise ValidationError("approve must be true or false")

        record = container.for_mode(mode).corrections.resolve_correction(web.current_identity(), person_id, approve)
        return jsonify({"success": True, "record": record_to_json(record)})
