from __future__ import annotations

from flask import Flask, jsonify, request

from ..codes.qr import decode_qr_image
from ..common import web
from ..common.serializers import record_to_json
from ..container import Container
from ..core.exceptions import ValidationError
from ..geo.geofence import validate_point
from .service import ScanOutcome


def _outcome_json(outcome: ScanOutcome) -> dict:
    return {
        "success": True,
        "outcome": outcome.kind.value,
        "phase": outcome.phase,
        "status": outcome.status.value,
        "minutes_late": outcome.minutes_late,
        "message": outcome.message(),
    }


def register(app: Flask, container: Container) -> None:
    login_required = web.login_required(container)

    @app.route("/api/<mode>/scans", methods=["POST"], endpoint="scan_submit")
    @login_required
    def scan_submit(mode: str):
        """Participant scan: QR payload (or typed code), position and device id."""

        services = container.for_mode(mode)
        body = web.json_body()
        loc = body.get("location") or {}
        if not isinstance(loc, dict):
            raise ValidationError("location must be an object with lat and lng")
        location = validate_point(loc.get("lat"), loc.get("lng"))

        outcome = services.scans.submit_scan(
            web.current_identity().person_id,
            str(body.get("code") or ""),
            location,
            str(body.get("device_id") or ""),
        )
        return jsonify(_outcome_json(outcome))

    @app.route("/api/<mode>/scans/image", methods=["POST"], endpoint="scan_submit_image")
    @login_required
    def scan_submit_image(mode: str):
        """Accept an uploaded photo of the QR code instead of the decoded payload."""

        services = container.for_mode(mode)
        if "image" not in request.files:
            raise ValidationError("Missing image file")

        location = validate_point(request.form.get("lat"), request.form.get("lng"))
        code = decode_qr_image(request.files["image"].stream)
        if not code:
            raise ValidationError("No QR code found in the image")

        outcome = services.scans.submit_scan(
            web.current_identity().person_id,
            code,
            location,
            request.form.get("device_id") or "",
        )
        return jsonify(_outcome_json(outcome))

    @app.route("/api/<mode>/scans/photos", methods=["POST"], endpoint="scan_attach_photos")
    @login_required
    def scan_attach_photos(mode: str):
        services = container.for_mode(mode)
        urls = web.json_body().get("photo_urls") or []
        if not isinstance(urls, list):
            raise ValidationError("photo_urls must be a list")

        record = services.scans.attach_photos(web.current_identity().person_id, [str(u) for u in urls])
        return jsonify({"success": True, "record": record_to_json(record)})
