from __future__ import annotations

from flask import Flask, jsonify

from ..common import web
from ..container import Container
from .service import TimingSignals


def register(app: Flask, container: Container) -> None:
    operator_required = web.operator_required(container)

    @app.route("/api/advisory/next-phase-timing", methods=["POST"], endpoint="advisory_next_phase_timing")
    @operator_required
    def advisory_next_phase_timing():
        """Suggest when to show the next scan code.

        The absence rate defaults to the one measured over archived class
        sessions. ``suggestion`` is null when the advisor is unavailable.
        """

        body = web.json_body()
        rate = body.get("absence_rate_percent")
        if rate is None:
            rate = container.history_service.absence_rate_after_first_scan() or 0.0

        signals = TimingSignals(
            absence_rate_percent=rate,
            remaining_minutes=body.get("remaining_minutes"),
            break_minutes=body.get("break_minutes", 0),
        ).validated()

        suggestion = container.advisory.suggest_timing(signals)
        return jsonify(
            {
                "success": True,
                "absence_rate_percent": signals.absence_rate_percent,
                "suggestion": suggestion.to_dict() if suggestion else None,
            }
        )
