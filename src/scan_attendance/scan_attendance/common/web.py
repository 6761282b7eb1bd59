from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, TypeVar

from flask import Flask, g, jsonify, request

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    OperatorPreconditionError,
    ScanRejected,
    StoreError,
    ValidationError,
)
from ..identity.provider import Identity, require_operator
from .retry import retry_on_store_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


def bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def login_required(container) -> Callable:
    """Resolve the bearer token into ``g.identity`` before the view runs."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.identity = container.identity.resolve(bearer_token())
            return view(*args, **kwargs)

        return wrapper

    return decorator


def operator_required(container) -> Callable:
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.identity = container.identity.resolve(bearer_token())
            require_operator(g.identity)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_identity() -> Identity:
    return g.identity


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def with_store_retry(container, fn: Callable[[], T]) -> T:
    return retry_on_store_error(
        fn,
        attempts=container.store_retry_attempts,
        backoff_seconds=container.store_retry_backoff_seconds,
    )


def _error_code(exc: Exception) -> str:
    name = type(exc).__name__
    return name[: -len("Error")] if name.endswith("Error") else name


def _fail(status: int, message: str, **extra: Any):
    payload = {"success": False, "message": message}
    payload.update(extra)
    return jsonify(payload), status


def register_error_handlers(app: Flask) -> None:
    """Map domain exceptions onto JSON error responses."""

    @app.errorhandler(ScanRejected)
    def _scan_rejected(exc: ScanRejected):
        return _fail(400, str(exc), reason=exc.reason.value)

    @app.errorhandler(ValidationError)
    def _validation(exc: ValidationError):
        return _fail(400, str(exc), error="Validation")

    @app.errorhandler(AuthenticationError)
    def _authentication(exc: AuthenticationError):
        return _fail(401, str(exc), error="Unauthenticated")

    @app.errorhandler(AuthorizationError)
    def _authorization(exc: AuthorizationError):
        return _fail(403, str(exc), error="PermissionDenied")

    @app.errorhandler(NotFoundError)
    def _not_found(exc: NotFoundError):
        return _fail(404, str(exc), error="NotFound")

    @app.errorhandler(OperatorPreconditionError)
    def _precondition(exc: OperatorPreconditionError):
        return _fail(409, str(exc), error=_error_code(exc))

    @app.errorhandler(ConflictError)
    def _conflict(exc: ConflictError):
        logger.warning("Request ended in a write conflict: %s", exc)
        return _fail(409, str(exc), error="Conflict")

    @app.errorhandler(StoreError)
    def _store(exc: StoreError):
        logger.error("Record store unavailable: %s", exc)
        return _fail(503, "The attendance store is temporarily unavailable; please retry", error="StoreUnavailable")

    @app.errorhandler(DomainError)
    def _domain(exc: DomainError):
        return _fail(400, str(exc), error=_error_code(exc))
