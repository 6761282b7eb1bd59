from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError


@dataclass(frozen=True)
class Identity:
    """Who is calling. The role is taken as-is from the provider."""

    person_id: str
    role: Role

    @property
    def is_operator(self) -> bool:
        return self.role == Role.OPERATOR


def require_operator(caller: Identity) -> None:
    if not caller.is_operator:
        raise AuthorizationError("PermissionDenied: operator role required")


class IdentityProvider(Protocol):
    def resolve(self, token: str) -> Identity:
        raise NotImplementedError


class SignedTokenIdentityProvider(IdentityProvider):
    """Stateless bearer tokens signed with the app secret."""

    _SALT = "scan-attendance-identity"

    def __init__(self, secret_key: str, *, max_age_seconds: int = 43200):
        self._serializer = URLSafeTimedSerializer(secret_key, salt=self._SALT)
        self._max_age = int(max_age_seconds)

    def issue_token(self, person_id: str, role: Role) -> str:
        return self._serializer.dumps({"pid": str(person_id), "role": role.value})

    def resolve(self, token: str) -> Identity:
        if not token:
            raise AuthenticationError("Missing bearer token")
        try:
            payload = self._serializer.loads(token, max_age=self._max_age)
        except SignatureExpired:
            raise AuthenticationError("Token expired")
        except BadSignature:
            raise AuthenticationError("Invalid token")
        try:
            return Identity(person_id=str(payload["pid"]), role=Role(payload["role"]))
        except (KeyError, ValueError, TypeError):
            raise AuthenticationError("Malformed token payload")
