import pytest

from src.scan_attendance.scan_attendance.core.enums import Role
from src.scan_attendance.scan_attendance.core.exceptions import AuthenticationError, AuthorizationError
from src.scan_attendance.scan_attendance.identity.provider import Identity, SignedTokenIdentityProvider, require_operator


def test_issued_token_resolves_to_identity():
    provider = SignedTokenIdentityProvider("secret")

    identity = provider.resolve(provider.issue_token("s-1", Role.PARTICIPANT))

    assert identity == Identity("s-1", Role.PARTICIPANT)
    assert not identity.is_operator


def test_token_signed_with_another_key_is_rejected():
    token = SignedTokenIdentityProvider("other").issue_token("op-1", Role.OPERATOR)

    with pytest.raises(AuthenticationError):
        SignedTokenIdentityProvider("secret").resolve(token)


def test_missing_token_is_rejected():
    with pytest.raises(AuthenticationError):
        SignedTokenIdentityProvider("secret").resolve("")


def test_expired_token_is_rejected():
    provider = SignedTokenIdentityProvider("secret", max_age_seconds=-1)

    with pytest.raises(AuthenticationError):
        provider.resolve(provider.issue_token("s-1", Role.PARTICIPANT))


def test_require_operator():
    require_operator(Identity("op-1", Role.OPERATOR))
    with pytest.raises(AuthorizationError):
        require_operator(Identity("s-1", Role.PARTICIPANT))
