"""Unit tests for :class:`TokenIssuer` using the stub provider."""

from __future__ import annotations

from datetime import timedelta

import pytest

from frends.services._shared.errors import InvalidTokenError
from frends.services._shared.ports import StubTokenProvider, hash_token
from frends.services.auth.dto import AuthTokenConfig
from frends.services.auth.issuer import TokenIssuer
from tests.factories.user import UserFactory


@pytest.fixture()
def provider():
    return StubTokenProvider()


@pytest.fixture()
def issuer(provider):
    return TokenIssuer(provider, AuthTokenConfig())


def test_access_token_snapshots_username_and_roles(issuer, provider, session):
    user = UserFactory(username="ann", roles={"level3", "level1"})
    claims = provider.decode_access(issuer.issue_access(user))
    assert claims["sub"] == str(user.id)
    assert claims["username"] == "ann"
    assert claims["roles"] == ["level1", "level3"]
    assert claims["exp"] - claims["iat"] == 300


def test_refresh_token_carries_only_the_subject(issuer, provider, session):
    user = UserFactory()
    issued = issuer.issue_refresh(user)
    claims = issuer.decode_refresh(issued.token)
    assert claims.user_id == user.id
    assert "roles" not in provider.decode_signed(issued.token, purpose="refresh")
    assert abs(claims.expires_at - issued.expires_at) < timedelta(seconds=2)


def test_access_token_is_refused_as_refresh(issuer, session):
    with pytest.raises(InvalidTokenError):
        issuer.decode_refresh(issuer.issue_access(UserFactory()))


def test_email_verification_binds_the_address(issuer, session):
    user = UserFactory(email="bound@example.com")
    assert issuer.decode_email_verification(issuer.issue_email_verification(user)) == (
        user.id,
        "bound@example.com",
    )


def test_password_reset_returns_token_digest(issuer, session):
    user = UserFactory()
    token, digest = issuer.issue_password_reset(user)
    assert digest == hash_token(token)
    assert issuer.decode_password_reset(token) == user.id


def test_non_numeric_subject_is_invalid(issuer, provider, session):
    issued = issuer.issue_refresh(UserFactory())
    provider.forge(issued.token, sub="not-a-number")
    with pytest.raises(InvalidTokenError):
        issuer.decode_refresh(issued.token)
