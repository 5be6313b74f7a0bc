"""AuthService tests: login, rotation, reuse detection and logout.

The service runs against in-memory doubles for the token provider and the
refresh store, and against the transactional SQL session for accounts.
"""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from frends.services._shared.errors import (
    AccountInactiveError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from frends.services._shared.ports import (
    InMemoryRefreshTokenStore,
    StubTokenProvider,
    hash_token,
)
from frends.services.auth.dto import AuthTokenConfig, LoginIn, LogoutIn, RefreshIn
from frends.services.auth.issuer import TokenIssuer
from frends.services.auth.service import AuthService
from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.helpers.utils import not_raises


class InterleavingStore(InMemoryRefreshTokenStore):
    """Store that runs a one-shot callback at a chosen point of a call."""

    def __init__(self) -> None:
        super().__init__()
        self.before_remove = None
        self.after_remove = None
        self.before_add = None

    @staticmethod
    def _fire(hook) -> None:
        if hook is not None:
            hook()

    def remove(self, token, *, tombstone_for=None):
        hook, self.before_remove = self.before_remove, None
        self._fire(hook)
        removed = super().remove(token, tombstone_for=tombstone_for)
        hook, self.after_remove = self.after_remove, None
        self._fire(hook)
        return removed

    def add(self, user_id, token, expires_at):
        hook, self.before_add = self.before_add, None
        self._fire(hook)
        super().add(user_id, token, expires_at)


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def provider():
    return StubTokenProvider()


@pytest.fixture()
def store():
    return InMemoryRefreshTokenStore()


@pytest.fixture()
def service(provider, store):
    return AuthService(issuer=TokenIssuer(provider, AuthTokenConfig()), refresh_store=store)


def _login(service, username: str):
    return service.login(LoginIn(identifier=username, password=DEFAULT_PASSWORD))


# ------------------------------- Login ------------------------------------ #
def test_login_issues_access_and_refresh(service, store, provider):
    user = UserFactory(username="ivy", roles={"level1", "level2"})
    user_id = user.id

    out = _login(service, "ivy")

    assert provider.decode_access(out.access_token)["sub"] == str(user_id)
    assert out.roles == ("level1", "level2")
    assert store.tokens_for(user_id) == [hash_token(out.refresh_token)]


def test_each_login_adds_a_session(service, store):
    user_id = UserFactory(username="jay").id
    first = _login(service, "jay")
    second = _login(service, "jay")
    assert store.tokens_for(user_id) == [
        hash_token(first.refresh_token),
        hash_token(second.refresh_token),
    ]


def test_login_with_wrong_password(service, store):
    user_id = UserFactory(username="kim").id
    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(identifier="kim", password="not-it"))
    assert store.tokens_for(user_id) == []


def test_login_unknown_identifier(service):
    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(identifier="ghost", password="whatever"))


def test_login_inactive_account(service, session):
    user = UserFactory(username="lee")
    user.soft_delete()
    session.commit()
    with pytest.raises(AccountInactiveError):
        _login(service, "lee")


def test_login_unverified_account(service):
    UserFactory(username="max", email_verified=False)
    with pytest.raises(EmailNotVerifiedError):
        _login(service, "max")


@pytest.mark.parametrize("password_ok", [True, False])
@pytest.mark.parametrize("active", [True, False])
@pytest.mark.parametrize("verified", [True, False])
def test_login_succeeds_iff_password_active_and_verified(
    service, session, password_ok, active, verified
):
    user = UserFactory(username="nia", email_verified=verified)
    if not active:
        user.soft_delete()
        session.commit()
    password = DEFAULT_PASSWORD if password_ok else "wrong-password"

    if password_ok and active and verified:
        with not_raises(Exception):
            service.login(LoginIn(identifier="nia", password=password))
    else:
        with pytest.raises((InvalidCredentialsError, AccountInactiveError, EmailNotVerifiedError)):
            service.login(LoginIn(identifier="nia", password=password))


# ------------------------------ Rotation ---------------------------------- #
def test_refresh_rotates_the_presented_token(service, store):
    user_id = UserFactory(username="oli").id
    other = _login(service, "oli")
    first = _login(service, "oli")

    rotated = service.refresh(RefreshIn(refresh_token=first.refresh_token))

    tokens = store.tokens_for(user_id)
    assert hash_token(first.refresh_token) not in tokens
    assert tokens == [hash_token(other.refresh_token), hash_token(rotated.refresh_token)]
    assert rotated.refresh_token != first.refresh_token


def test_refresh_picks_up_current_roles(service, store, session):
    user = UserFactory(username="pat", roles={"level1"})
    first = _login(service, "pat")

    user.roles = {"level1", "level3"}
    session.commit()

    rotated = service.refresh(RefreshIn(refresh_token=first.refresh_token))
    assert rotated.roles == ("level1", "level3")


def test_reused_token_revokes_every_session(service, store, freeze_time):
    user_id = UserFactory(username="quin").id
    with freeze_time() as frozen:
        laptop = _login(service, "quin")
        phone = _login(service, "quin")
        rotated = service.refresh(RefreshIn(refresh_token=phone.refresh_token))
        frozen.tick(timedelta(seconds=11))

        with pytest.raises(InvalidTokenError):
            service.refresh(RefreshIn(refresh_token=phone.refresh_token))

        assert store.tokens_for(user_id) == []
        for token in (laptop.refresh_token, rotated.refresh_token):
            with pytest.raises(InvalidTokenError):
                service.refresh(RefreshIn(refresh_token=token))


def test_reuse_is_logged_as_a_warning(service, caplog, freeze_time):
    UserFactory(username="ray")
    with freeze_time() as frozen:
        first = _login(service, "ray")
        service.refresh(RefreshIn(refresh_token=first.refresh_token))
        frozen.tick(timedelta(seconds=11))

        with caplog.at_level(logging.WARNING, logger="frends.services.auth.service"):
            with pytest.raises(InvalidTokenError):
                service.refresh(RefreshIn(refresh_token=first.refresh_token))

    assert any(r.getMessage() == "auth.refresh.reuse_detected" for r in caplog.records)


def test_late_retry_inside_grace_window_does_not_revoke(service, store, freeze_time):
    user_id = UserFactory(username="sam").id
    with freeze_time() as frozen:
        laptop = _login(service, "sam")
        first = _login(service, "sam")
        rotated = service.refresh(RefreshIn(refresh_token=first.refresh_token))
        frozen.tick(timedelta(seconds=9))

        with pytest.raises(InvalidTokenError):
            service.refresh(RefreshIn(refresh_token=first.refresh_token))

    assert store.tokens_for(user_id) == [
        hash_token(laptop.refresh_token),
        hash_token(rotated.refresh_token),
    ]


def test_zero_grace_window_treats_any_replay_as_reuse(provider, store):
    service = AuthService(
        issuer=TokenIssuer(provider, AuthTokenConfig(reuse_grace=timedelta(0))),
        refresh_store=store,
    )
    user_id = UserFactory(username="sid").id
    first = _login(service, "sid")
    service.refresh(RefreshIn(refresh_token=first.refresh_token))

    with pytest.raises(InvalidTokenError):
        service.refresh(RefreshIn(refresh_token=first.refresh_token))

    assert store.tokens_for(user_id) == []


# ---------------------------- Interleavings ------------------------------- #
@pytest.fixture()
def interleaving_store():
    return InterleavingStore()


@pytest.fixture()
def interleaved(provider, interleaving_store):
    return AuthService(
        issuer=TokenIssuer(provider, AuthTokenConfig()), refresh_store=interleaving_store
    )


def test_concurrent_refresh_has_exactly_one_winner(interleaved, interleaving_store):
    user_id = UserFactory(username="tao").id
    first = _login(interleaved, "tao")
    winners = []
    interleaving_store.before_remove = lambda: winners.append(
        interleaved.refresh(RefreshIn(refresh_token=first.refresh_token))
    )

    with pytest.raises(InvalidTokenError):
        interleaved.refresh(RefreshIn(refresh_token=first.refresh_token))

    assert len(winners) == 1
    # The loser revoked nothing: only the winner's new token remains.
    assert interleaving_store.tokens_for(user_id) == [hash_token(winners[0].refresh_token)]


def test_retry_after_removal_keeps_other_devices(interleaved, interleaving_store):
    user_id = UserFactory(username="tia").id
    laptop = _login(interleaved, "tia")
    phone = _login(interleaved, "tia")
    refused = []

    def retry():
        with pytest.raises(InvalidTokenError):
            interleaved.refresh(RefreshIn(refresh_token=phone.refresh_token))
        refused.append(True)

    interleaving_store.after_remove = retry
    rotated = interleaved.refresh(RefreshIn(refresh_token=phone.refresh_token))

    assert refused == [True]
    assert interleaving_store.tokens_for(user_id) == [
        hash_token(laptop.refresh_token),
        hash_token(rotated.refresh_token),
    ]


def test_refresh_racing_deactivation_leaves_no_session(interleaved, interleaving_store, session):
    user = UserFactory(username="udo")
    user_id = user.id
    first = _login(interleaved, "udo")

    def deactivate():
        user.soft_delete()
        session.commit()
        interleaving_store.revoke_all(user_id)

    interleaving_store.before_add = deactivate
    with pytest.raises(AccountInactiveError):
        interleaved.refresh(RefreshIn(refresh_token=first.refresh_token))

    assert interleaving_store.tokens_for(user_id) == []


def test_refresh_racing_password_reset_leaves_no_session(
    interleaved, interleaving_store, session
):
    user = UserFactory(username="val")
    user_id = user.id
    first = _login(interleaved, "val")

    def reset():
        user.password = "another-Passw0rd!"
        session.commit()
        interleaving_store.revoke_all(user_id)

    interleaving_store.before_add = reset
    with pytest.raises(InvalidTokenError):
        interleaved.refresh(RefreshIn(refresh_token=first.refresh_token))

    assert interleaving_store.tokens_for(user_id) == []


def test_login_racing_password_reset_leaves_no_session(interleaved, interleaving_store, session):
    user = UserFactory(username="wyn")
    user_id = user.id

    def reset():
        user.password = "another-Passw0rd!"
        session.commit()
        interleaving_store.revoke_all(user_id)

    interleaving_store.before_add = reset
    with pytest.raises(InvalidCredentialsError):
        _login(interleaved, "wyn")

    assert interleaving_store.tokens_for(user_id) == []


def test_unknown_garbage_token_revokes_nothing(service, store):
    user_id = UserFactory(username="uma").id
    _login(service, "uma")
    with pytest.raises(InvalidTokenError):
        service.refresh(RefreshIn(refresh_token="garbage"))
    assert len(store.tokens_for(user_id)) == 1


def test_expired_refresh_token_is_refused(service, store, freeze_time):
    user_id = UserFactory(username="vic").id
    with freeze_time("2026-01-01 12:00:00") as frozen:
        first = _login(service, "vic")
        frozen.tick(timedelta(minutes=15, seconds=1))
        with pytest.raises(InvalidTokenError):
            service.refresh(RefreshIn(refresh_token=first.refresh_token))
    assert store.tokens_for(user_id) == []


def test_subject_mismatch_is_refused(service, provider):
    UserFactory(username="wes")
    first = _login(service, "wes")
    provider.forge(first.refresh_token, sub="999999")
    with pytest.raises(InvalidTokenError):
        service.refresh(RefreshIn(refresh_token=first.refresh_token))


def test_refresh_of_deactivated_account_is_refused(service, session):
    user = UserFactory(username="xia")
    first = _login(service, "xia")
    user.soft_delete()
    session.commit()

    with pytest.raises(AccountInactiveError):
        service.refresh(RefreshIn(refresh_token=first.refresh_token))


# ------------------------------- Logout ----------------------------------- #
def test_logout_is_idempotent(service, store):
    user_id = UserFactory(username="yan").id
    out = _login(service, "yan")

    with not_raises(Exception):
        service.logout(LogoutIn(refresh_token=out.refresh_token))
        service.logout(LogoutIn(refresh_token=out.refresh_token))
        service.logout(LogoutIn(refresh_token=None))
        service.logout(LogoutIn(refresh_token="unknown"))

    assert store.tokens_for(user_id) == []


def test_logged_out_token_cannot_refresh(service):
    UserFactory(username="zed")
    out = _login(service, "zed")
    service.logout(LogoutIn(refresh_token=out.refresh_token))
    with pytest.raises(InvalidTokenError):
        service.refresh(RefreshIn(refresh_token=out.refresh_token))


def test_revoke_all_sessions(service, store):
    user_id = UserFactory(username="abe").id
    _login(service, "abe")
    _login(service, "abe")
    assert service.revoke_all_sessions(user_id) == 2
    assert store.tokens_for(user_id) == []
