"""AccountService tests: registration, verification, reset and lifecycle."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from frends.models.user import User
from frends.services._shared.errors import (
    AuthorizationError,
    ConflictError,
    InvalidTokenError,
    NotFoundError,
    ValidationFailedError,
)
from frends.services._shared.ports import (
    InMemoryMailer,
    InMemoryRefreshTokenStore,
    StubTokenProvider,
)
from frends.services.accounts.dto import CreateUserIn, PasswordResetIn, RegisterIn
from frends.services.accounts.service import AccountService
from frends.services.auth.dto import LoginIn
from frends.services.auth.issuer import TokenIssuer
from frends.services.auth.service import AuthService
from tests.factories.user import DEFAULT_PASSWORD, AdminFactory, UserFactory


@pytest.fixture()
def provider():
    return StubTokenProvider()


@pytest.fixture()
def store():
    return InMemoryRefreshTokenStore()


@pytest.fixture()
def outbox():
    return InMemoryMailer()


@pytest.fixture()
def accounts(provider, store, outbox):
    return AccountService(
        issuer=TokenIssuer(provider),
        refresh_store=store,
        mailer=outbox,
        frontend_url="https://frends.test/",
    )


@pytest.fixture()
def auth(provider, store):
    return AuthService(issuer=TokenIssuer(provider), refresh_store=store)


def _token_from(link: str) -> str:
    return link.rsplit("/", 1)[-1]


def _stored(session, user_id: int) -> User:
    return session.execute(select(User).where(User.id == user_id)).scalar_one()


# ---------------------------- Registration -------------------------------- #
def test_register_creates_unverified_account_and_mails_link(accounts, outbox):
    out = accounts.register(
        RegisterIn(username="ann", email="Ann@Example.com", password="long-enough")
    )

    assert out.email == "ann@example.com"
    assert out.roles == ("level1",)
    assert out.email_verified is False
    mail = outbox.last_to("ann@example.com")
    assert mail is not None
    assert mail.link.startswith("https://frends.test/verify-email/")


def test_enterprise_account_type(accounts):
    out = accounts.register(
        RegisterIn(
            username="acme",
            email="acme@example.com",
            password="long-enough",
            account_type="enterprise",
        )
    )
    assert out.roles == ("level2",)


def test_admin_cannot_self_register(accounts):
    with pytest.raises(ValidationFailedError):
        accounts.register(
            RegisterIn(
                username="root",
                email="root@example.com",
                password="long-enough",
                account_type="admin",
            )
        )


@pytest.mark.parametrize(
    ("username", "email"),
    [("taken", "fresh@example.com"), ("fresh", "TAKEN@example.com")],
)
def test_register_duplicate_username_or_email(accounts, username, email):
    UserFactory(username="taken", email="taken@example.com")
    with pytest.raises(ConflictError):
        accounts.register(RegisterIn(username=username, email=email, password="long-enough"))


def test_register_weak_password(accounts):
    with pytest.raises(ValidationFailedError):
        accounts.register(RegisterIn(username="weak", email="weak@example.com", password="short"))


def test_verify_email_then_login(accounts, auth, outbox):
    accounts.register(RegisterIn(username="bea", email="bea@example.com", password="long-enough"))
    token = _token_from(outbox.last_to("bea@example.com").link)

    assert accounts.verify_email(token).email_verified is True
    # Verifying twice is harmless.
    assert accounts.verify_email(token).email_verified is True
    assert auth.login(LoginIn(identifier="bea", password="long-enough")).access_token


def test_verification_link_is_bound_to_the_address(accounts, outbox, session):
    out = accounts.register(
        RegisterIn(username="cal", email="cal@example.com", password="long-enough")
    )
    token = _token_from(outbox.last_to("cal@example.com").link)
    _stored(session, out.id).email = "cal.new@example.com"
    session.commit()

    with pytest.raises(InvalidTokenError):
        accounts.verify_email(token)


def test_create_user_is_verified(accounts):
    out = accounts.create_user(
        CreateUserIn(
            username="ops",
            email="ops@example.com",
            password="long-enough",
            roles=frozenset({"level1", "level2", "level3"}),
        )
    )
    assert out.email_verified is True
    assert out.roles == ("level1", "level2", "level3")


# --------------------------- Password reset ------------------------------- #
def test_reset_request_for_unknown_email_sends_nothing(accounts, outbox):
    accounts.request_password_reset("nobody@example.com")
    assert outbox.outbox == []


def test_password_reset_changes_password_and_revokes_sessions(accounts, auth, outbox, store):
    user_id = UserFactory(username="dee", email="dee@example.com").id
    auth.login(LoginIn(identifier="dee", password=DEFAULT_PASSWORD))
    accounts.request_password_reset("DEE@example.com")
    token = _token_from(outbox.last_to("dee@example.com").link)

    accounts.reset_password(PasswordResetIn(token=token, new_password="brand-new-pass"))

    assert store.tokens_for(user_id) == []
    assert auth.login(LoginIn(identifier="dee", password="brand-new-pass")).access_token
    with pytest.raises(InvalidTokenError):
        accounts.reset_password(PasswordResetIn(token=token, new_password="another-pass"))


def test_only_latest_reset_link_works(accounts, outbox):
    UserFactory(username="eve", email="eve@example.com")
    accounts.request_password_reset("eve@example.com")
    stale = _token_from(outbox.last_to("eve@example.com").link)
    accounts.request_password_reset("eve@example.com")
    latest = _token_from(outbox.last_to("eve@example.com").link)

    with pytest.raises(InvalidTokenError):
        accounts.reset_password(PasswordResetIn(token=stale, new_password="brand-new-pass"))
    accounts.reset_password(PasswordResetIn(token=latest, new_password="brand-new-pass"))


# ------------------------------ Lifecycle --------------------------------- #
def test_self_deactivation_revokes_sessions(accounts, auth, store):
    user = UserFactory(username="fay")
    user_id = user.id
    auth.login(LoginIn(identifier="fay", password=DEFAULT_PASSWORD))

    out = accounts.deactivate(user_id, actor_id=user_id, actor_roles=frozenset({"level1"}))

    assert out.active is False
    assert out.deleted_at is not None
    assert store.tokens_for(user_id) == []


def test_other_user_cannot_deactivate(accounts):
    target_id = UserFactory().id
    actor_id = UserFactory().id
    with pytest.raises(AuthorizationError):
        accounts.deactivate(target_id, actor_id=actor_id, actor_roles=frozenset({"level1"}))


def test_admin_deactivates_and_reactivates(accounts):
    admin = AdminFactory()
    target_id = UserFactory().id

    accounts.deactivate(target_id, actor_id=admin.id, actor_roles=admin.roles)
    with pytest.raises(ConflictError):
        accounts.deactivate(target_id, actor_id=admin.id, actor_roles=admin.roles)

    out = accounts.reactivate(target_id)
    assert out.active is True
    assert out.deleted_at is None
    with pytest.raises(ConflictError):
        accounts.reactivate(target_id)


def test_deactivate_unknown_user(accounts):
    admin = AdminFactory()
    with pytest.raises(NotFoundError):
        accounts.deactivate(999999, actor_id=admin.id, actor_roles=admin.roles)


def test_set_roles(accounts):
    user_id = UserFactory(roles={"level1"}).id
    assert accounts.set_roles(user_id, ["level2", "level3"]).roles == ("level2", "level3")
    with pytest.raises(ValidationFailedError):
        accounts.set_roles(user_id, ["root"])


def test_get_user(accounts):
    user_id = UserFactory(username="gus").id
    assert accounts.get_user(user_id).username == "gus"
    with pytest.raises(NotFoundError):
        accounts.get_user(999999)
