"""Account State Guard tests."""

from __future__ import annotations

import pytest

from frends.services._shared.errors import (
    AccountInactiveError,
    ConflictError,
    EmailNotVerifiedError,
)
from frends.services._shared.policies.account_state import (
    ensure_can_deactivate,
    ensure_can_login,
    ensure_can_reactivate,
)
from tests.factories.user import UserFactory
from tests.helpers.utils import not_raises


def test_active_verified_account_may_login(session):
    with not_raises(Exception):
        ensure_can_login(UserFactory())


def test_inactive_account_is_rejected(session):
    user = UserFactory()
    user.soft_delete()
    with pytest.raises(AccountInactiveError) as info:
        ensure_can_login(user)
    assert info.value.code == "account_inactive"


def test_unverified_account_is_rejected(session):
    with pytest.raises(EmailNotVerifiedError) as info:
        ensure_can_login(UserFactory(email_verified=False))
    assert info.value.code == "email_not_verified"


def test_inactive_is_reported_before_unverified(session):
    user = UserFactory(email_verified=False)
    user.soft_delete()
    with pytest.raises(AccountInactiveError):
        ensure_can_login(user)


def test_deactivate_requires_active_account(session):
    user = UserFactory()
    ensure_can_deactivate(user)
    user.soft_delete()
    with pytest.raises(ConflictError):
        ensure_can_deactivate(user)


def test_reactivate_requires_soft_deleted_account(session):
    user = UserFactory()
    with pytest.raises(ConflictError):
        ensure_can_reactivate(user)
    user.soft_delete()
    with not_raises(ConflictError):
        ensure_can_reactivate(user)
