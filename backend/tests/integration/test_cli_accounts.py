"""Tests for the ``flask accounts`` command group."""

from __future__ import annotations

import pytest

from tests.factories.user import UserFactory
from tests.helpers.http import login


@pytest.fixture()
def runner(app):
    return app.test_cli_runner()


def test_create_admin_user(runner, client):
    result = runner.invoke(
        args=[
            "accounts",
            "create-user",
            "--username",
            "operator",
            "--email",
            "operator@example.com",
            "--password",
            "long-enough",
            "--admin",
        ]
    )
    assert result.exit_code == 0, result.output
    assert "roles=level1,level2,level3" in result.output

    response, _, _ = login(client, "operator", "long-enough")
    assert response.status_code == 200
    assert response.get_json()["roles"] == ["level1", "level2", "level3"]


def test_create_user_conflict(runner):
    UserFactory(username="dupe", email="dupe@example.com")
    result = runner.invoke(
        args=[
            "accounts",
            "create-user",
            "--username",
            "dupe",
            "--email",
            "dupe@example.com",
            "--password",
            "long-enough",
        ]
    )
    assert result.exit_code != 0
    assert "Conflict" in result.output


def test_revoke_sessions(runner, client, app):
    user_id = UserFactory(username="gwen").id
    login(client, "gwen")
    login(client, "gwen")

    result = runner.invoke(args=["accounts", "revoke-sessions", str(user_id)])

    assert result.exit_code == 0, result.output
    assert "Revoked 2 session(s)" in result.output
    assert app.extensions["refresh_token_store"].tokens_for(user_id) == []


def test_prune_tokens(runner):
    result = runner.invoke(args=["accounts", "prune-tokens"])
    assert result.exit_code == 0, result.output
    assert "Pruned" in result.output
