"""HTTP helpers for exercising the session endpoints with the test client."""

from __future__ import annotations

from http.cookies import SimpleCookie

from tests.factories.user import DEFAULT_PASSWORD

API = "/api/v1"
AUTH = f"{API}/auth"
COOKIE = "jwt"


def bearer(token: str) -> dict[str, str]:
    """Authorization header for ``token``."""
    return {"Authorization": f"Bearer {token}"}


def with_cookie(token: str) -> dict[str, str]:
    """Cookie header carrying a refresh token."""
    return {"Cookie": f"{COOKIE}={token}"}


def parse_set_cookie(response, name: str = COOKIE):
    """Return the parsed ``Set-Cookie`` morsel for ``name`` or ``None``."""
    for header in response.headers.getlist("Set-Cookie"):
        jar = SimpleCookie()
        jar.load(header)
        if name in jar:
            return jar[name]
    return None


def refresh_cookie(response, name: str = COOKIE) -> str | None:
    """Value of the refresh cookie set by ``response``."""
    morsel = parse_set_cookie(response, name)
    return morsel.value if morsel is not None else None


def login(client, identifier: str, password: str = DEFAULT_PASSWORD):
    """POST credentials and return ``(response, access_token, refresh_token)``."""
    response = client.post(f"{AUTH}/login", json={"identifier": identifier, "password": password})
    body = response.get_json() or {}
    return response, body.get("accessToken"), refresh_cookie(response)


def refresh(client, token: str):
    """POST to the refresh endpoint with ``token`` in the cookie."""
    response = client.post(f"{AUTH}/refresh", headers=with_cookie(token))
    body = response.get_json() or {}
    return response, body.get("accessToken"), refresh_cookie(response)
