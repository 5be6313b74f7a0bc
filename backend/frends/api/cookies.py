"""Session Cookie Manager: the refresh token's transport."""

from __future__ import annotations

from datetime import timedelta

from flask import Response, current_app, request


def _settings() -> dict:
    cfg = current_app.config
    return {
        "path": cfg.get("REFRESH_COOKIE_PATH", "/api/v1/auth"),
        "domain": cfg.get("REFRESH_COOKIE_DOMAIN"),
        "secure": bool(cfg.get("REFRESH_COOKIE_SECURE", True)),
        "httponly": True,
        "samesite": cfg.get("REFRESH_COOKIE_SAMESITE", "None"),
    }


def cookie_name() -> str:
    return str(current_app.config.get("REFRESH_COOKIE_NAME", "jwt"))


def read_refresh_cookie() -> str | None:
    """Return the refresh token sent by the browser, if any."""
    return request.cookies.get(cookie_name()) or None


def set_refresh_cookie(response: Response, token: str) -> Response:
    """
    Attach the refresh token as an HttpOnly cookie.

    The cookie lives exactly as long as the refresh token it carries.

    :param response: Outgoing response.
    :param token: Encoded refresh token.
    :returns: The same response.
    """
    ttl = current_app.config.get("REFRESH_TOKEN_EXPIRES", timedelta(minutes=15))
    response.set_cookie(
        cookie_name(),
        token,
        max_age=int(ttl.total_seconds()),
        **_settings(),
    )
    return response


def clear_refresh_cookie(response: Response) -> Response:
    """Expire the refresh cookie with the attributes it was set with."""
    settings = _settings()
    response.delete_cookie(
        cookie_name(),
        path=settings["path"],
        domain=settings["domain"],
        secure=settings["secure"],
        httponly=True,
        samesite=settings["samesite"],
    )
    return response
