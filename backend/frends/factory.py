"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from flask import Flask

from frends.core.config import BaseConfig, get_config, validate_secrets
from frends.core.logger import configure_logging, init_app as init_logging


def _init_collaborators(app: Flask) -> None:
    """Attach the token provider, mailer and refresh token store."""

    from frends.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
    from frends.infra.mail.logging_mailer import LoggingMailer

    app.extensions["token_provider"] = JWTTokenProvider()
    app.extensions["mailer"] = LoggingMailer(sender=app.config.get("MAIL_SENDER", ""))

    backend = str(app.config.get("REFRESH_TOKEN_STORE", "sql")).strip().lower()
    if backend == "sql":
        from frends.infra.sql.sql_refresh_token_store import SQLRefreshTokenStore

        app.extensions["refresh_token_store"] = SQLRefreshTokenStore()
    elif backend == "redis":
        from frends.core.extensions import get_redis
        from frends.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore

        app.extensions["refresh_token_store"] = RedisRefreshTokenStore(r=get_redis())
    else:
        raise RuntimeError(
            f"Unsupported REFRESH_TOKEN_STORE {backend!r}; expected 'sql' or 'redis'."
        )


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application."""

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    validate_secrets(app.config)
    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Proxy headers if running behind a reverse proxy (optional module)
    from frends.core import proxy

    proxy.init_app(app)

    from frends.core import extensions

    extensions.init_app(app)

    from frends.core import security

    security.init_app(app)

    init_logging(app)

    from frends.core import cors

    cors.init_app(app)

    _init_collaborators(app)

    from frends.api import init_app as init_api

    init_api(app)

    from frends.core import errors

    errors.init_app(app)

    from frends import cli as app_cli

    app_cli.init_app(app)

    return app
