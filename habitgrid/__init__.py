"""HabitGrid application factory and bootstrap."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from flask import Flask

from habitgrid.config import config_by_name
from habitgrid.extensions import init_extensions


def create_app(config_name: Optional[str] = None) -> Flask:
    """Create and configure the HabitGrid Flask application."""
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"

    app = Flask(
        __name__,
        instance_path=str(instance_root),
        instance_relative_config=True,
    )
    config_cls = config_by_name.get(env_name, config_by_name["development"])
    app.config.from_object(config_cls)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    instance_root.mkdir(parents=True, exist_ok=True)

    # Normalize sqlite path to absolute to avoid "unable to open database file"
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    is_sqlite = db_uri.startswith("sqlite:")
    if is_sqlite and db_uri.startswith("sqlite:///") and db_uri != "sqlite:///:memory:":
        db_path = db_uri.replace("sqlite:///", "", 1)
        abs_path = Path(db_path)
        if not abs_path.is_absolute():
            abs_path = project_root / db_path
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{abs_path}"

    if not is_sqlite:
        # Remove sqlite-specific connect_args that break Postgres drivers in CI
        engine_opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
        connect_args = dict(engine_opts.get("connect_args") or {})
        connect_args.pop("detect_types", None)
        if "timeout" in connect_args:
            timeout_val = connect_args.pop("timeout")
            if db_uri.startswith("postgresql"):
                connect_args.setdefault("connect_timeout", timeout_val)
        if connect_args:
            engine_opts["connect_args"] = connect_args
        else:
            engine_opts.pop("connect_args", None)
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_opts

    init_extensions(app)
    _import_models()
    _register_blueprints(app)
    _register_error_handlers(app)

    @app.get("/health")
    def health():
        return {"ok": True}, 200

    from habitgrid.scripts.create_user import register_commands

    register_commands(app)

    return app


def _import_models() -> None:
    """Make every model visible on `db.metadata` (migrations, relationships)."""
    from habitgrid.core.auth import models as _auth_models  # noqa: F401
    from habitgrid.core.users import models as _user_models  # noqa: F401
    from habitgrid.domains.habits.models import habit_models as _habit_models  # noqa: F401


def _register_blueprints(app: Flask) -> None:
    """Lazy import and register all controllers."""
    from habitgrid.core.auth.controllers import auth_bp  # local import to avoid circulars
    from habitgrid.domains.habits.controllers.habit_api import habit_api_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(habit_api_bp, url_prefix="/api/habits")


def _register_error_handlers(app: Flask) -> None:
    """Basic JSON error responses."""
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return {"ok": False, "error": exc.description}, exc.code

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # In debug/testing, surface the exception message to speed up diagnosis
        if app.debug or app.testing:
            return {"ok": False, "error": str(exc)}, 500
        return {"ok": False, "error": "unexpected_error"}, 500
