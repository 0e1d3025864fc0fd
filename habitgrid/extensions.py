"""Shared extensions for the HabitGrid application."""

from pathlib import Path

from flask import jsonify
from flask_bcrypt import Bcrypt
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Core persistence and auth/security primitives
db = SQLAlchemy(session_options={"expire_on_commit": False})
migrate = Migrate()
jwt = JWTManager()
bcrypt = Bcrypt()
limiter = Limiter(
    key_func=get_remote_address, enabled=True, default_limits=["200 per hour"]
)


def init_extensions(app) -> None:
    """Initialize all extensions with the Flask app."""
    db.init_app(app)
    migrations_dir = Path(__file__).resolve().parent / "migrations"
    migrate.init_app(app, db, directory=str(migrations_dir))
    jwt.init_app(app)
    bcrypt.init_app(app)
    limiter.enabled = app.config.get("RATELIMIT_ENABLED", True)
    limiter.default_limits = [app.config.get("RATELIMIT_DEFAULT", "200 per hour")]
    limiter.storage_uri = app.config.get("RATELIMIT_STORAGE_URI", "memory://")
    limiter.init_app(app)


@jwt.unauthorized_loader
def _missing_token(reason: str):
    return jsonify({"ok": False, "error": "unauthorized", "details": reason}), 401


@jwt.invalid_token_loader
def _invalid_token(reason: str):
    return jsonify({"ok": False, "error": "unauthorized", "details": reason}), 401


@jwt.expired_token_loader
def _expired_token(_header: dict, _payload: dict):
    return jsonify({"ok": False, "error": "token_expired"}), 401


@jwt.revoked_token_loader
def _revoked_token(_header: dict, _payload: dict):
    return jsonify({"ok": False, "error": "token_revoked"}), 401


@jwt.token_in_blocklist_loader
def _token_in_blocklist(_header: dict, payload: dict) -> bool:
    # Local import: the auth models depend on `db` defined above.
    from habitgrid.core.auth.auth_service import is_token_revoked

    return is_token_revoked(payload.get("jti"))
