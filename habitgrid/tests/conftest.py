import os
import sys
from pathlib import Path

import pytest
import sqlalchemy as sa
from sqlalchemy.orm import scoped_session, sessionmaker
from alembic import command
from alembic.config import Config as AlembicConfig

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from habitgrid import create_app
from habitgrid.core.auth.auth_service import hash_password, issue_tokens
from habitgrid.core.users.models import User
from habitgrid.extensions import db


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")
    config.addinivalue_line("markers", "slow: Slow running tests")
    config.addinivalue_line("markers", "smoke: Quick smoke tests for CI")


def _alembic_config() -> AlembicConfig:
    cfg = AlembicConfig(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "habitgrid" / "migrations"))
    cfg.set_main_option("habitgrid_env", "testing")
    db_url = os.environ.get("TEST_DATABASE_URL") or "sqlite:///instance/test.db"
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def _sqlite_savepoint_support(engine) -> None:
    """Let pysqlite honour SAVEPOINT by emitting BEGIN ourselves."""

    @sa.event.listens_for(engine, "connect")
    def _no_implicit_transactions(dbapi_conn, _record):
        dbapi_conn.isolation_level = None

    @sa.event.listens_for(engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="session", autouse=True)
def migrated_db():
    """Apply migrations once per session to mirror production schema."""
    cfg = _alembic_config()
    command.downgrade(cfg, "base")
    command.upgrade(cfg, "head")
    yield
    command.downgrade(cfg, "base")


@pytest.fixture()
def app(migrated_db):
    """
    Create a per-test app with an isolated database transaction.

    Each test runs inside its own transaction + savepoint so committed data
    rolls back afterwards.
    """
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()

    if db.engine.dialect.name == "sqlite":
        _sqlite_savepoint_support(db.engine)

    connection = db.engine.connect()
    transaction = connection.begin()

    session_factory = scoped_session(
        sessionmaker(bind=connection, expire_on_commit=False, join_transaction_mode="create_savepoint")
    )
    db.session = session_factory
    session = session_factory()

    try:
        # Seed a default user for FK-dependent tests
        if not session.query(User).filter_by(email="test@example.com").first():
            session.add(User(email="test@example.com", password_hash="test"))
            session.commit()

        yield app
    finally:
        session_factory.remove()
        transaction.rollback()
        connection.close()
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    """Factory for extra users (ownership tests need more than one)."""

    def _make(email: str, password: str = "secret123") -> User:
        user = User(email=email, password_hash=hash_password(password), full_name=email.split("@")[0])
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture()
def owner(make_user):
    return make_user("owner@example.com")


@pytest.fixture()
def stranger(make_user):
    return make_user("stranger@example.com")


@pytest.fixture()
def owner_tokens(app, owner):
    return issue_tokens(owner)
