"""Authentication service layer.

Identity is the only thing the habits domain needs from here: controllers
read it back with ``get_jwt_identity()``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from sqlalchemy import func

from habitgrid.core.auth.models import JWTBlocklist, SessionToken
from habitgrid.core.users.models import User
from habitgrid.extensions import bcrypt, db

logger = logging.getLogger(__name__)


def hash_password(plain_password: str) -> str:
    return bcrypt.generate_password_hash(plain_password).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.check_password_hash(hashed_password, plain_password)
    except ValueError:
        # Seeded/legacy rows may hold a non-bcrypt placeholder.
        return False


def authenticate_user(email: str, password: str) -> Optional[User]:
    """Return the active user if credentials are valid."""
    normalized = (email or "").strip().lower()
    user = User.query.filter(func.lower(User.email) == normalized).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        logger.info("Rejected login for user %s", user.id)
        return None
    return user


def issue_tokens(user: User) -> dict[str, str]:
    """Create access and refresh tokens for a user."""
    identity = str(user.id)
    access_token = create_access_token(identity=identity)
    refresh_token = create_refresh_token(identity=identity)

    # Persist refresh jti for revocation checks
    decoded_refresh = decode_token(refresh_token)
    expires = decoded_refresh.get("exp")
    db.session.add(
        SessionToken(
            user_id=user.id,
            jti=decoded_refresh.get("jti"),
            expires_at=datetime.utcfromtimestamp(expires) if expires else None,
        )
    )
    db.session.commit()

    return {"access_token": access_token, "refresh_token": refresh_token}


def revoke_refresh_token(jti: str) -> None:
    """Revoke a refresh token by JTI."""
    token = SessionToken.query.filter_by(jti=jti).first()
    if token:
        token.revoked = True
    if not JWTBlocklist.query.filter_by(jti=jti).first():
        db.session.add(JWTBlocklist(jti=jti))
    db.session.commit()


def is_token_revoked(jti: Optional[str]) -> bool:
    if not jti:
        return False
    return JWTBlocklist.query.filter_by(jti=jti).first() is not None
