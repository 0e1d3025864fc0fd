"""User service layer."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func

from habitgrid.core.auth.auth_service import hash_password
from habitgrid.core.users.models import User
from habitgrid.core.users.schemas import UserCreateRequest
from habitgrid.extensions import db


def get_user(user_id: int) -> Optional[User]:
    return db.session.get(User, user_id)


def create_user(payload: UserCreateRequest) -> User:
    email = payload.email.strip().lower()
    if User.query.filter(func.lower(User.email) == email).first():
        raise ValueError("email_already_exists")
    user = User(
        email=email,
        full_name=payload.full_name,
        timezone=payload.timezone,
        password_hash=hash_password(payload.password),
    )
    db.session.add(user)
    db.session.commit()
    return user
