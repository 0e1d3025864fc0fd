"""Auth HTTP controllers (API only)."""

from __future__ import annotations

from flask import Blueprint, jsonify, request, session
from flask_jwt_extended import (
    create_access_token,
    get_jwt,
    get_jwt_identity,
    jwt_required,
)
from pydantic import ValidationError

from habitgrid.core.auth.auth_service import (
    authenticate_user,
    issue_tokens,
    revoke_refresh_token,
)
from habitgrid.core.auth.csrf import generate_csrf_token, rotate_csrf_token
from habitgrid.core.auth.schemas import LoginRequest
from habitgrid.core.users.schemas import UserResponse
from habitgrid.core.users.services import get_user
from habitgrid.core.utils.decorators import csrf_protected
from habitgrid.core.utils.validation import jsonable_errors
from habitgrid.extensions import limiter

auth_bp = Blueprint("auth_api", __name__)


@auth_bp.post("/login")
@limiter.limit("10/minute")
def login():
    # Ensure login is stateless even if a stale Flask session cookie is present.
    session.clear()
    payload = request.get_json(silent=True) or {}
    try:
        data = LoginRequest.model_validate(payload)
    except ValidationError as exc:
        return (
            jsonify({"ok": False, "error": "bad_request", "details": jsonable_errors(exc)}),
            400,
        )
    user = authenticate_user(data.email, data.password)
    if not user:
        return jsonify({"ok": False, "error": "invalid_credentials"}), 401
    tokens = issue_tokens(user)
    return jsonify(
        {
            "ok": True,
            **tokens,
            "csrf_token": rotate_csrf_token(),
            "user": UserResponse.model_validate(user).model_dump(),
        }
    )


@auth_bp.post("/refresh")
@jwt_required(refresh=True)
@limiter.limit("30/minute")
def refresh():
    identity = str(get_jwt_identity())
    return jsonify({"ok": True, "access_token": create_access_token(identity=identity)})


@auth_bp.post("/logout")
@jwt_required(refresh=True)
@csrf_protected
def logout():
    jti = get_jwt().get("jti")
    if jti:
        revoke_refresh_token(jti)
    return jsonify({"ok": True})


@auth_bp.get("/csrf")
def csrf_token():
    return jsonify({"ok": True, "csrf_token": generate_csrf_token()})


@auth_bp.get("/me")
@jwt_required()
def me():
    user = get_user(int(get_jwt_identity()))
    if not user:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "user": UserResponse.model_validate(user).model_dump()})
