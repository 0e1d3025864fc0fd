"""Habits JSON API controllers (thin, schema-validated)."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from habitgrid.core.utils.decorators import csrf_protected
from habitgrid.core.utils.validation import jsonable_errors
from habitgrid.domains.habits import services as habit_services
from habitgrid.domains.habits.dates import current_week, days_between, parse_iso_date
from habitgrid.domains.habits.errors import HabitError, HabitValidationError
from habitgrid.domains.habits.schemas.habit_schemas import (
    CompletionToggle,
    HabitCreate,
    HabitUpdate,
    ReorderRequest,
    WeekQuery,
    serialize_habit,
    serialize_week,
)

habit_api_bp = Blueprint("habit_api", __name__)

_STATUS_BY_CODE = {
    "validation_error": 400,
    "not_found": 404,
    "invalid_reference": 409,
}


def _invalid(exc: ValidationError):
    return jsonify({"ok": False, "error": "validation_error", "details": jsonable_errors(exc)}), 400


def _failure(exc: HabitError):
    code = str(exc)
    body = {"ok": False, "error": code}
    if isinstance(exc, HabitValidationError):
        body["message"] = exc.message
        if exc.details:
            body["details"] = exc.details
    return jsonify(body), _STATUS_BY_CODE.get(code, 400)


def _truthy(value) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


@habit_api_bp.get("/week")
@jwt_required()
def week_view():
    try:
        query = WeekQuery.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return _invalid(exc)
    if query.start_date is None:
        week = current_week()
        start, end = week.start_date, week.end_date
    else:
        start, end = query.start_date, query.end_date
    user_id = int(get_jwt_identity())
    try:
        result = habit_services.get_week(user_id, start, end)
    except HabitError as exc:
        return _failure(exc)
    resp = serialize_week(start, end, days_between(start, end), result["habits"], result["completions"])
    return jsonify({"ok": True, **resp.model_dump(mode="json")})


@habit_api_bp.get("")
@jwt_required()
def list_habits():
    user_id = int(get_jwt_identity())
    due_on = request.args.get("due_on")
    try:
        if due_on:
            habits = habit_services.list_due_habits(user_id, parse_iso_date(due_on, "due_on"))
        else:
            habits = habit_services.list_habits(
                user_id, active_only=not _truthy(request.args.get("include_archived"))
            )
    except HabitError as exc:
        return _failure(exc)
    payload = [serialize_habit(habit).model_dump(mode="json") for habit in habits]
    return jsonify({"ok": True, "habits": payload})


@habit_api_bp.get("/<int:habit_id>")
@jwt_required()
def habit_detail(habit_id: int):
    user_id = int(get_jwt_identity())
    try:
        habit = habit_services.get_habit(user_id, habit_id)
    except HabitError as exc:
        return _failure(exc)
    return jsonify({"ok": True, "habit": serialize_habit(habit).model_dump(mode="json")})


@habit_api_bp.post("")
@jwt_required()
@csrf_protected
def create_habit():
    payload = request.get_json(silent=True) or {}
    try:
        data = HabitCreate.model_validate(payload)
    except ValidationError as exc:
        return _invalid(exc)
    user_id = int(get_jwt_identity())
    try:
        habit = habit_services.create_habit(user_id, **data.model_dump())
    except HabitError as exc:
        return _failure(exc)
    return jsonify({"ok": True, "habit": serialize_habit(habit).model_dump(mode="json")}), 201


@habit_api_bp.patch("/<int:habit_id>")
@jwt_required()
@csrf_protected
def update_habit(habit_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        data = HabitUpdate.model_validate(payload)
    except ValidationError as exc:
        return _invalid(exc)
    user_id = int(get_jwt_identity())
    try:
        habit = habit_services.update_habit(user_id, habit_id, **data.model_dump(exclude_unset=True))
    except HabitError as exc:
        return _failure(exc)
    return jsonify({"ok": True, "habit": serialize_habit(habit).model_dump(mode="json")})


@habit_api_bp.post("/<int:habit_id>/archive")
@jwt_required()
@csrf_protected
def archive_habit(habit_id: int):
    user_id = int(get_jwt_identity())
    try:
        habit_services.archive_habit(user_id, habit_id)
    except HabitError as exc:
        return _failure(exc)
    return jsonify({"ok": True, "success": True})


@habit_api_bp.post("/reorder")
@jwt_required()
@csrf_protected
def reorder_habits():
    payload = request.get_json(silent=True) or {}
    try:
        data = ReorderRequest.model_validate(payload)
    except ValidationError as exc:
        return _invalid(exc)
    user_id = int(get_jwt_identity())
    try:
        habit_services.reorder_habits(user_id, data.ordered_ids)
    except HabitError as exc:
        return _failure(exc)
    return jsonify({"ok": True, "success": True})


@habit_api_bp.post("/completions/toggle")
@jwt_required()
@csrf_protected
def toggle_completion():
    payload = request.get_json(silent=True) or {}
    try:
        data = CompletionToggle.model_validate(payload)
    except ValidationError as exc:
        return _invalid(exc)
    user_id = int(get_jwt_identity())
    try:
        result = habit_services.toggle_completion(user_id, data.habit_id, data.day)
    except HabitError as exc:
        return _failure(exc)
    return jsonify({"ok": True, **result})
