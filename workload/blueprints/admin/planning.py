"""Admin: plan de actividades de otro usuario."""

from __future__ import annotations

from flask import jsonify
from flask_login import login_required

from workload.blueprints.planning.routes import (
    plan_create,
    plan_delete,
    plan_list,
    plan_summary,
    plan_update,
)

from . import admin_bp
from .helpers import admin_required, get_user_or_none


def _user_missing(user_id: int):
    if get_user_or_none(user_id) is None:
        return jsonify({"message": "Usuario no encontrado."}), 404
    return None


@admin_bp.route("/planning/users/<int:user_id>/activities")
@login_required
@admin_required
def user_plan(user_id):
    return _user_missing(user_id) or plan_list(user_id)


@admin_bp.route("/planning/users/<int:user_id>/activities/summary")
@login_required
@admin_required
def user_plan_summary(user_id):
    return _user_missing(user_id) or plan_summary(user_id)


@admin_bp.route("/planning/users/<int:user_id>/activities", methods=["POST"])
@login_required
@admin_required
def create_activity_for_user(user_id):
    return _user_missing(user_id) or plan_create(user_id)


@admin_bp.route("/planning/users/<int:user_id>/activities/<int:activity_id>", methods=["PUT"])
@login_required
@admin_required
def update_activity_for_user(user_id, activity_id):
    return _user_missing(user_id) or plan_update(user_id, activity_id)


@admin_bp.route(
    "/planning/users/<int:user_id>/activities/<int:activity_id>", methods=["DELETE"]
)
@login_required
@admin_required
def delete_activity_for_user(user_id, activity_id):
    return _user_missing(user_id) or plan_delete(user_id, activity_id)
