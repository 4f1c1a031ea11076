"""
Planning routes: plan de actividades del profesor autenticado.

Las funciones plan_* tambien las usa el admin para gestionar el plan de
otro usuario (workload.blueprints.admin.planning).
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from workload.db_models import ActivityType
from workload.services.planning import (
    PlanningValidationError,
    create_activity,
    delete_activity,
    get_user_activity,
    list_activities,
    parse_activity_payload,
    parse_activity_update,
    update_activity,
)
from workload.services.reporting import compute_plan_summary
from workload.workload_calculator import ZERO, WorkloadError, as_number

logger = logging.getLogger(__name__)

planning_bp = Blueprint("planning", __name__)


def plan_list(user_id: int):
    try:
        activities = list_activities(
            user_id, request.args.get("startDate"), request.args.get("endDate")
        )
    except PlanningValidationError as e:
        return jsonify({"message": str(e)}), 400
    return jsonify([a.to_dict() for a in activities])


def plan_summary(user_id: int):
    """Horas por tipo de actividad en el rango"""
    start, end = request.args.get("startDate"), request.args.get("endDate")
    try:
        totals = compute_plan_summary(user_id, start, end)
    except WorkloadError as e:
        return jsonify({"message": str(e)}), 400
    return jsonify(
        {
            "startDate": start,
            "endDate": end,
            "total_horas": as_number(sum((t.total_hours for t in totals), ZERO)),
            "por_tipo": [t.to_dict() for t in totals],
        }
    )


def plan_create(user_id: int):
    try:
        payload = parse_activity_payload(request.get_json(silent=True))
        activity = create_activity(user_id, payload)
    except PlanningValidationError as e:
        return jsonify({"message": str(e)}), 400
    return (
        jsonify({"message": "Actividad registrada exitosamente.", "actividad": activity.to_dict()}),
        201,
    )


def plan_update(user_id: int, activity_id: int):
    activity = get_user_activity(user_id, activity_id)
    if activity is None:
        return (
            jsonify({"message": "Actividad no encontrada o no pertenece al usuario."}),
            404,
        )
    try:
        update = parse_activity_update(request.get_json(silent=True))
        update_activity(activity, update)
    except PlanningValidationError as e:
        return jsonify({"message": str(e)}), 400
    return jsonify({"message": "Actividad actualizada exitosamente.", "actividad": activity.to_dict()})


def plan_delete(user_id: int, activity_id: int):
    activity = get_user_activity(user_id, activity_id)
    if activity is None:
        return (
            jsonify({"message": "Actividad no encontrada o no pertenece al usuario."}),
            404,
        )
    delete_activity(activity)
    return "", 204


@planning_bp.route("/activity-types")
@login_required
def list_activity_types():
    types = ActivityType.query.order_by(ActivityType.name).all()
    return jsonify([t.to_dict() for t in types])


@planning_bp.route("/activities")
@login_required
def my_activities():
    """Actividades propias; requiere startDate y endDate"""
    return plan_list(current_user.id)


@planning_bp.route("/activities/summary")
@login_required
def my_summary():
    return plan_summary(current_user.id)


@planning_bp.route("/activities", methods=["POST"])
@login_required
def add_activity():
    return plan_create(current_user.id)


@planning_bp.route("/activities/<int:activity_id>", methods=["PUT"])
@login_required
def edit_activity(activity_id):
    return plan_update(current_user.id, activity_id)


@planning_bp.route("/activities/<int:activity_id>", methods=["DELETE"])
@login_required
def remove_activity(activity_id):
    return plan_delete(current_user.id, activity_id)
