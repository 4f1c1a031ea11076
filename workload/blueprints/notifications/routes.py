"""Notification routes for the authenticated user."""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from workload.blueprints.admin.helpers import page_args, paginated_response
from workload.services.notifications import (
    list_notifications,
    mark_all_as_read,
    mark_as_read,
    unread_count,
)

notification_bp = Blueprint("notifications", __name__)


@notification_bp.route("/")
@login_required
def my_notifications():
    page, per_page = page_args()
    unread_only = request.args.get("unread") in ("1", "true", "True")
    pagination = list_notifications(current_user.id, page, per_page, unread_only)
    return paginated_response(pagination, "notificaciones")


@notification_bp.route("/unread-count")
@login_required
def my_unread_count():
    return jsonify({"no_leidas": unread_count(current_user.id)})


@notification_bp.route("/<int:notification_id>/read", methods=["PUT"])
@login_required
def read_notification(notification_id):
    if not mark_as_read(current_user.id, notification_id):
        return (
            jsonify({"message": "Notificación no encontrada o ya estaba leída."}),
            404,
        )
    return jsonify({"message": "Notificación marcada como leída."})


@notification_bp.route("/read-all", methods=["PUT"])
@login_required
def read_all_notifications():
    updated = mark_all_as_read(current_user.id)
    return jsonify({"message": "Notificaciones marcadas como leídas.", "actualizadas": updated})
