"""Admin user management routes."""

from __future__ import annotations

import logging
from datetime import datetime

from flask import jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError

from workload.db_models import User, db
from workload.services.notifications import notify_user_approved

from . import admin_bp
from .helpers import admin_required, apply_user_update, get_user_or_none, parse_user_update

logger = logging.getLogger(__name__)


@admin_bp.route("/pending-registrations")
@login_required
@admin_required
def pending_registrations():
    """Usuarios registrados pendientes de aprobacion"""
    users = (
        User.query.filter_by(is_approved=False)
        .order_by(User.created_at.asc(), User.id.asc())
        .all()
    )
    return jsonify([u.to_dict() for u in users])


@admin_bp.route("/users/<int:user_id>/approve", methods=["PUT", "PATCH"])
@login_required
@admin_required
def approve_user(user_id):
    user = get_user_or_none(user_id)
    if user is None:
        return jsonify({"message": "Usuario no encontrado."}), 404
    if user.is_approved:
        return jsonify({"message": "El usuario ya está aprobado."}), 400

    user.is_approved = True
    user.approved_at = datetime.utcnow()
    db.session.commit()
    logger.info("User %s approved by admin %s", user.id, current_user.id)

    notify_user_approved(user.id)
    return jsonify({"message": "Usuario aprobado exitosamente.", "user": user.to_dict()})


@admin_bp.route("/users/<int:user_id>/reject", methods=["DELETE"])
@login_required
@admin_required
def reject_user(user_id):
    """Rechaza (elimina) un registro pendiente"""
    user = get_user_or_none(user_id)
    if user is None:
        return jsonify({"message": "Usuario no encontrado."}), 404
    if user.is_approved:
        return (
            jsonify({"message": "No se puede rechazar un usuario que ya está aprobado."}),
            400,
        )

    db.session.delete(user)
    db.session.commit()
    logger.info("Registration %s rejected by admin %s", user_id, current_user.id)
    return jsonify({"message": "Usuario rechazado (eliminado) exitosamente."})


@admin_bp.route("/users")
@login_required
@admin_required
def list_users():
    """Lista de usuarios con filtros opcionales (q, roleId, categoryId)"""
    query = User.query
    q = (request.args.get("q") or "").strip()
    if q:
        pattern = f"%{q}%"
        query = query.filter(
            db.or_(
                User.username.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
            )
        )
    role_id = request.args.get("roleId", type=int)
    if role_id:
        query = query.filter(User.role_id == role_id)
    category_id = request.args.get("categoryId", type=int)
    if category_id:
        query = query.filter(User.category_id == category_id)

    users = query.order_by(User.last_name, User.first_name, User.id).all()
    return jsonify([u.to_dict() for u in users])


@admin_bp.route("/members-paid")
@login_required
@admin_required
def members_paid():
    """Miembros de la sociedad con la cotizacion al dia"""
    users = (
        User.query.filter_by(society_member=True, paid_dues=True)
        .order_by(User.last_name, User.first_name, User.id)
        .all()
    )
    return jsonify([u.to_dict() for u in users])


@admin_bp.route("/users/<int:user_id>")
@login_required
@admin_required
def get_user(user_id):
    user = get_user_or_none(user_id)
    if user is None:
        return jsonify({"message": "Usuario no encontrado."}), 404
    data = user.to_dict()
    data["solicitudes_categoria"] = [r.to_dict() for r in user.category_requests]
    return jsonify(data)


@admin_bp.route("/users/<int:user_id>", methods=["PUT"])
@login_required
@admin_required
def update_user(user_id):
    user = get_user_or_none(user_id)
    if user is None:
        return jsonify({"message": "Usuario no encontrado."}), 404

    try:
        update = parse_user_update(request.get_json(silent=True), user)
    except ValueError as e:
        return jsonify({"message": str(e)}), 400

    was_approved = user.is_approved
    apply_user_update(user, update)
    if user.is_approved and not was_approved:
        user.approved_at = datetime.utcnow()
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"message": "El nombre de usuario o correo ya existe."}), 409

    logger.info(
        "User %s updated by admin %s (%s)",
        user.id,
        current_user.id,
        ", ".join(sorted(update.provided())),
    )
    if user.is_approved and not was_approved:
        notify_user_approved(user.id)
    return jsonify({"message": "Usuario actualizado exitosamente.", "user": user.to_dict()})


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_user(user_id):
    if user_id == current_user.id:
        return jsonify({"message": "No puedes eliminar tu propia cuenta."}), 403
    user = get_user_or_none(user_id)
    if user is None:
        return jsonify({"message": "Usuario no encontrado."}), 404

    db.session.delete(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return (
            jsonify({"message": "No se puede eliminar el usuario: tiene registros asociados."}),
            409,
        )
    logger.info("User %s deleted by admin %s", user_id, current_user.id)
    return jsonify({"message": "Usuario eliminado exitosamente."})


@admin_bp.route("/users/<int:user_id>/cotizar", methods=["PATCH"])
@login_required
@admin_required
def toggle_dues(user_id):
    """Invierte el estado de cotizacion del usuario"""
    user = get_user_or_none(user_id)
    if user is None:
        return jsonify({"message": "Usuario no encontrado."}), 404
    user.paid_dues = not user.paid_dues
    db.session.commit()
    return jsonify(
        {
            "message": "Estado de cotización actualizado.",
            "user": {"id": user.id, "cotizo": user.paid_dues, "miembro_sociedad": user.society_member},
        }
    )


@admin_bp.route("/users/<int:user_id>/miembro-sociedad", methods=["PATCH"])
@login_required
@admin_required
def grant_society_membership(user_id):
    user = get_user_or_none(user_id)
    if user is None:
        return jsonify({"message": "Usuario no encontrado."}), 404
    if user.society_member:
        return jsonify({"message": "El usuario ya es miembro de la sociedad."}), 400
    user.society_member = True
    db.session.commit()
    logger.info("User %s made society member by admin %s", user.id, current_user.id)
    return jsonify({"message": "Usuario agregado como miembro de la sociedad.", "user": user.to_dict()})
