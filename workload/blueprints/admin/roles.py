"""Admin role management routes."""

from __future__ import annotations

import logging

from flask import jsonify, request
from flask_login import current_user, login_required

from workload.db_models import ROLE_ADMIN, Role, db

from . import admin_bp
from .helpers import admin_required

logger = logging.getLogger(__name__)


def _validate_role_form(data: dict) -> str | None:
    """Return error message if invalid, else None."""
    name = (data.get("nombre") or "").strip()
    if not name:
        return "El nombre del rol es requerido."
    if len(name) > 50:
        return "El nombre del rol no puede superar 50 caracteres."
    return None


@admin_bp.route("/roles")
@login_required
@admin_required
def list_roles():
    roles = Role.query.order_by(Role.id).all()
    return jsonify([r.to_dict() for r in roles])


@admin_bp.route("/roles", methods=["POST"])
@login_required
@admin_required
def create_role():
    data = request.get_json(silent=True) or {}
    err = _validate_role_form(data)
    if err:
        return jsonify({"message": err}), 400

    name = data["nombre"].strip()
    if Role.query.filter(db.func.lower(Role.name) == name.lower()).first():
        return jsonify({"message": f"El rol '{name}' ya existe."}), 409

    role = Role(name=name, description=(data.get("descripcion") or "").strip() or None)
    db.session.add(role)
    db.session.commit()
    logger.info("Role %s created by admin %s", role.name, current_user.id)
    return jsonify({"message": "Rol creado exitosamente.", "rol": role.to_dict()}), 201


@admin_bp.route("/roles/<int:role_id>", methods=["PUT"])
@login_required
@admin_required
def update_role(role_id):
    role = db.session.get(Role, role_id)
    if role is None:
        return jsonify({"message": "Rol no encontrado."}), 404

    data = request.get_json(silent=True) or {}
    err = _validate_role_form(data)
    if err:
        return jsonify({"message": err}), 400

    name = data["nombre"].strip()
    if role.name == ROLE_ADMIN and name != ROLE_ADMIN:
        return jsonify({"message": f"No se puede renombrar el rol '{ROLE_ADMIN}'."}), 403
    duplicate = Role.query.filter(
        db.func.lower(Role.name) == name.lower(), Role.id != role.id
    ).first()
    if duplicate:
        return jsonify({"message": f"El rol '{name}' ya existe."}), 409

    role.name = name
    if "descripcion" in data:
        role.description = (data.get("descripcion") or "").strip() or None
    db.session.commit()
    return jsonify({"message": "Rol actualizado exitosamente.", "rol": role.to_dict()})


@admin_bp.route("/roles/<int:role_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_role(role_id):
    role = db.session.get(Role, role_id)
    if role is None:
        return jsonify({"message": "Rol no encontrado."}), 404
    if role.name == ROLE_ADMIN:
        return jsonify({"message": f"No se puede eliminar el rol '{ROLE_ADMIN}'."}), 403
    if role.in_use:
        return (
            jsonify({"message": "No se puede eliminar el rol porque hay usuarios asignados a él."}),
            409,
        )

    db.session.delete(role)
    db.session.commit()
    logger.info("Role %s deleted by admin %s", role_id, current_user.id)
    return jsonify({"message": "Rol eliminado exitosamente."})
