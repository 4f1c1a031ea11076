"""
Category routes: categorias docentes y su norma semanal de horas.
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from workload.blueprints.admin.helpers import admin_required
from workload.db_models import Category, db
from workload.workload_calculator import WorkloadError, to_decimal

logger = logging.getLogger(__name__)

category_bp = Blueprint("categories", __name__)


def _validate_category_form(data: dict, partial: bool = False) -> str | None:
    """Return error message if invalid, else None."""
    if not partial or "nombre" in data:
        name = (data.get("nombre") or "").strip()
        if not name:
            return "El nombre de la categoría es requerido."
        if len(name) > 100:
            return "El nombre de la categoría no puede superar 100 caracteres."
    if not partial or "horas_norma_semanal" in data:
        try:
            norm = to_decimal(data.get("horas_norma_semanal"))
        except WorkloadError:
            return "horas_norma_semanal debe ser un número."
        if norm <= 0:
            return "horas_norma_semanal debe ser mayor que 0."
        if norm >= 10000:
            return "horas_norma_semanal es demasiado grande."
    return None


@category_bp.route("/")
def list_categories():
    categories = Category.query.order_by(Category.name).all()
    return jsonify([c.to_dict() for c in categories])


@category_bp.route("/<int:category_id>")
def get_category(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        return jsonify({"message": "Categoría no encontrada."}), 404
    return jsonify(category.to_dict())


@category_bp.route("/", methods=["POST"])
@login_required
@admin_required
def create_category():
    data = request.get_json(silent=True) or {}
    err = _validate_category_form(data)
    if err:
        return jsonify({"message": err}), 400

    name = data["nombre"].strip()
    if Category.query.filter(db.func.lower(Category.name) == name.lower()).first():
        return jsonify({"message": f"La categoría '{name}' ya existe."}), 409

    category = Category(
        name=name,
        weekly_hour_norm=to_decimal(data["horas_norma_semanal"]),
        description=(data.get("descripcion") or "").strip() or None,
    )
    db.session.add(category)
    db.session.commit()
    logger.info("Category %s created by admin %s", category.name, current_user.id)
    return jsonify(category.to_dict()), 201


@category_bp.route("/<int:category_id>", methods=["PUT"])
@login_required
@admin_required
def update_category(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        return jsonify({"message": "Categoría no encontrada."}), 404

    data = request.get_json(silent=True) or {}
    err = _validate_category_form(data, partial=True)
    if err:
        return jsonify({"message": err}), 400

    if "nombre" in data:
        name = data["nombre"].strip()
        duplicate = Category.query.filter(
            db.func.lower(Category.name) == name.lower(), Category.id != category.id
        ).first()
        if duplicate:
            return jsonify({"message": f"La categoría '{name}' ya existe."}), 409
        category.name = name
    if "horas_norma_semanal" in data:
        category.weekly_hour_norm = to_decimal(data["horas_norma_semanal"])
    if "descripcion" in data:
        category.description = (data.get("descripcion") or "").strip() or None

    db.session.commit()
    return jsonify(category.to_dict())


@category_bp.route("/<int:category_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_category(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        return jsonify({"message": "Categoría no encontrada."}), 404
    if category.in_use:
        return (
            jsonify(
                {
                    "message": "No se puede eliminar la categoría porque está asignada "
                    "a usuarios o solicitudes."
                }
            ),
            409,
        )

    db.session.delete(category)
    db.session.commit()
    logger.info("Category %s deleted by admin %s", category_id, current_user.id)
    return jsonify({"message": "Categoría eliminada exitosamente."})
