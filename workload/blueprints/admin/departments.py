"""Admin department routes (used by the teaching-overload report filter)."""

from __future__ import annotations

from flask import jsonify, request
from flask_login import login_required

from workload.db_models import Department, db

from . import admin_bp
from .helpers import admin_required


@admin_bp.route("/departments")
@login_required
@admin_required
def list_departments():
    departments = Department.query.filter_by(is_active=True).order_by(Department.name).all()
    return jsonify([d.to_dict() for d in departments])


@admin_bp.route("/departments", methods=["POST"])
@login_required
@admin_required
def create_department():
    data = request.get_json(silent=True) or {}
    name = (data.get("nombre") or "").strip()
    code = (data.get("codigo") or "").strip() or None
    if not name:
        return jsonify({"message": "El nombre del departamento es requerido."}), 400
    if Department.query.filter_by(name=name).first():
        return jsonify({"message": f"El departamento '{name}' ya existe."}), 409
    if code and Department.query.filter_by(code=code).first():
        return jsonify({"message": f"El código '{code}' ya está en uso."}), 409

    department = Department(name=name, code=code)
    db.session.add(department)
    db.session.commit()
    return jsonify(department.to_dict()), 201
