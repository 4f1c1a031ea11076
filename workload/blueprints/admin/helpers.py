"""Shared helpers and permission logic for the Admin blueprint.

This module intentionally contains **no routes** to avoid circular imports.
Route modules (users/roles/departments/category_requests/planning) and the
other admin-only blueprints import from here.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from functools import wraps
from typing import Any

from flask import jsonify, request
from flask_login import current_user

from workload.db_models import (
    Category,
    Department,
    Role,
    User,
    db,
    validate_email,
    validate_username,
)

_UNSET: Any = object()


def admin_required(f):
    """Decorator: solo usuarios aprobados con rol Administrador"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({"message": "Token no proporcionado o inválido."}), 401
        if not current_user.is_admin:
            return (
                jsonify({"message": "Acceso denegado. Requiere rol de Administrador."}),
                403,
            )
        return f(*args, **kwargs)

    return decorated_function


def page_args(default_per_page: int = 20) -> tuple[int, int]:
    page = request.args.get("page", type=int, default=1)
    per_page = request.args.get("limit", type=int, default=default_per_page)
    return max(page, 1), max(1, min(per_page, 100))


def paginated_response(pagination, key: str):
    return jsonify(
        {
            key: [item.to_dict() for item in pagination.items],
            "total": pagination.total,
            "pagina": pagination.page,
            "total_paginas": pagination.pages,
        }
    )


def get_user_or_none(user_id: int) -> User | None:
    return db.session.get(User, user_id)


# =============================================================================
# USER UPDATE
# =============================================================================


@dataclass
class UserUpdate:
    """Campos editables de un usuario; _UNSET = no enviado."""

    username: Any = _UNSET
    email: Any = _UNSET
    first_name: Any = _UNSET
    last_name: Any = _UNSET
    role_id: Any = _UNSET
    category_id: Any = _UNSET
    department_id: Any = _UNSET
    is_approved: Any = _UNSET

    def provided(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not _UNSET
        }


def _optional_id(value, label: str):
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise ValueError(f"{label} debe ser un número entero.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{label} debe ser un número entero.")


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "si", "sí")
    return bool(value)


def parse_user_update(data: dict | None, user: User) -> UserUpdate:
    """
    Valida el JSON de actualizacion de un usuario.

    Raises:
        ValueError: mensaje de validacion para el cliente
    """
    data = data or {}
    update = UserUpdate()

    if "nombre_usuario" in data:
        username = (data.get("nombre_usuario") or "").strip()
        err = validate_username(username)
        if err:
            raise ValueError(err)
        existing = User.query.filter(User.username == username, User.id != user.id).first()
        if existing:
            raise ValueError("El nombre de usuario ya está en uso.")
        update.username = username

    if "email" in data:
        email = (data.get("email") or "").strip().lower() or None
        err = validate_email(email)
        if err:
            raise ValueError(err)
        if email and User.query.filter(User.email == email, User.id != user.id).first():
            raise ValueError("El correo electrónico ya está registrado.")
        update.email = email

    if "nombre" in data:
        update.first_name = (data.get("nombre") or "").strip() or None
    if "apellidos" in data:
        update.last_name = (data.get("apellidos") or "").strip() or None

    if "rol_id" in data:
        role_id = _optional_id(data.get("rol_id"), "rol_id")
        if role_id is None or db.session.get(Role, role_id) is None:
            raise ValueError("El rol indicado no existe.")
        update.role_id = role_id

    if "categoria_id" in data:
        category_id = _optional_id(data.get("categoria_id"), "categoria_id")
        if category_id is not None and db.session.get(Category, category_id) is None:
            raise ValueError(f"La categoría con ID {category_id} no existe.")
        update.category_id = category_id

    if "departamento_id" in data:
        department_id = _optional_id(data.get("departamento_id"), "departamento_id")
        if department_id is not None and db.session.get(Department, department_id) is None:
            raise ValueError(f"El departamento con ID {department_id} no existe.")
        update.department_id = department_id

    if "aprobado" in data:
        update.is_approved = _as_bool(data.get("aprobado"))

    if not update.provided():
        raise ValueError("No se enviaron campos válidos para actualizar.")
    return update


def apply_user_update(user: User, update: UserUpdate) -> None:
    for name, value in update.provided().items():
        setattr(user, name, value)
