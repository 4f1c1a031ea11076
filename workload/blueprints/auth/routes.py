"""
Authentication routes: registro, login (token) y perfil.
"""

import logging
from datetime import datetime, timedelta

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError

from workload.db_models import (
    Category,
    Role,
    ROLE_PROFESSOR,
    User,
    db,
    validate_email,
    validate_password,
    validate_username,
)
from workload.extensions import limiter
from workload.services.tokens import issue_token

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)

MAX_FAILED_LOGIN_ATTEMPTS = 5
ACCOUNT_LOCKOUT_MINUTES = 15


def _profile(user: User) -> dict:
    data = user.to_dict()
    data["categoria"] = user.category_name
    return data


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("5 per minute")
def register():
    """Registro de un nuevo usuario (queda pendiente de aprobacion)"""
    data = request.get_json(silent=True) or {}
    username = (data.get("nombre_usuario") or "").strip()
    password = data.get("password") or ""
    email = (data.get("email") or "").strip().lower() or None

    if not username or not password:
        return jsonify({"message": "Faltan campos requeridos (nombre_usuario, password)."}), 400

    for err in (validate_username(username), validate_password(password), validate_email(email)):
        if err:
            return jsonify({"message": err}), 400

    category_id = data.get("categoria_id")
    if category_id is not None and db.session.get(Category, category_id) is None:
        return jsonify({"message": "La categoría indicada no existe."}), 400

    role_id = data.get("rol_id")
    if role_id is not None:
        role = db.session.get(Role, role_id)
    else:
        role = Role.query.filter_by(name=ROLE_PROFESSOR).first()
    if role is None:
        return jsonify({"message": "El rol indicado no existe."}), 400

    if User.query.filter_by(username=username).first():
        return jsonify({"message": "El nombre de usuario ya está en uso."}), 409
    if email and User.query.filter_by(email=email).first():
        return jsonify({"message": "El correo electrónico ya está registrado."}), 409

    user = User(
        username=username,
        email=email,
        first_name=(data.get("nombre") or "").strip() or None,
        last_name=(data.get("apellidos") or "").strip() or None,
        role_id=role.id,
        category_id=category_id,
        is_approved=False,
    )
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"message": "El nombre de usuario o correo ya existe."}), 409

    logger.info("User %s registered, pending approval", user.username)
    return (
        jsonify(
            {
                "message": "Usuario registrado exitosamente. Pendiente de aprobación por un administrador.",
                "user": {
                    "id": user.id,
                    "nombre_usuario": user.username,
                    "email": user.email,
                    "rol_id": user.role_id,
                },
            }
        ),
        201,
    )


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    """Inicio de sesion: devuelve un token bearer"""
    data = request.get_json(silent=True) or {}
    username = (data.get("nombre_usuario") or "").strip()
    password = data.get("password") or ""
    if not username or not password:
        return jsonify({"message": "Nombre de usuario y contraseña son requeridos."}), 400

    user = User.query.filter_by(username=username).first()

    # Bloqueo temporal por intentos fallidos
    if user and user.locked_until and user.locked_until > datetime.utcnow():
        remaining = int((user.locked_until - datetime.utcnow()).total_seconds() / 60) + 1
        return (
            jsonify(
                {
                    "message": f"Cuenta bloqueada temporalmente por intentos fallidos. "
                    f"Intente de nuevo en {remaining} minutos."
                }
            ),
            429,
        )

    if user is None or not user.check_password(password):
        if user:
            user.failed_login_count = (user.failed_login_count or 0) + 1
            if user.failed_login_count >= MAX_FAILED_LOGIN_ATTEMPTS:
                user.locked_until = datetime.utcnow() + timedelta(minutes=ACCOUNT_LOCKOUT_MINUTES)
                user.failed_login_count = 0
                logger.warning("User %s locked after failed logins", user.username)
            db.session.commit()
        return jsonify({"message": "Credenciales inválidas."}), 401

    if not user.is_approved:
        return jsonify({"message": "Tu cuenta aún no ha sido aprobada por un administrador."}), 403

    # Reset failed login counter
    user.failed_login_count = 0
    user.locked_until = None
    db.session.commit()

    return jsonify(
        {
            "message": "Inicio de sesión exitoso.",
            "token": issue_token(user),
            "user": _profile(user),
        }
    )


@auth_bp.route("/me")
@login_required
def me():
    return jsonify({"user": _profile(current_user)})
