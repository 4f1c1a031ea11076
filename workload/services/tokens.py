"""Signed bearer tokens for the JSON API.

Tokens carry the user id and role and are verified with the application's
SECRET_KEY; nothing is stored server-side.
"""

from __future__ import annotations

import logging

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

logger = logging.getLogger(__name__)

TOKEN_SALT = "workload-auth-token"
DEFAULT_MAX_AGE = 8 * 60 * 60  # 8 horas


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(user) -> str:
    return _serializer().dumps(
        {"id": user.id, "rol_id": user.role_id, "nombre_usuario": user.username}
    )


def load_token(token: str) -> dict | None:
    """Return the token payload, or None if it is invalid or expired."""
    max_age = current_app.config.get("TOKEN_MAX_AGE", DEFAULT_MAX_AGE)
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        logger.info("Rejected expired token")
        return None
    except BadSignature:
        logger.warning("Rejected token with bad signature")
        return None
    if not isinstance(payload, dict) or "id" not in payload:
        return None
    return payload


def token_from_header(header_value: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not header_value:
        return None
    scheme, _, token = header_value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
