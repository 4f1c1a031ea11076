"""Flask extensions.

Keeping extensions in a dedicated module avoids circular imports and makes the
application factory cleaner.
"""

from flask import jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate

from workload.db_models import db, User
from workload.services.tokens import load_token, token_from_header


login_manager = LoginManager()
migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per minute"],
    storage_uri="memory://",
)


@login_manager.user_loader
def load_user(user_id: str):
    # Flask-Login passes user_id as a string
    return db.session.get(User, int(user_id))


@login_manager.request_loader
def load_user_from_request(req):
    """Resuelve el usuario a partir de ``Authorization: Bearer <token>``."""
    token = token_from_header(req.headers.get("Authorization"))
    if not token:
        return None
    payload = load_token(token)
    if payload is None:
        return None
    user = db.session.get(User, payload["id"])
    # Cuentas pendientes de aprobacion no pueden usar la API
    if user is None or not user.is_approved:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized_api():
    """Respuesta JSON 401 para peticiones sin token valido."""
    return jsonify({"message": "Token no proporcionado o inválido."}), 401
