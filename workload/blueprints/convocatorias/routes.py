"""Convocatoria routes."""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from workload.blueprints.admin.helpers import admin_required, page_args, paginated_response
from workload.db_models import Convocatoria, db

convocatoria_bp = Blueprint("convocatorias", __name__)


def _visible_stmt():
    stmt = db.select(Convocatoria)
    if not current_user.is_authenticated:
        stmt = stmt.where(Convocatoria.is_public.is_(True))
    return stmt


@convocatoria_bp.route("/")
def list_convocatorias():
    page, per_page = page_args(default_per_page=10)
    pagination = db.paginate(
        _visible_stmt().order_by(Convocatoria.created_at.desc(), Convocatoria.id.desc()),
        page=page,
        per_page=per_page,
        error_out=False,
    )
    return paginated_response(pagination, "convocatorias")


@convocatoria_bp.route("/<int:convocatoria_id>")
def convocatoria_detail(convocatoria_id):
    convocatoria = db.session.scalars(
        _visible_stmt().where(Convocatoria.id == convocatoria_id)
    ).first()
    if convocatoria is None:
        return jsonify({"message": "Convocatoria no encontrada."}), 404
    return jsonify(convocatoria.to_dict())


@convocatoria_bp.route("/", methods=["POST"])
@login_required
@admin_required
def create_convocatoria():
    data = request.get_json(silent=True) or {}
    title = (data.get("titulo") or "").strip()
    if not title:
        return jsonify({"message": "El título de la convocatoria es requerido."}), 400

    convocatoria = Convocatoria(
        title=title[:255],
        description=data.get("descripcion"),
        is_public=bool(data.get("publico", True)),
    )
    db.session.add(convocatoria)
    db.session.commit()
    return jsonify(convocatoria.to_dict()), 201


@convocatoria_bp.route("/<int:convocatoria_id>", methods=["PUT"])
@login_required
@admin_required
def update_convocatoria(convocatoria_id):
    convocatoria = db.session.get(Convocatoria, convocatoria_id)
    if convocatoria is None:
        return jsonify({"message": "Convocatoria no encontrada."}), 404

    data = request.get_json(silent=True) or {}
    if "titulo" in data:
        title = (data.get("titulo") or "").strip()
        if not title:
            return jsonify({"message": "El título no puede estar vacío."}), 400
        convocatoria.title = title[:255]
    if "descripcion" in data:
        convocatoria.description = data.get("descripcion")
    if "publico" in data:
        convocatoria.is_public = bool(data.get("publico"))

    db.session.commit()
    return jsonify(convocatoria.to_dict())


@convocatoria_bp.route("/<int:convocatoria_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_convocatoria(convocatoria_id):
    convocatoria = db.session.get(Convocatoria, convocatoria_id)
    if convocatoria is None:
        return jsonify({"message": "Convocatoria no encontrada."}), 404
    db.session.delete(convocatoria)
    db.session.commit()
    return jsonify({"message": "Convocatoria eliminada exitosamente."})
