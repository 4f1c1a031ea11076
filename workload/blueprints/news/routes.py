"""
News routes. Anonymous callers only see published public news; any
authenticated user sees all published news; admins see everything.
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from workload.blueprints.admin.helpers import admin_required, page_args, paginated_response
from workload.db_models import News, db
from workload.services.uploads import UploadError, image_to_data_uri

logger = logging.getLogger(__name__)

news_bp = Blueprint("news", __name__)


def _as_bool(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "on", "si", "sí")
    return bool(value)


def _visible_news_stmt():
    stmt = db.select(News)
    if current_user.is_authenticated and current_user.is_admin:
        if request.args.get("all") in ("1", "true"):
            return stmt
    stmt = stmt.where(News.is_published.is_(True))
    if not current_user.is_authenticated:
        stmt = stmt.where(News.is_public.is_(True))
    return stmt


def _form_data():
    if request.is_json:
        return request.get_json(silent=True) or {}, None
    return request.form, request.files.get("imagen")


@news_bp.route("/")
def list_news():
    page, per_page = page_args(default_per_page=10)
    pagination = db.paginate(
        _visible_news_stmt().order_by(News.created_at.desc(), News.id.desc()),
        page=page,
        per_page=per_page,
        error_out=False,
    )
    return paginated_response(pagination, "noticias")


@news_bp.route("/<int:news_id>")
def news_detail(news_id):
    news = db.session.scalars(_visible_news_stmt().where(News.id == news_id)).first()
    if news is None:
        return jsonify({"message": "Noticia no encontrada."}), 404
    return jsonify(news.to_dict())


@news_bp.route("/", methods=["POST"])
@login_required
@admin_required
def create_news():
    data, image = _form_data()
    title = (data.get("titulo") or "").strip()
    content = (data.get("contenido") or "").strip()
    if not title or not content:
        return jsonify({"message": "titulo y contenido son requeridos."}), 400
    if len(title) > 255:
        return jsonify({"message": "El título no puede superar 255 caracteres."}), 400

    news = News(
        title=title,
        content=content,
        is_public=_as_bool(data.get("ispublica"), True),
        is_published=_as_bool(data.get("publicada"), True),
        created_by_id=current_user.id,
    )
    if image and image.filename:
        try:
            news.image_base64 = image_to_data_uri(image)
        except UploadError as e:
            return jsonify({"message": str(e)}), 400

    db.session.add(news)
    db.session.commit()
    logger.info("News %s created by admin %s", news.id, current_user.id)
    return jsonify(news.to_dict()), 201


@news_bp.route("/<int:news_id>", methods=["PUT"])
@login_required
@admin_required
def update_news(news_id):
    news = db.session.get(News, news_id)
    if news is None:
        return jsonify({"message": "Noticia no encontrada."}), 404

    data, image = _form_data()
    if "titulo" in data:
        title = (data.get("titulo") or "").strip()
        if not title:
            return jsonify({"message": "El título no puede estar vacío."}), 400
        news.title = title[:255]
    if "contenido" in data:
        content = (data.get("contenido") or "").strip()
        if not content:
            return jsonify({"message": "El contenido no puede estar vacío."}), 400
        news.content = content
    if "ispublica" in data:
        news.is_public = _as_bool(data.get("ispublica"), news.is_public)
    if "publicada" in data:
        news.is_published = _as_bool(data.get("publicada"), news.is_published)
    if _as_bool(data.get("eliminar_imagen"), False):
        news.image_base64 = None
    if image and image.filename:
        try:
            news.image_base64 = image_to_data_uri(image)
        except UploadError as e:
            return jsonify({"message": str(e)}), 400

    db.session.commit()
    return jsonify(news.to_dict())


@news_bp.route("/<int:news_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_news(news_id):
    news = db.session.get(News, news_id)
    if news is None:
        return jsonify({"message": "Noticia no encontrada."}), 404
    db.session.delete(news)
    db.session.commit()
    return jsonify({"message": "Noticia eliminada exitosamente."})
