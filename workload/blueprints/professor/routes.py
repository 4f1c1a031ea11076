"""
Professor routes: solicitudes de cambio de categoria del usuario autenticado.
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from workload.db_models import CategoryChangeRequest
from workload.services.category_requests import (
    CategoryRequestError,
    create_category_request,
    parse_publications,
)

logger = logging.getLogger(__name__)

professor_bp = Blueprint("professor", __name__)


@professor_bp.route("/category-requests", methods=["POST"])
@login_required
def submit_category_request():
    """
    Crea una solicitud (multipart/form-data).

    Campos:
        categoria_solicitada_id: categoria deseada
        documentos: archivos PDF/DOC/DOCX (max 10, 10 MB c/u)
        publicaciones: lista JSON [{"url": ..., "descripcion": ...}]
    """
    if request.is_json:
        data = request.get_json(silent=True) or {}
        files = []
    else:
        data = request.form
        files = request.files.getlist("documentos")

    try:
        publications = parse_publications(data.get("publicaciones"))
        request_row = create_category_request(
            current_user, data.get("categoria_solicitada_id"), files, publications
        )
    except CategoryRequestError as e:
        return jsonify({"message": str(e)}), 400

    return (
        jsonify(
            {
                "message": "Solicitud de cambio de categoría enviada exitosamente.",
                "solicitud": request_row.to_dict(detail=True),
            }
        ),
        201,
    )


@professor_bp.route("/category-requests")
@login_required
def my_category_requests():
    requests_ = (
        CategoryChangeRequest.query.filter_by(user_id=current_user.id)
        .order_by(CategoryChangeRequest.requested_at.desc(), CategoryChangeRequest.id.desc())
        .all()
    )
    return jsonify([r.to_dict() for r in requests_])
