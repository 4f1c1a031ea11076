"""Admin review of category-change requests."""

from __future__ import annotations

import logging

from flask import jsonify, request
from flask_login import current_user, login_required

from workload.db_models import CategoryChangeRequest, RequestStatus, db
from workload.services.category_requests import (
    CategoryRequestError,
    RequestAlreadyReviewedError,
    review_category_request,
)

from . import admin_bp
from .helpers import admin_required

logger = logging.getLogger(__name__)


@admin_bp.route("/category-requests/pending")
@login_required
@admin_required
def pending_category_requests():
    requests_ = (
        CategoryChangeRequest.query.filter_by(status=RequestStatus.PENDING.value)
        .order_by(CategoryChangeRequest.requested_at.asc(), CategoryChangeRequest.id.asc())
        .all()
    )
    return jsonify([r.to_dict() for r in requests_])


@admin_bp.route("/category-requests/<int:request_id>")
@login_required
@admin_required
def category_request_detail(request_id):
    """Detalle con documentos y publicaciones"""
    request_row = db.session.get(CategoryChangeRequest, request_id)
    if request_row is None:
        return jsonify({"message": "Solicitud no encontrada."}), 404
    return jsonify(request_row.to_dict(detail=True))


@admin_bp.route("/category-requests/<int:request_id>/review", methods=["PUT"])
@login_required
@admin_required
def review_request(request_id):
    request_row = db.session.get(CategoryChangeRequest, request_id)
    if request_row is None:
        return jsonify({"message": "Solicitud no encontrada."}), 404

    data = request.get_json(silent=True) or {}
    try:
        review_category_request(
            request_row, data.get("estado"), data.get("observaciones"), current_user
        )
    except RequestAlreadyReviewedError as e:
        return jsonify({"message": str(e)}), 409
    except CategoryRequestError as e:
        return jsonify({"message": str(e)}), 400

    return jsonify(
        {
            "message": f"Solicitud {request_row.status.lower()} exitosamente.",
            "solicitud": request_row.to_dict(),
        }
    )
