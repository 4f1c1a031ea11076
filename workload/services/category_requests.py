"""Category-change requests.

A request is stored together with its documents and publication links in a
single transaction; a review either approves it (moving the user to the
requested category) or rejects it, and notifies the user.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

from workload.db_models import (
    Category,
    CategoryChangeRequest,
    RequestDocument,
    RequestPublication,
    RequestStatus,
    db,
)
from workload.services.notifications import notify_category_request_reviewed
from workload.services.uploads import (
    UploadError,
    delete_stored_files,
    save_document,
    validate_documents,
)

logger = logging.getLogger(__name__)

REVIEW_STATUSES = (RequestStatus.APPROVED.value, RequestStatus.REJECTED.value)


class CategoryRequestError(ValueError):
    """Solicitud invalida (mensaje apto para el usuario)."""


class RequestAlreadyReviewedError(CategoryRequestError):
    pass


def parse_publications(raw) -> list[dict]:
    """
    Acepta una lista o su representacion JSON (campo de formulario multipart).

    Cada elemento: {"url": "...", "descripcion": "..."}.
    """
    if raw in (None, ""):
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise CategoryRequestError("publicaciones debe ser una lista JSON válida.")
    if not isinstance(raw, list):
        raise CategoryRequestError("publicaciones debe ser una lista.")

    publications = []
    for item in raw:
        if not isinstance(item, dict):
            raise CategoryRequestError("Cada publicación debe tener url y descripcion.")
        url = str(item.get("url") or "").strip()
        if not url.startswith(("http://", "https://")):
            raise CategoryRequestError(f"URL de publicación inválida: {url or '(vacía)'}")
        if len(url) > 500:
            raise CategoryRequestError("La URL de la publicación es demasiado larga.")
        description = item.get("descripcion")
        publications.append(
            {"url": url, "description": str(description).strip() if description else None}
        )
    return publications


def create_category_request(user, requested_category_id, files, publications) -> CategoryChangeRequest:
    """
    Crea la solicitud con sus documentos y publicaciones de forma atomica.

    Raises:
        CategoryRequestError: datos invalidos o ya existe una solicitud pendiente
    """
    try:
        requested_category_id = int(requested_category_id)
    except (TypeError, ValueError):
        raise CategoryRequestError("categoria_solicitada_id es requerido.")

    category = db.session.get(Category, requested_category_id)
    if category is None:
        raise CategoryRequestError("La categoría solicitada no existe.")
    if user.category_id == category.id:
        raise CategoryRequestError("Ya perteneces a la categoría solicitada.")

    pending = CategoryChangeRequest.query.filter_by(
        user_id=user.id, status=RequestStatus.PENDING.value
    ).first()
    if pending is not None:
        raise CategoryRequestError("Ya tienes una solicitud de cambio de categoría pendiente.")

    files = [f for f in (files or []) if f and f.filename]
    try:
        validate_documents(files)
    except UploadError as e:
        raise CategoryRequestError(str(e))

    stored = []
    try:
        request_row = CategoryChangeRequest(
            user_id=user.id,
            requested_category_id=category.id,
            status=RequestStatus.PENDING.value,
        )
        db.session.add(request_row)

        for file in files:
            document = save_document(file)
            stored.append(document.file_path)
            request_row.documents.append(
                RequestDocument(
                    file_name=document.file_name,
                    file_path=document.file_path,
                    mime_type=document.mime_type,
                    size_bytes=document.size_bytes,
                )
            )

        for publication in publications:
            request_row.publications.append(
                RequestPublication(url=publication["url"], description=publication["description"])
            )

        db.session.commit()
    except Exception:
        db.session.rollback()
        delete_stored_files(stored)
        raise

    logger.info(
        "Category request %s created by user %s (%d documents, %d publications)",
        request_row.id,
        user.id,
        len(stored),
        len(publications),
    )
    return request_row


def review_category_request(request_row, status: str, notes: str | None, admin) -> CategoryChangeRequest:
    """
    Aprueba o rechaza una solicitud pendiente.

    Raises:
        CategoryRequestError: estado invalido o la solicitud ya fue revisada
    """
    if status not in REVIEW_STATUSES:
        raise CategoryRequestError("Estado inválido. Use 'Aprobada' o 'Rechazada'.")
    if status == RequestStatus.REJECTED.value and not (notes or "").strip():
        raise CategoryRequestError("Se requieren observaciones para rechazar una solicitud.")
    if not request_row.is_pending:
        raise RequestAlreadyReviewedError("La solicitud ya fue revisada.")

    request_row.status = status
    request_row.admin_notes = (notes or "").strip() or None
    request_row.reviewed_at = datetime.utcnow()
    request_row.reviewed_by_id = admin.id

    if status == RequestStatus.APPROVED.value:
        request_row.user.category_id = request_row.requested_category_id

    db.session.commit()
    logger.info(
        "Category request %s %s by admin %s", request_row.id, status, admin.id
    )

    notify_category_request_reviewed(
        request_row.user_id, request_row.id, status, request_row.admin_notes
    )
    return request_row
