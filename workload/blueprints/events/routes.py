"""Event routes."""

import logging
from datetime import datetime

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from workload.blueprints.admin.helpers import admin_required, page_args, paginated_response
from workload.db_models import Event, db

logger = logging.getLogger(__name__)

event_bp = Blueprint("events", __name__)


def _parse_event_date(value):
    """Acepta YYYY-MM-DD o YYYY-MM-DDTHH:MM[:SS]"""
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None


def _visible_events_stmt():
    stmt = db.select(Event)
    if not current_user.is_authenticated:
        stmt = stmt.where(Event.is_public.is_(True))
    return stmt


@event_bp.route("/")
def list_events():
    page, per_page = page_args(default_per_page=10)
    pagination = db.paginate(
        _visible_events_stmt().order_by(Event.event_date.desc(), Event.id.desc()),
        page=page,
        per_page=per_page,
        error_out=False,
    )
    return paginated_response(pagination, "eventos")


@event_bp.route("/upcoming")
def upcoming_events():
    today = datetime.combine(datetime.utcnow().date(), datetime.min.time())
    stmt = (
        _visible_events_stmt()
        .where(Event.event_date >= today)
        .order_by(Event.event_date.asc())
        .limit(request.args.get("limit", 5, type=int))
    )
    events = db.session.scalars(stmt).all()
    return jsonify([e.to_dict() for e in events])


@event_bp.route("/<int:event_id>")
def event_detail(event_id):
    event = db.session.scalars(_visible_events_stmt().where(Event.id == event_id)).first()
    if event is None:
        return jsonify({"message": "Evento no encontrado."}), 404
    return jsonify(event.to_dict())


@event_bp.route("/", methods=["POST"])
@login_required
@admin_required
def create_event():
    data = request.get_json(silent=True) or {}
    title = (data.get("titulo") or "").strip()
    event_date = _parse_event_date(data.get("fecha_evento"))
    if not title:
        return jsonify({"message": "El título del evento es requerido."}), 400
    if event_date is None:
        return jsonify({"message": "fecha_evento es requerida (formato ISO)."}), 400

    event = Event(
        title=title[:255],
        description=data.get("descripcion"),
        event_date=event_date,
        location=(data.get("ubicacion") or "").strip() or None,
        is_public=bool(data.get("publico", True)),
        created_by_id=current_user.id,
    )
    db.session.add(event)
    db.session.commit()
    logger.info("Event %s created by admin %s", event.id, current_user.id)
    return jsonify(event.to_dict()), 201


@event_bp.route("/<int:event_id>", methods=["PUT"])
@login_required
@admin_required
def update_event(event_id):
    event = db.session.get(Event, event_id)
    if event is None:
        return jsonify({"message": "Evento no encontrado."}), 404

    data = request.get_json(silent=True) or {}
    if not data:
        return jsonify({"message": "No se enviaron campos para actualizar."}), 400
    if "titulo" in data:
        title = (data.get("titulo") or "").strip()
        if not title:
            return jsonify({"message": "El título no puede estar vacío."}), 400
        event.title = title[:255]
    if "fecha_evento" in data:
        event_date = _parse_event_date(data.get("fecha_evento"))
        if event_date is None:
            return jsonify({"message": "fecha_evento inválida (formato ISO)."}), 400
        event.event_date = event_date
    if "descripcion" in data:
        event.description = data.get("descripcion")
    if "ubicacion" in data:
        event.location = (data.get("ubicacion") or "").strip() or None
    if "publico" in data:
        event.is_public = bool(data.get("publico"))

    db.session.commit()
    return jsonify(event.to_dict())


@event_bp.route("/<int:event_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_event(event_id):
    event = db.session.get(Event, event_id)
    if event is None:
        return jsonify({"message": "Evento no encontrado."}), 404
    db.session.delete(event)
    db.session.commit()
    return jsonify({"message": "Evento eliminado exitosamente."})
