"""User notifications.

Notification failures are logged and never abort the workflow that triggered
them (approving a user, reviewing a request).
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from workload.db_models import Notification, NotificationType, RequestStatus, db

logger = logging.getLogger(__name__)

CATEGORY_REQUESTS_LINK = "/professor/category-requests"


def create_notification(
    user_id: int,
    message: str,
    type_: str = NotificationType.GENERAL.value,
    link: str | None = None,
) -> Notification | None:
    """Guarda una notificacion; devuelve None si no se pudo guardar."""
    try:
        notification = Notification(user_id=user_id, message=message, type=type_, link=link)
        db.session.add(notification)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not create notification for user %s", user_id)
        return None
    logger.info("Notification %s sent to user %s", type_, user_id)
    return notification


def notify_user_approved(user_id: int) -> Notification | None:
    return create_notification(
        user_id,
        "¡Tu cuenta ha sido aprobada! Ya puedes iniciar sesión.",
        NotificationType.USER_APPROVED.value,
    )


def notify_category_request_reviewed(
    user_id: int, request_id: int, status: str, notes: str | None = None
) -> Notification | None:
    message = f"Tu solicitud de cambio de categoría (ID: {request_id}) ha sido {status}."
    if status == RequestStatus.REJECTED.value and notes:
        message += f" Observaciones: {notes}"
    return create_notification(
        user_id,
        message,
        NotificationType.REQUEST_REVIEWED.value,
        CATEGORY_REQUESTS_LINK,
    )


def list_notifications(user_id: int, page: int = 1, per_page: int = 20, unread_only: bool = False):
    stmt = db.select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    return db.paginate(
        stmt.order_by(Notification.created_at.desc(), Notification.id.desc()),
        page=page,
        per_page=per_page,
        error_out=False,
    )


def unread_count(user_id: int) -> int:
    return Notification.query.filter_by(user_id=user_id, is_read=False).count()


def mark_as_read(user_id: int, notification_id: int) -> bool:
    """False si no existe, no es del usuario o ya estaba leida."""
    notification = Notification.query.filter_by(
        id=notification_id, user_id=user_id, is_read=False
    ).first()
    if notification is None:
        return False
    notification.is_read = True
    db.session.commit()
    return True


def mark_all_as_read(user_id: int) -> int:
    updated = Notification.query.filter_by(user_id=user_id, is_read=False).update(
        {"is_read": True}, synchronize_session=False
    )
    db.session.commit()
    return updated
