"""Activity plan service.

Validates and persists ActivityRecord rows for a user. Route handlers (own
plan and admin-on-behalf) share this module so the group/student rules are
applied the same way everywhere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from workload.db_models import ActivityRecord, ActivityType, db
from workload.workload_calculator import (
    TWO_PLACES,
    WorkloadError,
    parse_date_range,
    parse_iso_date,
    to_decimal,
)

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 500
MAX_GROUP_LENGTH = 50
# activity_records.hours es Numeric(7, 2)
MAX_HOURS = Decimal("99999.99")


class PlanningValidationError(ValueError):
    """Datos de actividad invalidos (mensaje apto para el usuario)."""


class _Unset:
    def __repr__(self):
        return "UNSET"


UNSET: Any = _Unset()


@dataclass
class ActivityInput:
    """Datos para crear una actividad."""

    activity_type_id: int
    date: date
    hours: Decimal
    group: Optional[str] = None
    student_count: Optional[int] = None
    description: Optional[str] = None


@dataclass
class ActivityUpdate:
    """Cambios parciales sobre una actividad; UNSET = campo no enviado."""

    date: Any = UNSET
    hours: Any = UNSET
    group: Any = UNSET
    student_count: Any = UNSET
    description: Any = UNSET

    def provided(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }


# =============================================================================
# FIELD PARSERS
# =============================================================================


def _parse_hours(value) -> Decimal:
    if value is None or value == "":
        raise PlanningValidationError("horas_dedicadas es requerido.")
    try:
        hours = to_decimal(value)
    except WorkloadError:
        raise PlanningValidationError("Las horas dedicadas deben ser un número.")
    if hours <= 0:
        raise PlanningValidationError("Las horas dedicadas deben ser un valor positivo.")
    if hours > MAX_HOURS:
        raise PlanningValidationError(f"Las horas dedicadas no pueden superar {MAX_HOURS}.")
    if hours != hours.quantize(TWO_PLACES):
        raise PlanningValidationError("Las horas dedicadas admiten como máximo 2 decimales.")
    return hours


def _parse_date(value) -> date:
    try:
        return parse_iso_date(value, "fecha")
    except WorkloadError as e:
        raise PlanningValidationError(str(e))


def _parse_group(value) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise PlanningValidationError("grupo_clase debe ser texto.")
    value = value.strip()
    if len(value) > MAX_GROUP_LENGTH:
        raise PlanningValidationError(
            f"grupo_clase no puede superar {MAX_GROUP_LENGTH} caracteres."
        )
    return value or None


def _parse_student_count(value) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise PlanningValidationError("cantidad_estudiantes debe ser un entero.")
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise PlanningValidationError("cantidad_estudiantes debe ser un entero.")
    if isinstance(value, float) and value != count:
        raise PlanningValidationError("cantidad_estudiantes debe ser un entero.")
    if count < 1:
        raise PlanningValidationError("cantidad_estudiantes debe ser al menos 1.")
    return count


def _parse_description(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    if len(value) > MAX_DESCRIPTION_LENGTH:
        raise PlanningValidationError(
            f"descripcion_adicional no puede superar {MAX_DESCRIPTION_LENGTH} caracteres."
        )
    return value or None


# =============================================================================
# PAYLOADS
# =============================================================================


def parse_activity_payload(data: Optional[dict]) -> ActivityInput:
    """JSON de creacion -> ActivityInput."""
    data = data or {}
    type_id = data.get("tipo_actividad_id")
    if type_id is None or isinstance(type_id, bool):
        raise PlanningValidationError("tipo_actividad_id es requerido.")
    try:
        type_id = int(type_id)
    except (TypeError, ValueError):
        raise PlanningValidationError("tipo_actividad_id debe ser un entero.")

    return ActivityInput(
        activity_type_id=type_id,
        date=_parse_date(data.get("fecha")),
        hours=_parse_hours(data.get("horas_dedicadas")),
        group=_parse_group(data.get("grupo_clase")),
        student_count=_parse_student_count(data.get("cantidad_estudiantes")),
        description=_parse_description(data.get("descripcion_adicional")),
    )


# JSON key -> (ActivityUpdate field, parser)
_UPDATE_FIELDS = {
    "fecha": ("date", _parse_date),
    "horas_dedicadas": ("hours", _parse_hours),
    "grupo_clase": ("group", _parse_group),
    "cantidad_estudiantes": ("student_count", _parse_student_count),
    "descripcion_adicional": ("description", _parse_description),
}


def parse_activity_update(data: Optional[dict]) -> ActivityUpdate:
    """JSON de actualizacion -> ActivityUpdate (al menos un campo)."""
    data = data or {}
    update = ActivityUpdate()
    for key, (attr, parser) in _UPDATE_FIELDS.items():
        if key in data:
            setattr(update, attr, parser(data[key]))
    if not update.provided():
        raise PlanningValidationError("Debe enviar al menos un campo para actualizar.")
    return update


# =============================================================================
# OPERATIONS
# =============================================================================


def _apply_type_rules(activity_type: ActivityType, group, student_count):
    """Grupo y estudiantes: obligatorios si el tipo los requiere, si no se descartan."""
    if activity_type.requires_group and not group:
        raise PlanningValidationError(
            "La actividad seleccionada requiere especificar un grupo de clase."
        )
    if activity_type.requires_student_count and not student_count:
        raise PlanningValidationError(
            "La actividad seleccionada requiere especificar la cantidad de estudiantes."
        )
    return (
        group if activity_type.requires_group else None,
        student_count if activity_type.requires_student_count else None,
    )


def create_activity(user_id: int, payload: ActivityInput) -> ActivityRecord:
    activity_type = db.session.get(ActivityType, payload.activity_type_id)
    if activity_type is None:
        raise PlanningValidationError("El tipo de actividad especificado no existe.")

    group, student_count = _apply_type_rules(
        activity_type, payload.group, payload.student_count
    )
    record = ActivityRecord(
        user_id=user_id,
        activity_type_id=activity_type.id,
        date=payload.date,
        hours=payload.hours,
        group_name=group,
        student_count=student_count,
        description=payload.description,
    )
    db.session.add(record)
    db.session.commit()
    logger.info("Activity %s created for user %s", record.id, user_id)
    return record


def update_activity(record: ActivityRecord, update: ActivityUpdate) -> ActivityRecord:
    changes = update.provided()
    group = changes.get("group", record.group_name)
    student_count = changes.get("student_count", record.student_count)
    group, student_count = _apply_type_rules(record.activity_type, group, student_count)

    if "date" in changes:
        record.date = changes["date"]
    if "hours" in changes:
        record.hours = changes["hours"]
    if "description" in changes:
        record.description = changes["description"]
    record.group_name = group
    record.student_count = student_count

    db.session.commit()
    logger.info("Activity %s updated (%s)", record.id, ", ".join(sorted(changes)))
    return record


def delete_activity(record: ActivityRecord) -> None:
    db.session.delete(record)
    db.session.commit()
    logger.info("Activity %s deleted", record.id)


def get_user_activity(user_id: int, activity_id: int) -> Optional[ActivityRecord]:
    return ActivityRecord.query.filter_by(id=activity_id, user_id=user_id).first()


def list_activities(user_id: int, start, end) -> List[ActivityRecord]:
    try:
        start, end = parse_date_range(start, end)
    except WorkloadError as e:
        raise PlanningValidationError(str(e))
    return (
        ActivityRecord.query.filter(
            ActivityRecord.user_id == user_id,
            ActivityRecord.date >= start,
            ActivityRecord.date <= end,
        )
        .order_by(ActivityRecord.date, ActivityRecord.id)
        .all()
    )
