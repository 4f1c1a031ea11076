"""
Calculadora de carga docente.
Normas por categoria, sobrecumplimiento y sobrecarga docente (Resolucion 32/2024).

Incluye:
- Norma del periodo: norma semanal de la categoria x semanas del rango
- Agregacion de horas registradas por tipo de actividad
- Sobrecumplimiento: horas registradas - norma del periodo
- Sobrecarga docente: horas por encima del umbral mensual (114 h)
- Reparto del fondo de salario no ejecutado entre los profesores con sobrecarga

Todas las funciones son puras: trabajan sobre filas ya leidas de la base de
datos (ver workload.services.reporting) y no hacen I/O.
"""

import json
import math
import re
import unicodedata
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple


ZERO = Decimal("0")
ONE = Decimal("1")
TWO_PLACES = Decimal("0.01")
RATIO_PLACES = Decimal("0.0001")

ISO_DATE_FORMAT = "%Y-%m-%d"
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
NO_CATEGORY_LABEL = "Sin categoría"


class WorkloadError(ValueError):
    """Error de validacion del motor de carga docente."""


class InvalidRangeError(WorkloadError):
    """Fecha mal formada o rango invertido (endDate < startDate)."""


# =============================================================================
# CONFIGURACION (POLITICA)
# =============================================================================


def _default_tariffs() -> Dict[str, Decimal]:
    # Tarifa horaria (CUP/h) por categoria docente
    return {
        "Titular": Decimal("100"),
        "Auxiliar": Decimal("90"),
        "Asistente": Decimal("80"),
        "Instructor": Decimal("70"),
        "Recién Graduado": Decimal("70"),
    }


@dataclass
class WorkloadPolicy:
    """Parametros de la Resolucion 32/2024 usados por las calculadoras."""

    # 60% de 190.6 horas mensuales
    teaching_norm_hours: Decimal = Decimal("114")

    tariff_by_category: Dict[str, Decimal] = field(default_factory=_default_tariffs)
    default_tariff: Decimal = Decimal("70")

    # Clasificacion de tipos de actividad (se aplica al configurar ActivityType)
    qualifying_activity_type_patterns: Tuple[str, ...] = ("Pregrado",)
    qualifying_activity_type_names: Tuple[str, ...] = (
        "Docencia Directa de Pregrado y Posgrado",
    )
    pregrad_patterns: Tuple[str, ...] = ("Pregrado",)
    preparation_patterns: Tuple[str, ...] = ("Preparación",)

    def tariff_for(self, category: Optional[str]) -> Decimal:
        """Tarifa horaria de una categoria; tarifa por defecto si no esta en la tabla."""
        if category:
            key = _collation_key(category)
            for name, tariff in self.tariff_by_category.items():
                if _collation_key(name) == key:
                    return tariff
        return self.default_tariff


# Default policy instance
DEFAULT_POLICY = WorkloadPolicy()


def load_policy(config: Mapping) -> WorkloadPolicy:
    """
    Construye la politica a partir de la configuracion de la aplicacion.

    Claves reconocidas:
        WORKLOAD_TEACHING_NORM_HOURS: umbral mensual de docencia directa
        WORKLOAD_DEFAULT_TARIFF: tarifa para categorias fuera de la tabla
        WORKLOAD_TARIFFS: objeto JSON {"categoria": tarifa} que reemplaza la tabla

    Raises:
        WorkloadError: si algun valor no es un numero positivo
    """
    policy = WorkloadPolicy()

    norm = config.get("WORKLOAD_TEACHING_NORM_HOURS")
    if norm not in (None, ""):
        policy.teaching_norm_hours = _positive_decimal(norm, "WORKLOAD_TEACHING_NORM_HOURS")

    default_tariff = config.get("WORKLOAD_DEFAULT_TARIFF")
    if default_tariff not in (None, ""):
        policy.default_tariff = _positive_decimal(default_tariff, "WORKLOAD_DEFAULT_TARIFF")

    tariffs = config.get("WORKLOAD_TARIFFS")
    if tariffs:
        if isinstance(tariffs, str):
            try:
                tariffs = json.loads(tariffs)
            except ValueError as e:
                raise WorkloadError(f"WORKLOAD_TARIFFS no es JSON valido: {e}") from e
        if not isinstance(tariffs, Mapping):
            raise WorkloadError("WORKLOAD_TARIFFS debe ser un objeto {categoria: tarifa}")
        policy.tariff_by_category = {
            str(name): _positive_decimal(value, f"WORKLOAD_TARIFFS[{name}]")
            for name, value in tariffs.items()
        }

    return policy


def _positive_decimal(value, label: str) -> Decimal:
    try:
        number = to_decimal(value)
    except WorkloadError as e:
        raise WorkloadError(f"{label}: {e}") from e
    if number <= 0:
        raise WorkloadError(f"{label} debe ser mayor que 0")
    return number


@dataclass
class ActivityTypeFlags:
    is_direct_teaching: bool = False
    counts_as_pregrad: bool = False
    counts_as_preparation: bool = False


def classify_activity_type(name: str, policy: WorkloadPolicy = DEFAULT_POLICY) -> ActivityTypeFlags:
    """
    Deriva las banderas de un tipo de actividad a partir de su nombre.

    Solo se usa al crear/sembrar tipos de actividad; las calculadoras leen
    las banderas guardadas, nunca el nombre.
    """
    name = name or ""
    return ActivityTypeFlags(
        is_direct_teaching=(
            any(p in name for p in policy.qualifying_activity_type_patterns)
            or name in policy.qualifying_activity_type_names
        ),
        counts_as_pregrad=any(p in name for p in policy.pregrad_patterns),
        counts_as_preparation=any(p in name for p in policy.preparation_patterns),
    )


# =============================================================================
# VALORES Y FECHAS
# =============================================================================


def to_decimal(value) -> Decimal:
    """Convierte horas/montos a Decimal sin pasar por aritmetica de float."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise WorkloadError(f"Valor numerico invalido: {value!r}")
    try:
        number = Decimal(str(value).strip()) if isinstance(value, (str, float)) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise WorkloadError(f"Valor numerico invalido: {value!r}") from e
    if not number.is_finite():
        raise WorkloadError(f"Valor numerico invalido: {value!r}")
    return number


def as_number(value: Optional[Decimal], places: Decimal = TWO_PLACES) -> Optional[float]:
    """Decimal -> float redondeado (mitad hacia arriba) para JSON/exportaciones."""
    if value is None:
        return None
    return float(value.quantize(places, rounding=ROUND_HALF_UP))


def parse_iso_date(value, field_name: str = "fecha") -> date:
    """
    Lee una fecha ISO (YYYY-MM-DD). No corrige valores mal formados.

    Raises:
        InvalidRangeError: si falta la fecha o no tiene el formato esperado
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise InvalidRangeError(f"{field_name} es requerido (formato YYYY-MM-DD).")
    value = value.strip()
    # strptime acepta 2024-1-1; exigimos dos digitos en mes y dia
    if not ISO_DATE_RE.match(value):
        raise InvalidRangeError(f"{field_name} debe estar en formato YYYY-MM-DD.")
    try:
        return datetime.strptime(value, ISO_DATE_FORMAT).date()
    except ValueError as e:
        raise InvalidRangeError(
            f"{field_name} debe estar en formato YYYY-MM-DD."
        ) from e


def validate_range(start: date, end: date) -> None:
    if end < start:
        raise InvalidRangeError("endDate debe ser igual o posterior a startDate.")


def parse_date_range(start_raw, end_raw) -> Tuple[date, date]:
    start = parse_iso_date(start_raw, "startDate")
    end = parse_iso_date(end_raw, "endDate")
    validate_range(start, end)
    return start, end


def _collation_key(text: Optional[str]) -> str:
    """Clave de orden sin tildes ni mayusculas (Pérez == perez)."""
    normalized = unicodedata.normalize("NFKD", text or "")
    return "".join(c for c in normalized if not unicodedata.combining(c)).casefold()


# =============================================================================
# FILAS DE ENTRADA
# =============================================================================


@dataclass
class MemberRow:
    """Profesor aprobado con categoria (ver fetch_members_with_category)."""

    id: int
    username: str
    name: Optional[str] = None
    surname: Optional[str] = None
    role: Optional[str] = None
    category: Optional[str] = None
    weekly_norm: Optional[Decimal] = None

    @property
    def full_name(self) -> str:
        """Apellidos, Nombre"""
        return f"{self.surname or ''}, {self.name or ''}".strip(", ")

    def sort_key(self) -> Tuple[str, str, int]:
        return (_collation_key(self.surname), _collation_key(self.name), self.id)


@dataclass
class ActivityHoursRow:
    """Una actividad registrada, con las banderas de su tipo."""

    member_id: int
    activity_type_id: int
    activity_type_name: str
    date: date
    hours: Decimal
    group: Optional[str] = None
    student_count: Optional[int] = None
    is_direct_teaching: bool = False
    counts_as_pregrad: bool = False
    counts_as_preparation: bool = False


def _rows_in_range(
    rows: Iterable[ActivityHoursRow],
    start: date,
    end: date,
    member_ids: Optional[Iterable[int]] = None,
    activity_type_id: Optional[int] = None,
) -> Iterator[ActivityHoursRow]:
    wanted = set(member_ids) if member_ids is not None else None
    for row in rows:
        if not (start <= row.date <= end):
            continue
        if wanted is not None and row.member_id not in wanted:
            continue
        if activity_type_id is not None and row.activity_type_id != activity_type_id:
            continue
        yield row


# =============================================================================
# NORMA DEL PERIODO
# =============================================================================


def weeks_in_range(start: date, end: date) -> int:
    """
    Semanas que cubre el rango. Las semanas parciales cuentan completas y el
    minimo es una semana.
    """
    validate_range(start, end)
    days = (end - start).days
    return max(1, math.ceil(days / 7))


def resolve_period_norm(weekly_norm, start: date, end: date) -> Optional[Decimal]:
    """
    Norma del periodo = norma semanal x semanas del rango.

    Returns:
        None si el profesor no tiene categoria (sin norma definida)
    """
    weeks = weeks_in_range(start, end)
    if weekly_norm is None:
        return None
    return to_decimal(weekly_norm) * weeks


# =============================================================================
# AGREGACION DE ACTIVIDADES
# =============================================================================


@dataclass
class ActivityTotal:
    activity_type_id: int
    activity_type_name: str
    total_hours: Decimal = ZERO
    activity_count: int = 0

    def to_dict(self) -> Dict:
        return {
            "tipo_actividad_id": self.activity_type_id,
            "nombre_tipo_actividad": self.activity_type_name,
            "total_horas": as_number(self.total_hours),
            "cantidad_actividades": self.activity_count,
        }


def aggregate_activity_hours(
    rows: Iterable[ActivityHoursRow],
    start: date,
    end: date,
    member_ids: Optional[Iterable[int]] = None,
    activity_type_id: Optional[int] = None,
) -> List[ActivityTotal]:
    """
    Suma las horas por tipo de actividad dentro de [start, end] (ambos incluidos).

    Args:
        rows: actividades ya leidas
        member_ids: limita a esos profesores (None = todos)
        activity_type_id: limita a un tipo de actividad

    Returns:
        Lista de ActivityTotal ordenada por nombre del tipo
    """
    validate_range(start, end)
    totals: Dict[int, ActivityTotal] = {}
    for row in _rows_in_range(rows, start, end, member_ids, activity_type_id):
        total = totals.get(row.activity_type_id)
        if total is None:
            total = totals[row.activity_type_id] = ActivityTotal(
                row.activity_type_id, row.activity_type_name
            )
        total.total_hours += to_decimal(row.hours)
        total.activity_count += 1

    return sorted(
        totals.values(),
        key=lambda t: (_collation_key(t.activity_type_name), t.activity_type_id),
    )


def total_activity_hours(
    rows: Iterable[ActivityHoursRow],
    start: date,
    end: date,
    member_ids: Optional[Iterable[int]] = None,
    activity_type_id: Optional[int] = None,
) -> Decimal:
    totals = aggregate_activity_hours(rows, start, end, member_ids, activity_type_id)
    return sum((t.total_hours for t in totals), ZERO)


# =============================================================================
# SOBRECUMPLIMIENTO
# =============================================================================


@dataclass
class OvercomplianceRow:
    member: MemberRow
    weekly_norm: Decimal
    period_norm: Decimal
    registered_hours: Decimal
    surplus: Decimal

    @property
    def member_id(self) -> int:
        return self.member.id

    def to_dict(self) -> Dict:
        return {
            "usuario_id": self.member.id,
            "nombre_usuario": self.member.username,
            "nombre": self.member.name,
            "apellidos": self.member.surname,
            "nombre_rol": self.member.role,
            "nombre_categoria": self.member.category,
            "horas_norma_semanal": as_number(self.weekly_norm),
            "horas_norma_periodo": as_number(self.period_norm),
            "horas_registradas_periodo": as_number(self.registered_hours),
            "horas_sobrecumplimiento": as_number(self.surplus),
        }


def compute_overcompliance(
    members: Sequence[MemberRow],
    activity_rows: Iterable[ActivityHoursRow],
    start: date,
    end: date,
) -> List[OvercomplianceRow]:
    """
    Sobrecumplimiento por profesor = horas registradas - norma del periodo.

    Los valores negativos se conservan. Los profesores sin categoria se omiten.
    Orden: sobrecumplimiento descendente, luego apellidos y nombre.
    """
    validate_range(start, end)
    eligible = [m for m in members if m.weekly_norm is not None]

    hours_by_member: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for row in _rows_in_range(activity_rows, start, end, [m.id for m in eligible]):
        hours_by_member[row.member_id] += to_decimal(row.hours)

    results = []
    for member in eligible:
        weekly_norm = to_decimal(member.weekly_norm)
        period_norm = resolve_period_norm(weekly_norm, start, end)
        registered = hours_by_member.get(member.id, ZERO)
        results.append(
            OvercomplianceRow(
                member=member,
                weekly_norm=weekly_norm,
                period_norm=period_norm,
                registered_hours=registered,
                surplus=registered - period_norm,
            )
        )

    results.sort(key=lambda r: (-r.surplus,) + r.member.sort_key())
    return results


# =============================================================================
# SOBRECARGA DOCENTE
# =============================================================================


@dataclass
class ActivityBreakdown:
    activity_type_id: int
    activity_type_name: str
    group_count: int = 0
    activity_count: int = 0
    hours: Decimal = ZERO
    student_count: int = 0

    def to_dict(self) -> Dict:
        return {
            "tipo_actividad_id": self.activity_type_id,
            "tipo_actividad": self.activity_type_name,
            "cantidad_grupos": self.group_count,
            "cantidad_actividades": self.activity_count,
            "horas_dedicadas": as_number(self.hours),
            "cantidad_estudiantes": self.student_count,
        }


@dataclass
class OverloadRow:
    member: MemberRow
    total_hours: Decimal
    pregrad_hours: Decimal
    preparation_hours: Decimal
    overload_hours: Decimal
    activities: List[ActivityBreakdown] = field(default_factory=list)

    @property
    def member_id(self) -> int:
        return self.member.id

    def to_dict(self) -> Dict:
        return {
            "id": self.member.id,
            "nombre_usuario": self.member.username,
            "nombre": self.member.name,
            "apellidos": self.member.surname,
            "nombre_completo": self.member.full_name,
            "rol": self.member.role,
            "categoria": self.member.category,
            "total_horas": as_number(self.total_hours),
            "horas_pregrado": as_number(self.pregrad_hours),
            "horas_preparacion": as_number(self.preparation_hours),
            "horas_sobrecarga": as_number(self.overload_hours),
            "actividades": [a.to_dict() for a in self.activities],
        }


def _breakdown_by_type(rows: Sequence[ActivityHoursRow]) -> List[ActivityBreakdown]:
    by_type: Dict[int, ActivityBreakdown] = {}
    groups: Dict[int, set] = defaultdict(set)
    for row in rows:
        item = by_type.get(row.activity_type_id)
        if item is None:
            item = by_type[row.activity_type_id] = ActivityBreakdown(
                row.activity_type_id, row.activity_type_name
            )
        item.activity_count += 1
        item.hours += to_decimal(row.hours)
        item.student_count += row.student_count or 0
        if row.group:
            groups[row.activity_type_id].add(row.group.strip())

    for type_id, item in by_type.items():
        item.group_count = len(groups[type_id])

    return sorted(
        by_type.values(),
        key=lambda a: (-a.hours, _collation_key(a.activity_type_name), a.activity_type_id),
    )


def compute_teaching_overload(
    members: Sequence[MemberRow],
    activity_rows: Iterable[ActivityHoursRow],
    start: date,
    end: date,
    policy: WorkloadPolicy = DEFAULT_POLICY,
) -> List[OverloadRow]:
    """
    Sobrecarga docente segun la Resolucion 32/2024.

    Solo participan los profesores con al menos una actividad de docencia
    directa en el rango. El total suma TODAS sus actividades; pregrado y
    preparacion son subtotales informativos.

    sobrecarga = max(0, total - policy.teaching_norm_hours)
    """
    validate_range(start, end)
    by_member: Dict[int, List[ActivityHoursRow]] = defaultdict(list)
    for row in _rows_in_range(activity_rows, start, end, [m.id for m in members]):
        by_member[row.member_id].append(row)

    results = []
    for member in members:
        rows = by_member.get(member.id, [])
        if not any(r.is_direct_teaching for r in rows):
            continue

        total = sum((to_decimal(r.hours) for r in rows), ZERO)
        pregrad = sum((to_decimal(r.hours) for r in rows if r.counts_as_pregrad), ZERO)
        preparation = sum(
            (to_decimal(r.hours) for r in rows if r.counts_as_preparation), ZERO
        )
        results.append(
            OverloadRow(
                member=member,
                total_hours=total,
                pregrad_hours=pregrad,
                preparation_hours=preparation,
                overload_hours=max(ZERO, total - policy.teaching_norm_hours),
                activities=_breakdown_by_type(rows),
            )
        )

    results.sort(key=lambda r: (-r.overload_hours,) + r.member.sort_key())
    return results


# =============================================================================
# PAGO POR SOBRECARGA
# =============================================================================


@dataclass
class CategoryCoefficient:
    category: str
    tariff: Decimal
    overload_hours: Decimal = ZERO
    coefficient: Decimal = ZERO

    def to_dict(self) -> Dict:
        return {
            "categoria": self.category,
            "tarifa_horaria": as_number(self.tariff),
            "horas_sobrecarga": as_number(self.overload_hours),
            "coeficiente": as_number(self.coefficient, RATIO_PLACES),
        }


@dataclass
class PayAllocation:
    member_id: int
    full_name: str
    category: str
    overload_hours: Decimal
    coefficient: Decimal
    amount: Decimal

    def to_dict(self) -> Dict:
        return {
            "id": self.member_id,
            "nombre_completo": self.full_name,
            "categoria": self.category,
            "horas_sobrecarga": as_number(self.overload_hours),
            "coeficiente": as_number(self.coefficient, RATIO_PLACES),
            "monto_pagar": as_number(self.amount),
        }


@dataclass
class PaySummary:
    fund_available: Decimal
    fund_needed: Decimal
    funding_ratio: Decimal
    total_overload_hours: Decimal
    total_members: int
    total_to_pay: Decimal

    def to_dict(self) -> Dict:
        return {
            "fondo_salario_no_ejecutado": as_number(self.fund_available),
            "fondo_salario_necesario": as_number(self.fund_needed),
            "porcentaje_fondo": as_number(self.funding_ratio, RATIO_PLACES),
            "total_horas_sobrecarga": as_number(self.total_overload_hours),
            "total_profesores": self.total_members,
            "total_a_pagar": as_number(self.total_to_pay),
        }


@dataclass
class PayAllocationResult:
    coefficients_by_category: Dict[str, CategoryCoefficient]
    payments: List[PayAllocation]
    summary: PaySummary

    def to_dict(self) -> Dict:
        return {
            "coeficientes_por_categoria": [
                c.to_dict() for c in self.coefficients_by_category.values()
            ],
            "profesores_a_pagar": [p.to_dict() for p in self.payments],
            "resumen": self.summary.to_dict(),
        }


def allocate_overload_pay(
    overload_rows: Iterable[OverloadRow],
    fund_available,
    policy: WorkloadPolicy = DEFAULT_POLICY,
) -> PayAllocationResult:
    """
    Reparte el fondo de salario no ejecutado entre los profesores con sobrecarga.

    Pasos:
        1. fondo necesario = suma(horas de la categoria x tarifa)
        2. porcentaje = min(1, fondo disponible / fondo necesario); 1 si no hace falta fondo
        3. coeficiente por categoria = min(tarifa, porcentaje x tarifa)
        4. monto = coeficiente x horas, redondeado a 2 decimales (ROUND_HALF_UP)

    Raises:
        WorkloadError: si el fondo disponible es negativo
    """
    fund = to_decimal(fund_available)
    if fund < 0:
        raise WorkloadError("El fondo de salario no puede ser negativo.")

    overloaded = [r for r in overload_rows if r.overload_hours > 0]

    coefficients: Dict[str, CategoryCoefficient] = {}
    for row in overloaded:
        label = row.member.category or NO_CATEGORY_LABEL
        entry = coefficients.get(label)
        if entry is None:
            entry = coefficients[label] = CategoryCoefficient(
                category=label, tariff=policy.tariff_for(row.member.category)
            )
        entry.overload_hours += row.overload_hours

    fund_needed = sum((c.overload_hours * c.tariff for c in coefficients.values()), ZERO)
    if fund_needed == 0:
        ratio = ONE
    else:
        ratio = min(ONE, fund / fund_needed)

    for entry in coefficients.values():
        entry.coefficient = min(entry.tariff, ratio * entry.tariff)

    payments = []
    for row in sorted(overloaded, key=lambda r: r.member.sort_key()):
        entry = coefficients[row.member.category or NO_CATEGORY_LABEL]
        payments.append(
            PayAllocation(
                member_id=row.member.id,
                full_name=row.member.full_name,
                category=entry.category,
                overload_hours=row.overload_hours,
                coefficient=entry.coefficient,
                amount=(entry.coefficient * row.overload_hours).quantize(
                    TWO_PLACES, rounding=ROUND_HALF_UP
                ),
            )
        )

    summary = PaySummary(
        fund_available=fund,
        fund_needed=fund_needed,
        funding_ratio=ratio,
        total_overload_hours=sum((c.overload_hours for c in coefficients.values()), ZERO),
        total_members=len(payments),
        total_to_pay=sum((p.amount for p in payments), ZERO),
    )
    return PayAllocationResult(
        coefficients_by_category=dict(
            sorted(coefficients.items(), key=lambda kv: _collation_key(kv[0]))
        ),
        payments=payments,
        summary=summary,
    )
