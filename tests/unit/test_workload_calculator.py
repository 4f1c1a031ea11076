from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from workload.workload_calculator import (
    ActivityHoursRow,
    InvalidRangeError,
    MemberRow,
    WorkloadError,
    WorkloadPolicy,
    aggregate_activity_hours,
    allocate_overload_pay,
    classify_activity_type,
    compute_overcompliance,
    compute_teaching_overload,
    load_policy,
    parse_date_range,
    resolve_period_norm,
    total_activity_hours,
    weeks_in_range,
)

JAN_1 = date(2024, 1, 1)
JAN_31 = date(2024, 1, 31)

DOCENCIA = 1
PREPARACION = 2
INVESTIGACION = 3


def _member(member_id, surname="Pérez", name="Ana", category="Titular", weekly_norm="44"):
    return MemberRow(
        id=member_id,
        username=f"u{member_id}",
        name=name,
        surname=surname,
        role="Profesor",
        category=category,
        weekly_norm=Decimal(weekly_norm) if weekly_norm is not None else None,
    )


def _row(member_id, hours, day=JAN_1, type_id=DOCENCIA, group=None, students=None):
    names = {
        DOCENCIA: "Docencia Directa de Pregrado y Posgrado",
        PREPARACION: "Preparación de la Asignatura",
        INVESTIGACION: "Investigación Científica",
    }
    flags = classify_activity_type(names[type_id])
    return ActivityHoursRow(
        member_id=member_id,
        activity_type_id=type_id,
        activity_type_name=names[type_id],
        date=day,
        hours=Decimal(str(hours)),
        group=group,
        student_count=students,
        is_direct_teaching=flags.is_direct_teaching,
        counts_as_pregrad=flags.counts_as_pregrad,
        counts_as_preparation=flags.counts_as_preparation,
    )


# =============================================================================
# Norma del periodo
# =============================================================================


@pytest.mark.parametrize(
    "start, end, weeks",
    [
        (JAN_1, JAN_1, 1),
        (JAN_1, date(2024, 1, 7), 1),
        (JAN_1, date(2024, 1, 8), 1),
        (JAN_1, date(2024, 1, 9), 2),
        (JAN_1, JAN_31, 5),
    ],
)
def test_weeks_round_up_with_one_week_minimum(start, end, weeks):
    assert weeks_in_range(start, end) == weeks


def test_period_norm_is_weekly_norm_times_weeks():
    assert resolve_period_norm(Decimal("54.32"), JAN_1, JAN_31) == Decimal("271.60")


def test_period_norm_without_category_is_none():
    assert resolve_period_norm(None, JAN_1, JAN_31) is None


def test_inverted_range_is_rejected():
    with pytest.raises(InvalidRangeError):
        weeks_in_range(JAN_31, JAN_1)
    with pytest.raises(InvalidRangeError):
        parse_date_range("2024-02-01", "2024-01-01")


@pytest.mark.parametrize("raw", [None, "", "2024-13-01", "01/02/2024", "2024-1-1x", "2024-1-1", "2024-01-1"])
def test_malformed_dates_are_rejected(raw):
    with pytest.raises(InvalidRangeError):
        parse_date_range(raw, "2024-01-31")


# =============================================================================
# Agregacion
# =============================================================================


def test_aggregation_includes_both_boundaries():
    rows = [
        _row(1, 3, day=JAN_1),
        _row(1, 2, day=JAN_31),
        _row(1, 7, day=date(2023, 12, 31)),
        _row(1, 9, day=date(2024, 2, 1)),
    ]
    assert total_activity_hours(rows, JAN_1, JAN_31) == Decimal("5")


def test_aggregation_groups_by_type_and_filters_members():
    rows = [
        _row(1, 2, type_id=DOCENCIA),
        _row(1, "1.5", type_id=DOCENCIA),
        _row(1, 4, type_id=INVESTIGACION),
        _row(2, 10, type_id=DOCENCIA),
    ]
    totals = aggregate_activity_hours(rows, JAN_1, JAN_31, member_ids=[1])

    by_type = {t.activity_type_id: t for t in totals}
    assert by_type[DOCENCIA].total_hours == Decimal("3.5")
    assert by_type[DOCENCIA].activity_count == 2
    assert by_type[INVESTIGACION].total_hours == Decimal("4")
    # ordenado por nombre del tipo
    assert [t.activity_type_id for t in totals] == [DOCENCIA, INVESTIGACION]


def test_aggregation_by_single_type():
    rows = [_row(1, 2, type_id=DOCENCIA), _row(1, 4, type_id=INVESTIGACION)]
    assert total_activity_hours(rows, JAN_1, JAN_31, activity_type_id=INVESTIGACION) == Decimal("4")


# =============================================================================
# Sobrecumplimiento
# =============================================================================


def test_overcompliance_surplus_end_to_end():
    member = _member(1, weekly_norm="54.32")
    rows = [_row(1, 150, day=JAN_1), _row(1, 150, day=JAN_31)]

    [result] = compute_overcompliance([member], rows, JAN_1, JAN_31)

    assert result.period_norm == Decimal("271.60")
    assert result.registered_hours == Decimal("300")
    assert result.surplus == Decimal("28.40")
    assert result.to_dict()["horas_sobrecumplimiento"] == 28.4


def test_overcompliance_keeps_negative_surplus_and_members_without_hours():
    members = [_member(1), _member(2, surname="Zamora")]
    rows = [_row(1, 10)]

    results = compute_overcompliance(members, rows, JAN_1, date(2024, 1, 7))

    by_id = {r.member_id: r for r in results}
    assert by_id[1].surplus == Decimal("-34")
    assert by_id[2].registered_hours == Decimal("0")
    assert by_id[2].surplus == Decimal("-44")


def test_overcompliance_skips_members_without_category():
    members = [_member(1), _member(2, category=None, weekly_norm=None)]
    results = compute_overcompliance(members, [_row(2, 500)], JAN_1, JAN_31)
    assert [r.member_id for r in results] == [1]


def test_overcompliance_order_surplus_then_collated_surname():
    members = [
        _member(1, surname="Zamora"),
        _member(2, surname="álvarez"),
        _member(3, surname="Beltrán"),
    ]
    rows = [_row(1, 100), _row(2, 10), _row(3, 10)]

    results = compute_overcompliance(members, rows, JAN_1, JAN_1)

    assert [r.member_id for r in results] == [1, 2, 3]


# =============================================================================
# Sobrecarga docente
# =============================================================================


def test_overload_is_never_negative():
    [row] = compute_teaching_overload([_member(1)], [_row(1, 100)], JAN_1, JAN_31)
    assert row.total_hours == Decimal("100")
    assert row.overload_hours == Decimal("0")


def test_overload_above_teaching_norm():
    [row] = compute_teaching_overload([_member(1)], [_row(1, 200)], JAN_1, JAN_31)
    assert row.overload_hours == Decimal("86")


def test_overload_counts_all_activities_once_member_qualifies():
    rows = [
        _row(1, 60, type_id=DOCENCIA, group="A1", students=20),
        _row(1, 30, type_id=PREPARACION, group="A1"),
        _row(1, 40, type_id=INVESTIGACION),
    ]
    [row] = compute_teaching_overload([_member(1)], rows, JAN_1, JAN_31)

    assert row.total_hours == Decimal("130")
    assert row.pregrad_hours == Decimal("60")
    assert row.preparation_hours == Decimal("30")
    assert row.overload_hours == Decimal("16")
    teaching = next(a for a in row.activities if a.activity_type_id == DOCENCIA)
    assert teaching.group_count == 1
    assert teaching.student_count == 20


def test_overload_excludes_members_without_direct_teaching():
    rows = [_row(1, 300, type_id=INVESTIGACION), _row(2, 10, type_id=DOCENCIA)]
    results = compute_teaching_overload([_member(1), _member(2)], rows, JAN_1, JAN_31)
    assert [r.member_id for r in results] == [2]


def test_overload_uses_policy_threshold():
    policy = WorkloadPolicy(teaching_norm_hours=Decimal("50"))
    [row] = compute_teaching_overload([_member(1)], [_row(1, 80)], JAN_1, JAN_31, policy)
    assert row.overload_hours == Decimal("30")


# =============================================================================
# Pago por sobrecarga
# =============================================================================


def _overload_rows():
    members = [
        _member(1, surname="Zamora", category="Titular"),
        _member(2, surname="Alonso", category="Asistente"),
        _member(3, surname="Mora", category="Instructor"),
    ]
    rows = [_row(1, 124), _row(2, 134), _row(3, 100)]
    return compute_teaching_overload(members, rows, JAN_1, JAN_31)


def test_pay_with_enough_fund_pays_full_tariff():
    # Titular 10h x 100 + Asistente 20h x 80 = 2600
    result = allocate_overload_pay(_overload_rows(), "5000")

    assert result.summary.fund_needed == Decimal("2600")
    assert result.summary.funding_ratio == Decimal("1")
    amounts = {p.member_id: p.amount for p in result.payments}
    assert amounts == {1: Decimal("1000.00"), 2: Decimal("1600.00")}
    assert result.summary.total_to_pay == Decimal("2600.00")


def test_pay_with_partial_fund_is_proportional():
    result = allocate_overload_pay(_overload_rows(), "1300")

    assert result.summary.funding_ratio == Decimal("0.5")
    coefficients = {c.category: c.coefficient for c in result.coefficients_by_category.values()}
    assert coefficients == {"Titular": Decimal("50.0"), "Asistente": Decimal("40.0")}
    assert sum(p.amount for p in result.payments) == Decimal("1300.00")


def test_pay_amounts_round_half_up_to_cents():
    # 2 Titulares con 1 h de sobrecarga: 100.01 / 200 -> 50.005 por profesor
    members = [_member(1, surname="Alonso"), _member(2, surname="Zamora")]
    rows = compute_teaching_overload(members, [_row(1, 115), _row(2, 115)], JAN_1, JAN_31)
    result = allocate_overload_pay(rows, "100.01")

    assert result.summary.funding_ratio == Decimal("0.50005")
    [coefficient] = result.coefficients_by_category.values()
    assert coefficient.coefficient == Decimal("50.005")
    assert [p.amount for p in result.payments] == [Decimal("50.01"), Decimal("50.01")]
    assert result.summary.total_to_pay == Decimal("100.02")


def test_pay_with_fractional_ratio_rounds_each_amount():
    # Titular: 3 h y 1 h de sobrecarga, fondo 1/3 del necesario (400)
    members = [_member(1, surname="Alonso"), _member(2, surname="Zamora")]
    rows = compute_teaching_overload(members, [_row(1, 117), _row(2, 115)], JAN_1, JAN_31)
    result = allocate_overload_pay(rows, Decimal("400") / 3)

    amounts = {p.member_id: p.amount for p in result.payments}
    assert amounts == {1: Decimal("100.00"), 2: Decimal("33.33")}
    assert result.summary.total_to_pay == Decimal("133.33")


def test_pay_with_zero_fund_pays_nothing():
    result = allocate_overload_pay(_overload_rows(), 0)
    assert all(p.amount == Decimal("0.00") for p in result.payments)
    assert result.summary.total_to_pay == Decimal("0.00")


def test_pay_without_overload_needs_no_fund():
    result = allocate_overload_pay([], "1000")
    assert result.payments == []
    assert result.summary.fund_needed == Decimal("0")
    assert result.summary.funding_ratio == Decimal("1")


def test_pay_rejects_negative_fund():
    with pytest.raises(WorkloadError):
        allocate_overload_pay(_overload_rows(), "-1")


def test_payments_sorted_by_full_name_and_idempotent():
    rows = _overload_rows()
    first = allocate_overload_pay(rows, "1300").to_dict()
    second = allocate_overload_pay(rows, "1300").to_dict()

    assert first == second
    assert [p["nombre_completo"] for p in first["profesores_a_pagar"]] == [
        "Alonso, Ana",
        "Zamora, Ana",
    ]


def test_unknown_category_uses_default_tariff():
    member = _member(1, category="Consultante")
    rows = compute_teaching_overload([member], [_row(1, 124)], JAN_1, JAN_31)
    result = allocate_overload_pay(rows, "100000")
    assert result.summary.fund_needed == Decimal("700")


# =============================================================================
# Politica
# =============================================================================


def test_load_policy_reads_config():
    policy = load_policy(
        {
            "WORKLOAD_TEACHING_NORM_HOURS": "120",
            "WORKLOAD_DEFAULT_TARIFF": "60",
            "WORKLOAD_TARIFFS": '{"Titular": 110}',
        }
    )
    assert policy.teaching_norm_hours == Decimal("120")
    assert policy.tariff_for("titular") == Decimal("110")
    assert policy.tariff_for("Auxiliar") == Decimal("60")


@pytest.mark.parametrize(
    "config",
    [
        {"WORKLOAD_TEACHING_NORM_HOURS": "0"},
        {"WORKLOAD_DEFAULT_TARIFF": "abc"},
        {"WORKLOAD_TARIFFS": "not json"},
        {"WORKLOAD_TARIFFS": '["Titular"]'},
    ],
)
def test_load_policy_rejects_bad_values(config):
    with pytest.raises(WorkloadError):
        load_policy(config)


def test_classify_activity_type():
    assert classify_activity_type("Docencia Directa de Pregrado y Posgrado").is_direct_teaching
    assert classify_activity_type("Preparación de la Asignatura").counts_as_preparation
    assert not classify_activity_type("Investigación Científica").is_direct_teaching
