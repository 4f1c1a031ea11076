from __future__ import annotations

from datetime import date

import pytest

from workload.services.reporting import (
    compute_overcompliance_report,
    compute_overload_pay_allocation,
    compute_teaching_overload_report,
    fetch_members_with_category,
)

DOCENCIA = "Docencia Directa de Pregrado y Posgrado"
INVESTIGACION = "Investigación Científica"

JAN = {"startDate": "2024-01-01", "endDate": "2024-01-31"}


def _category_id(client, name):
    return next(c["id"] for c in client.get("/api/categories/").get_json() if c["nombre"] == name)


@pytest.fixture()
def loaded(client, admin, professor, make_user, add_activity):
    """
    ana (Titular): 150 h docencia + 50 h investigacion en enero
    beto (Asistente): 10 h investigacion, sin docencia directa
    pendiente: sin aprobar, no aparece en los reportes
    """
    add_activity(professor["id"], DOCENCIA, date(2024, 1, 1), 150, group="IF-11", students=30)
    add_activity(professor["id"], INVESTIGACION, date(2024, 1, 31), 50)
    add_activity(professor["id"], INVESTIGACION, date(2024, 2, 1), 999)

    beto = make_user("beto", category="Asistente", first_name="Beto", last_name="Álvarez")
    add_activity(beto, INVESTIGACION, date(2024, 1, 15), 10)

    pendiente = make_user("pendiente", approved=False)
    add_activity(pendiente, DOCENCIA, date(2024, 1, 15), 500, group="X", students=1)
    return {"ana": professor["id"], "beto": beto}


def test_overcompliance_end_to_end(client, admin, loaded):
    titular = _category_id(client, "Titular")
    resp = client.put(
        f"/api/categories/{titular}", json={"horas_norma_semanal": "54.32"}, headers=admin["headers"]
    )
    assert resp.status_code == 200

    resp = client.get("/api/reports/over-compliance", query_string=JAN, headers=admin["headers"])
    assert resp.status_code == 200
    rows = resp.get_json()["profesores"]

    assert [r["nombre_usuario"] for r in rows] == ["ana", "beto"]
    ana = rows[0]
    assert ana["horas_norma_periodo"] == 271.6
    assert ana["horas_registradas_periodo"] == 200.0
    assert ana["horas_sobrecumplimiento"] == -71.6
    # 44 x 5 semanas
    assert rows[1]["horas_sobrecumplimiento"] == -210.0


def test_overcompliance_filters(client, admin, loaded):
    asistente = _category_id(client, "Asistente")
    resp = client.get(
        "/api/reports/over-compliance",
        query_string={**JAN, "categoryId": asistente},
        headers=admin["headers"],
    )
    assert [r["nombre_usuario"] for r in resp.get_json()["profesores"]] == ["beto"]


@pytest.mark.parametrize(
    "path, arg",
    [
        ("/api/reports/over-compliance", "roleId"),
        ("/api/reports/over-compliance", "categoryId"),
        ("/api/reports/teaching-overload", "departmentId"),
    ],
)
@pytest.mark.parametrize("value", ["abc", "-1", "0", "1.5"])
def test_malformed_filter_ids_are_rejected(client, admin, loaded, path, arg, value):
    resp = client.get(
        path,
        query_string={**JAN, "fondoSalario": "1000", arg: value},
        headers=admin["headers"],
    )
    assert resp.status_code == 400
    assert arg in resp.get_json()["message"]


def test_empty_filter_id_means_no_filter(client, admin, loaded):
    resp = client.get(
        "/api/reports/over-compliance",
        query_string={**JAN, "roleId": ""},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    assert len(resp.get_json()["profesores"]) == 2


def test_teaching_overload(client, admin, loaded):
    resp = client.get("/api/reports/teaching-overload", query_string=JAN, headers=admin["headers"])
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["norma_docente"] == 114.0

    [ana] = body["profesores"]
    assert ana["total_horas"] == 200.0
    assert ana["horas_pregrado"] == 150.0
    assert ana["horas_sobrecarga"] == 86.0
    teaching = next(a for a in ana["actividades"] if a["tipo_actividad"] == DOCENCIA)
    assert teaching["cantidad_grupos"] == 1
    assert teaching["cantidad_estudiantes"] == 30


def test_overload_payment(client, admin, loaded):
    # Titular: 86 h x 100 = 8600 necesarios
    resp = client.get(
        "/api/reports/overload-payment",
        query_string={**JAN, "fondoSalario": "4300"},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["resumen"]["fondo_salario_necesario"] == 8600.0
    assert body["resumen"]["porcentaje_fondo"] == 0.5
    [payment] = body["profesores_a_pagar"]
    assert payment["monto_pagar"] == 4300.0
    assert body["coeficientes_por_categoria"] == [
        {"categoria": "Titular", "tarifa_horaria": 100.0, "horas_sobrecarga": 86.0, "coeficiente": 50.0}
    ]


@pytest.mark.parametrize("fund", [None, "", "-1", "abc"])
def test_overload_payment_requires_valid_fund(client, admin, loaded, fund):
    query = dict(JAN)
    if fund is not None:
        query["fondoSalario"] = fund
    resp = client.get("/api/reports/overload-payment", query_string=query, headers=admin["headers"])
    assert resp.status_code == 400


def test_invalid_range(client, admin):
    resp = client.get(
        "/api/reports/over-compliance",
        query_string={"startDate": "2024-02-01", "endDate": "2024-01-01"},
        headers=admin["headers"],
    )
    assert resp.status_code == 400
    resp = client.get("/api/reports/teaching-overload", headers=admin["headers"])
    assert resp.status_code == 400


@pytest.mark.parametrize(
    "path",
    [
        "/api/reports/over-compliance/excel",
        "/api/reports/teaching-overload/excel",
        "/api/reports/overload-payment/excel",
    ],
)
def test_excel_downloads(client, admin, loaded, path):
    resp = client.get(path, query_string={**JAN, "fondoSalario": "1000"}, headers=admin["headers"])
    assert resp.status_code == 200
    assert resp.headers["Content-Type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert "attachment; filename=" in resp.headers["Content-Disposition"]
    assert resp.data[:2] == b"PK"


@pytest.mark.parametrize(
    "path",
    [
        "/api/reports/over-compliance/pdf",
        "/api/reports/teaching-overload/pdf",
        "/api/reports/overload-payment/pdf",
    ],
)
def test_pdf_downloads(client, admin, loaded, path):
    resp = client.get(path, query_string={**JAN, "fondoSalario": "1000"}, headers=admin["headers"])
    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == "application/pdf"
    assert resp.data.startswith(b"%PDF")


def test_reports_are_admin_only(client, professor):
    resp = client.get("/api/reports/over-compliance", query_string=JAN, headers=professor["headers"])
    assert resp.status_code == 403
    assert client.get("/api/reports/filters").status_code == 401


def test_filters(client, admin):
    body = client.get("/api/reports/filters", headers=admin["headers"]).get_json()
    assert {r["nombre"] for r in body["roles"]} >= {"Administrador", "Profesor"}
    assert len(body["categorias"]) == 5
    assert body["departamentos"] == []


def test_reporting_service_excludes_unapproved_and_uncategorized(app, loaded):
    with app.app_context():
        members = fetch_members_with_category()
        assert {m.username for m in members} == {"ana", "beto"}

        rows = compute_overcompliance_report("2024-01-01", "2024-01-31")
        assert len(rows) == 2

        overload = compute_teaching_overload_report(date(2024, 1, 1), date(2024, 1, 31))
        assert [r.member.username for r in overload] == ["ana"]

        result = compute_overload_pay_allocation("2024-01-01", "2024-01-31", "100000")
        assert result.summary.total_to_pay == 8600


def test_department_filter(client, admin, loaded):
    resp = client.post(
        "/api/admin/departments", json={"nombre": "Matemática", "codigo": "MAT"}, headers=admin["headers"]
    )
    department_id = resp.get_json()["id"]

    resp = client.get(
        "/api/reports/teaching-overload",
        query_string={**JAN, "departmentId": department_id},
        headers=admin["headers"],
    )
    assert resp.get_json()["profesores"] == []

    client.put(
        f"/api/admin/users/{loaded['ana']}",
        json={"departamento_id": department_id},
        headers=admin["headers"],
    )
    resp = client.get(
        "/api/reports/teaching-overload",
        query_string={**JAN, "departmentId": department_id},
        headers=admin["headers"],
    )
    assert len(resp.get_json()["profesores"]) == 1
