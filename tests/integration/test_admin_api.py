from __future__ import annotations

from workload.db_models import User


def test_pending_registrations_and_reject(app, client, admin, make_user):
    pending_id = make_user("nuevo", approved=False)

    resp = client.get("/api/admin/pending-registrations", headers=admin["headers"])
    assert [u["nombre_usuario"] for u in resp.get_json()] == ["nuevo"]

    resp = client.delete(f"/api/admin/users/{pending_id}/reject", headers=admin["headers"])
    assert resp.status_code == 200
    with app.app_context():
        assert User.query.filter_by(username="nuevo").first() is None


def test_cannot_reject_approved_user(client, admin, professor):
    resp = client.delete(f"/api/admin/users/{professor['id']}/reject", headers=admin["headers"])
    assert resp.status_code == 400


def test_list_users_with_filters(client, admin, professor, make_user):
    make_user("beto", category="Asistente", first_name="Beto", last_name="Álvarez")

    resp = client.get("/api/admin/users", query_string={"q": "beto"}, headers=admin["headers"])
    assert [u["nombre_usuario"] for u in resp.get_json()] == ["beto"]

    categories = client.get("/api/categories/").get_json()
    titular = next(c["id"] for c in categories if c["nombre"] == "Titular")
    resp = client.get("/api/admin/users", query_string={"categoryId": titular}, headers=admin["headers"])
    assert [u["nombre_usuario"] for u in resp.get_json()] == ["ana"]


def test_update_user(client, admin, professor):
    categories = client.get("/api/categories/").get_json()
    auxiliar = next(c["id"] for c in categories if c["nombre"] == "Auxiliar")

    resp = client.put(
        f"/api/admin/users/{professor['id']}",
        json={"categoria_id": auxiliar, "nombre": "Ana María"},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    user = resp.get_json()["user"]
    assert user["nombre_categoria"] == "Auxiliar"
    assert user["nombre"] == "Ana María"

    resp = client.put(f"/api/admin/users/{professor['id']}", json={}, headers=admin["headers"])
    assert resp.status_code == 400
    resp = client.put(
        f"/api/admin/users/{professor['id']}", json={"categoria_id": 9999}, headers=admin["headers"]
    )
    assert resp.status_code == 400
    resp = client.put(
        f"/api/admin/users/{professor['id']}", json={"nombre_usuario": "admin"}, headers=admin["headers"]
    )
    assert resp.status_code == 400


def test_user_detail_and_delete(client, admin, professor):
    resp = client.get(f"/api/admin/users/{professor['id']}", headers=admin["headers"])
    assert resp.status_code == 200
    assert resp.get_json()["solicitudes_categoria"] == []

    assert client.delete(f"/api/admin/users/{admin['id']}", headers=admin["headers"]).status_code == 403
    assert client.delete(f"/api/admin/users/{professor['id']}", headers=admin["headers"]).status_code == 200
    assert client.get(f"/api/admin/users/{professor['id']}", headers=admin["headers"]).status_code == 404


def test_dues_and_society_membership(client, admin, professor):
    base = f"/api/admin/users/{professor['id']}"
    resp = client.patch(f"{base}/cotizar", headers=admin["headers"])
    assert resp.get_json()["user"]["cotizo"] is True

    resp = client.get("/api/admin/members-paid", headers=admin["headers"])
    assert resp.get_json() == []

    resp = client.patch(f"{base}/miembro-sociedad", json={"miembro_sociedad": True}, headers=admin["headers"])
    assert resp.status_code == 200

    resp = client.get("/api/admin/members-paid", headers=admin["headers"])
    assert [u["nombre_usuario"] for u in resp.get_json()] == ["ana"]


def test_roles_crud(client, admin):
    headers = admin["headers"]
    resp = client.post("/api/admin/roles", json={"nombre": "Secretario"}, headers=headers)
    assert resp.status_code == 201
    role_id = resp.get_json()["rol"]["id"]

    assert client.post("/api/admin/roles", json={"nombre": "secretario"}, headers=headers).status_code == 409
    assert client.post("/api/admin/roles", json={}, headers=headers).status_code == 400

    resp = client.put(f"/api/admin/roles/{role_id}", json={"nombre": "Secretaria"}, headers=headers)
    assert resp.get_json()["rol"]["nombre"] == "Secretaria"

    assert client.delete(f"/api/admin/roles/{role_id}", headers=headers).status_code == 200


def test_protected_and_in_use_roles(client, admin):
    headers = admin["headers"]
    roles = {r["nombre"]: r["id"] for r in client.get("/api/admin/roles", headers=headers).get_json()}

    assert client.delete(f"/api/admin/roles/{roles['Administrador']}", headers=headers).status_code == 403
    resp = client.put(f"/api/admin/roles/{roles['Administrador']}", json={"nombre": "Root"}, headers=headers)
    assert resp.status_code == 403

    client.post(
        "/api/auth/register", json={"nombre_usuario": "pepe", "password": "Secreto123"}
    )
    assert client.delete(f"/api/admin/roles/{roles['Profesor']}", headers=headers).status_code == 409


def test_departments(client, admin):
    headers = admin["headers"]
    resp = client.post("/api/admin/departments", json={"nombre": "Física", "codigo": "FIS"}, headers=headers)
    assert resp.status_code == 201
    assert client.post("/api/admin/departments", json={"nombre": "Física"}, headers=headers).status_code == 409
    assert client.post("/api/admin/departments", json={}, headers=headers).status_code == 400

    resp = client.get("/api/admin/departments", headers=headers)
    assert [d["codigo"] for d in resp.get_json()] == ["FIS"]
