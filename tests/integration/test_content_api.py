from __future__ import annotations

import io
from datetime import datetime, timedelta

from PIL import Image


def _png() -> io.BytesIO:
    buffer = io.BytesIO()
    Image.new("RGB", (2000, 1000), color=(200, 30, 30)).save(buffer, format="PNG")
    buffer.seek(0)
    return buffer


def test_news_visibility(client, admin, professor):
    headers = admin["headers"]
    client.post("/api/news/", json={"titulo": "Pública", "contenido": "a"}, headers=headers)
    client.post("/api/news/", json={"titulo": "Interna", "contenido": "b", "ispublica": False}, headers=headers)
    client.post("/api/news/", json={"titulo": "Borrador", "contenido": "c", "publicada": False}, headers=headers)

    def titles(**kwargs):
        body = client.get("/api/news/", **kwargs).get_json()
        return sorted(n["titulo"] for n in body["noticias"])

    assert titles() == ["Pública"]
    assert titles(headers=professor["headers"]) == ["Interna", "Pública"]
    assert titles(headers=headers, query_string={"all": "1"}) == ["Borrador", "Interna", "Pública"]


def test_news_with_image_is_resized(client, admin):
    resp = client.post(
        "/api/news/",
        data={"titulo": "Con imagen", "contenido": "texto", "imagen": (_png(), "foto.png", "image/png")},
        content_type="multipart/form-data",
        headers=admin["headers"],
    )
    assert resp.status_code == 201
    news = resp.get_json()
    assert news["imagen_base64"].startswith("data:image/png;base64,")

    resp = client.put(f"/api/news/{news['id']}", json={"eliminar_imagen": True}, headers=admin["headers"])
    assert resp.get_json()["imagen_base64"] is None


def test_news_rejects_invalid_image(client, admin):
    resp = client.post(
        "/api/news/",
        data={"titulo": "Mala", "contenido": "x", "imagen": (io.BytesIO(b"not an image"), "foto.png")},
        content_type="multipart/form-data",
        headers=admin["headers"],
    )
    assert resp.status_code == 400


def test_news_crud_is_admin_only(client, admin, professor):
    assert client.post("/api/news/", json={"titulo": "x", "contenido": "y"}, headers=professor["headers"]).status_code == 403
    assert client.post("/api/news/", json={"titulo": "x"}, headers=admin["headers"]).status_code == 400

    news_id = client.post("/api/news/", json={"titulo": "x", "contenido": "y"}, headers=admin["headers"]).get_json()["id"]
    resp = client.put(f"/api/news/{news_id}", json={"titulo": "nuevo"}, headers=admin["headers"])
    assert resp.get_json()["titulo"] == "nuevo"
    assert client.get(f"/api/news/{news_id}").status_code == 200
    assert client.delete(f"/api/news/{news_id}", headers=admin["headers"]).status_code == 200
    assert client.get(f"/api/news/{news_id}").status_code == 404


def test_events_and_upcoming(client, admin):
    headers = admin["headers"]
    future = (datetime.utcnow() + timedelta(days=10)).strftime("%Y-%m-%dT10:00:00")
    past = (datetime.utcnow() - timedelta(days=10)).strftime("%Y-%m-%d")

    resp = client.post(
        "/api/events/", json={"titulo": "Congreso", "fecha_evento": future, "ubicacion": "Aula 1"}, headers=headers
    )
    assert resp.status_code == 201
    client.post("/api/events/", json={"titulo": "Pasado", "fecha_evento": past}, headers=headers)
    client.post(
        "/api/events/", json={"titulo": "Privado", "fecha_evento": future, "publico": False}, headers=headers
    )

    upcoming = client.get("/api/events/upcoming").get_json()
    assert [e["titulo"] for e in upcoming] == ["Congreso"]

    body = client.get("/api/events/", headers=headers).get_json()
    assert body["total"] == 3

    assert client.post("/api/events/", json={"titulo": "Sin fecha"}, headers=headers).status_code == 400
    assert client.post("/api/events/", json={"titulo": "X", "fecha_evento": "mañana"}, headers=headers).status_code == 400


def test_event_update_and_delete(client, admin):
    headers = admin["headers"]
    event_id = client.post(
        "/api/events/", json={"titulo": "Taller", "fecha_evento": "2030-05-01"}, headers=headers
    ).get_json()["id"]

    resp = client.put(f"/api/events/{event_id}", json={"fecha_evento": "2030-06-01T09:30"}, headers=headers)
    assert resp.get_json()["fecha_evento"] == "2030-06-01T09:30:00"
    assert client.put(f"/api/events/{event_id}", json={"titulo": ""}, headers=headers).status_code == 400
    assert client.delete(f"/api/events/{event_id}", headers=headers).status_code == 200
    assert client.get(f"/api/events/{event_id}").status_code == 404


def test_convocatorias(client, admin, professor):
    headers = admin["headers"]
    client.post("/api/convocatorias/", json={"titulo": "Becas 2025"}, headers=headers)
    resp = client.post("/api/convocatorias/", json={"titulo": "Interna", "publico": False}, headers=headers)
    assert resp.status_code == 201
    internal_id = resp.get_json()["id"]

    anonymous = client.get("/api/convocatorias/").get_json()
    assert [c["titulo"] for c in anonymous["convocatorias"]] == ["Becas 2025"]
    assert client.get(f"/api/convocatorias/{internal_id}").status_code == 404
    assert client.get(f"/api/convocatorias/{internal_id}", headers=professor["headers"]).status_code == 200

    resp = client.put(f"/api/convocatorias/{internal_id}", json={"descripcion": "Detalle"}, headers=headers)
    assert resp.get_json()["descripcion"] == "Detalle"
    assert client.delete(f"/api/convocatorias/{internal_id}", headers=headers).status_code == 200
    assert client.post("/api/convocatorias/", json={}, headers=professor["headers"]).status_code == 403


def test_content_lists_are_paginated(client, admin):
    headers = admin["headers"]
    for n in range(3):
        client.post("/api/news/", json={"titulo": f"Noticia {n}", "contenido": "x"}, headers=headers)
        client.post("/api/events/", json={"titulo": f"Evento {n}", "fecha_evento": "2030-01-0%d" % (n + 1)}, headers=headers)
        client.post("/api/convocatorias/", json={"titulo": f"Convocatoria {n}"}, headers=headers)

    for path, key in [
        ("/api/news/", "noticias"),
        ("/api/events/", "eventos"),
        ("/api/convocatorias/", "convocatorias"),
    ]:
        body = client.get(path, query_string={"page": 2, "limit": 2}).get_json()
        assert body["total"] == 3
        assert body["pagina"] == 2
        assert body["total_paginas"] == 2
        assert len(body[key]) == 1

    body = client.get("/api/events/", query_string={"limit": 2}).get_json()
    assert [e["titulo"] for e in body["eventos"]] == ["Evento 2", "Evento 1"]
