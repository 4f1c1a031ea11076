"""
Pytest configuration for the workload API.

Provides fixtures for:
- A fresh application per test (in-memory SQLite, seeded roles/categories/types)
- User factories and bearer-token headers for admin and professor accounts
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from workload import create_app
from workload.db_models import (
    ROLE_ADMIN,
    ROLE_PROFESSOR,
    ActivityRecord,
    ActivityType,
    Category,
    Role,
    User,
    db,
)

PASSWORD = "Secreto123"


@pytest.fixture()
def app(tmp_path):
    """
    Application with an isolated in-memory database.

    No app context is kept pushed: every request gets its own context, so
    the user loaded by Flask-Login never leaks between requests.
    """
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "AUTO_CREATE_DB": "1",
            "RATELIMIT_ENABLED": False,
            "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        }
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def _id_by_name(model, name: str) -> int:
    return model.query.filter_by(name=name).one().id


@pytest.fixture()
def make_user(app):
    """Factory: crea un usuario y devuelve su id."""

    def _make(
        username: str,
        role: str = ROLE_PROFESSOR,
        category: str | None = "Titular",
        approved: bool = True,
        first_name: str | None = None,
        last_name: str | None = None,
        password: str = PASSWORD,
    ) -> int:
        with app.app_context():
            user = User(
                username=username,
                first_name=first_name or username.capitalize(),
                last_name=last_name or "Pérez",
                role_id=_id_by_name(Role, role),
                category_id=_id_by_name(Category, category) if category else None,
                is_approved=approved,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make


@pytest.fixture()
def login(client):
    """Factory: inicia sesion y devuelve las cabeceras Authorization."""

    def _login(username: str, password: str = PASSWORD) -> dict:
        resp = client.post(
            "/api/auth/login", json={"nombre_usuario": username, "password": password}
        )
        assert resp.status_code == 200, resp.get_json()
        return {"Authorization": f"Bearer {resp.get_json()['token']}"}

    return _login


@pytest.fixture()
def admin(make_user, login):
    user_id = make_user("admin", role=ROLE_ADMIN, category=None)
    return {"id": user_id, "headers": login("admin")}


@pytest.fixture()
def professor(make_user, login):
    user_id = make_user("ana", first_name="Ana", last_name="García")
    return {"id": user_id, "headers": login("ana")}


@pytest.fixture()
def type_ids(app):
    """Ids de los tipos de actividad sembrados, por nombre."""
    with app.app_context():
        return {t.name: t.id for t in ActivityType.query.all()}


@pytest.fixture()
def add_activity(app, type_ids):
    """Factory: registra una actividad directamente en la base de datos."""

    def _add(user_id: int, type_name: str, day: date, hours, group=None, students=None) -> int:
        with app.app_context():
            record = ActivityRecord(
                user_id=user_id,
                activity_type_id=type_ids[type_name],
                date=day,
                hours=Decimal(str(hours)),
                group_name=group,
                student_count=students,
            )
            db.session.add(record)
            db.session.commit()
            return record.id

    return _add
