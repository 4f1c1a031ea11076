#!/usr/bin/env python
"""
Crea (o restablece) una cuenta de administrador aprobada.

Usage:
    python scripts/create_admin.py <usuario> <contraseña> [email]
    python scripts/create_admin.py --show

Si el usuario ya existe se le asigna el rol Administrador, se aprueba y se
restablece su contraseña.
"""

import os
import sys
from datetime import datetime

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv  # noqa: E402

load_dotenv()

from workload import create_app  # noqa: E402
from workload.db_models import (  # noqa: E402
    ROLE_ADMIN,
    Role,
    User,
    db,
    validate_password,
    validate_username,
)


def create_admin(username: str, password: str, email: str | None = None) -> int:
    error = validate_username(username) or validate_password(password)
    if error:
        print(f"ERROR: {error}")
        return 1

    app = create_app()
    with app.app_context():
        role = Role.query.filter_by(name=ROLE_ADMIN).first()
        if role is None:
            print(f"ERROR: el rol '{ROLE_ADMIN}' no existe; ejecute las migraciones primero.")
            return 1

        user = User.query.filter_by(username=username).first()
        created = user is None
        if created:
            user = User(username=username, email=email, first_name="Administrador")
            db.session.add(user)
        elif email:
            user.email = email

        user.role_id = role.id
        user.set_password(password)
        user.is_approved = True
        user.approved_at = user.approved_at or datetime.utcnow()
        user.failed_login_count = 0
        user.locked_until = None
        db.session.commit()

        print("=" * 60)
        print(f"Administrador {'creado' if created else 'actualizado'}: {user.username}")
        print("=" * 60)
    return 0


def show_admins() -> int:
    app = create_app()
    with app.app_context():
        admins = (
            User.query.join(Role, User.role_id == Role.id)
            .filter(Role.name == ROLE_ADMIN)
            .order_by(User.username)
            .all()
        )
        print("\nADMINISTRADORES:")
        print("-" * 60)
        if not admins:
            print("No hay administradores.")
        for admin in admins:
            status = "aprobado" if admin.is_approved else "pendiente"
            print(f"  {admin.username} ({admin.full_name}) - {status}")
    return 0


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "--show":
        sys.exit(show_admins())
    if len(sys.argv) not in (3, 4):
        print(__doc__)
        sys.exit(2)
    sys.exit(create_admin(*sys.argv[1:]))
