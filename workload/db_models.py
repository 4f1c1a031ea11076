"""
Database models for the academic workload application.
Profesores, categorias docentes, plan de actividades, solicitudes de cambio
de categoria, notificaciones y publicaciones institucionales.
"""

import re
from datetime import datetime
from decimal import Decimal
from enum import Enum

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from werkzeug.security import check_password_hash, generate_password_hash

db = SQLAlchemy()


# =============================================================================
# SHARED VALIDATORS
# =============================================================================

# Password: >= 8 caracteres, al menos una letra y un digito
_PASSWORD_RE = re.compile(r"^(?=.*[A-Za-z])(?=.*\d).{8,}$")
PASSWORD_POLICY_MSG = (
    "La contraseña debe tener al menos 8 caracteres, "
    "con al menos una letra y un dígito."
)

# Email: basic RFC 5322 format validation
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
EMAIL_POLICY_MSG = "Correo electrónico inválido (ej: nombre@dominio.cu)."

# Nombre de usuario: 3-50 caracteres alfanumericos, punto, guion o guion bajo
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,50}$")
USERNAME_POLICY_MSG = (
    "El nombre de usuario debe tener entre 3 y 50 caracteres "
    "(letras, dígitos, '.', '-' o '_')."
)


def validate_password(password: str) -> str | None:
    """Return error message if invalid, else None."""
    if not password or not _PASSWORD_RE.match(password):
        return PASSWORD_POLICY_MSG
    return None


def validate_email(email: str) -> str | None:
    """Return error message if invalid, else None. Email is optional."""
    if not email:
        return None
    if len(email) > 254:
        return "Correo electrónico demasiado largo (máximo 254 caracteres)."
    if not _EMAIL_RE.match(email):
        return EMAIL_POLICY_MSG
    return None


def validate_username(username: str) -> str | None:
    """Return error message if invalid, else None."""
    if not username or not _USERNAME_RE.match(username):
        return USERNAME_POLICY_MSG
    return None


# =============================================================================
# ENUMS
# =============================================================================

ROLE_ADMIN = "Administrador"
ROLE_PROFESSOR = "Profesor"


class RequestStatus(str, Enum):
    """Estado de una solicitud de cambio de categoria"""

    PENDING = "Pendiente"
    APPROVED = "Aprobada"
    REJECTED = "Rechazada"


class NotificationType(str, Enum):
    USER_APPROVED = "aprobacion_usuario"
    REQUEST_REVIEWED = "revision_solicitud"
    GENERAL = "general"


# =============================================================================
# DEPARTMENT / ROLE / CATEGORY
# =============================================================================


class Department(db.Model):
    """Departamento docente"""

    __tablename__ = "departments"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    code = db.Column(db.String(20), unique=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Department {self.name}>"

    def to_dict(self):
        return {"id": self.id, "nombre": self.name, "codigo": self.code}


class Role(db.Model):
    """Rol del sistema (Profesor, Administrador, ...)"""

    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False, unique=True)
    description = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Role {self.name}>"

    @property
    def in_use(self) -> bool:
        """Hay usuarios con este rol"""
        return db.session.query(User.id).filter_by(role_id=self.id).first() is not None

    def to_dict(self):
        return {"id": self.id, "nombre": self.name, "descripcion": self.description}


class Category(db.Model):
    """Categoria docente con su norma semanal de horas"""

    __tablename__ = "categories"
    __table_args__ = (
        db.CheckConstraint("weekly_hour_norm > 0", name="ck_categories_weekly_norm_positive"),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    weekly_hour_norm = db.Column(db.Numeric(6, 2), nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self):
        return f"<Category {self.name}>"

    @property
    def in_use(self) -> bool:
        """Referenciada por usuarios o solicitudes"""
        if db.session.query(User.id).filter_by(category_id=self.id).first():
            return True
        return (
            db.session.query(CategoryChangeRequest.id)
            .filter_by(requested_category_id=self.id)
            .first()
            is not None
        )

    def to_dict(self):
        return {
            "id": self.id,
            "nombre": self.name,
            "horas_norma_semanal": float(self.weekly_hour_norm),
            "descripcion": self.description,
        }


# =============================================================================
# USER MODEL
# =============================================================================


class User(UserMixin, db.Model):
    """Usuario del sistema (profesor o administrador)"""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(150))

    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=False, index=True)
    category_id = db.Column(
        db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True
    )
    department_id = db.Column(
        db.Integer, db.ForeignKey("departments.id"), nullable=True, index=True
    )

    is_approved = db.Column(db.Boolean, default=False, nullable=False)
    approved_at = db.Column(db.DateTime, nullable=True)
    paid_dues = db.Column(db.Boolean, default=False, nullable=False)  # cotizo
    society_member = db.Column(db.Boolean, default=False, nullable=False)

    failed_login_count = db.Column(db.Integer, default=0)
    locked_until = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    role = db.relationship("Role", backref="users")
    category = db.relationship("Category", backref="members")
    department = db.relationship("Department", backref="members")

    activities = db.relationship(
        "ActivityRecord",
        backref="owner",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    notifications = db.relationship(
        "Notification",
        backref="user",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<User {self.username}>"

    @property
    def full_name(self) -> str:
        """Apellidos, Nombre"""
        return f"{self.last_name or ''}, {self.first_name or ''}".strip(", ")

    @property
    def is_admin(self) -> bool:
        return self.role is not None and self.role.name == ROLE_ADMIN

    @property
    def role_name(self):
        return self.role.name if self.role else None

    @property
    def category_name(self):
        return self.category.name if self.category else None

    def to_dict(self):
        return {
            "id": self.id,
            "nombre_usuario": self.username,
            "email": self.email,
            "nombre": self.first_name,
            "apellidos": self.last_name,
            "rol_id": self.role_id,
            "nombre_rol": self.role_name,
            "categoria_id": self.category_id,
            "nombre_categoria": self.category_name,
            "departamento_id": self.department_id,
            "aprobado": self.is_approved,
            "cotizo": self.paid_dues,
            "miembro_sociedad": self.society_member,
            "fecha_creacion": _iso(self.created_at),
        }


@event.listens_for(User, "before_insert")
def _user_before_insert(mapper, connection, target):
    # Normaliza el correo aunque el usuario se cree fuera de las rutas (scripts, seeds)
    if target.email is not None:
        target.email = target.email.strip().lower() or None


# =============================================================================
# ACTIVITY PLAN
# =============================================================================


class ActivityType(db.Model):
    """
    Tipo de actividad del plan de trabajo.

    Las banderas is_direct_teaching / counts_as_pregrad / counts_as_preparation
    se fijan al configurar el tipo y son las que usa el calculo de sobrecarga.
    """

    __tablename__ = "activity_types"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False, unique=True)
    description = db.Column(db.Text)
    requires_group = db.Column(db.Boolean, default=False, nullable=False)
    requires_student_count = db.Column(db.Boolean, default=False, nullable=False)

    is_direct_teaching = db.Column(db.Boolean, default=False, nullable=False)
    counts_as_pregrad = db.Column(db.Boolean, default=False, nullable=False)
    counts_as_preparation = db.Column(db.Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<ActivityType {self.name}>"

    def to_dict(self):
        return {
            "id": self.id,
            "nombre": self.name,
            "descripcion": self.description,
            "requiere_grupo": self.requires_group,
            "requiere_estudiantes": self.requires_student_count,
            "docencia_directa": self.is_direct_teaching,
        }


class ActivityRecord(db.Model):
    """Actividad registrada en el plan de un profesor"""

    __tablename__ = "activity_records"
    __table_args__ = (
        db.CheckConstraint("hours > 0", name="ck_activity_records_hours_positive"),
        db.Index("idx_activity_records_user_date", "user_id", "date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )
    activity_type_id = db.Column(
        db.Integer, db.ForeignKey("activity_types.id"), nullable=False, index=True
    )
    date = db.Column(db.Date, nullable=False, index=True)
    hours = db.Column(db.Numeric(7, 2), nullable=False)
    group_name = db.Column(db.String(50))  # grupo_clase
    student_count = db.Column(db.Integer)
    description = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    activity_type = db.relationship("ActivityType")

    def __repr__(self):
        return f"<ActivityRecord {self.id} user={self.user_id} {self.date}>"

    def to_dict(self):
        return {
            "id": self.id,
            "usuario_id": self.user_id,
            "tipo_actividad_id": self.activity_type_id,
            "nombre_tipo_actividad": self.activity_type.name if self.activity_type else None,
            "fecha": self.date.isoformat() if self.date else None,
            "horas_dedicadas": float(self.hours) if self.hours is not None else None,
            "grupo_clase": self.group_name,
            "cantidad_estudiantes": self.student_count,
            "descripcion_adicional": self.description,
            "fecha_registro": _iso(self.created_at),
        }


# =============================================================================
# CATEGORY CHANGE REQUESTS
# =============================================================================


class CategoryChangeRequest(db.Model):
    """Solicitud de cambio de categoria docente"""

    __tablename__ = "category_change_requests"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )
    requested_category_id = db.Column(
        db.Integer, db.ForeignKey("categories.id"), nullable=False
    )
    status = db.Column(
        db.String(20), default=RequestStatus.PENDING.value, nullable=False, index=True
    )
    admin_notes = db.Column(db.Text)
    requested_at = db.Column(db.DateTime, default=datetime.utcnow)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    reviewed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    user = db.relationship(
        "User",
        foreign_keys=[user_id],
        backref=db.backref("category_requests", cascade="all, delete-orphan"),
    )
    reviewed_by = db.relationship("User", foreign_keys=[reviewed_by_id])
    requested_category = db.relationship("Category")

    documents = db.relationship(
        "RequestDocument",
        backref="request",
        cascade="all, delete-orphan",
        order_by="RequestDocument.uploaded_at",
    )
    publications = db.relationship(
        "RequestPublication",
        backref="request",
        cascade="all, delete-orphan",
        order_by="RequestPublication.added_at",
    )

    def __repr__(self):
        return f"<CategoryChangeRequest {self.id} {self.status}>"

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    def to_dict(self, detail: bool = False):
        data = {
            "id": self.id,
            "usuario_id": self.user_id,
            "nombre_usuario": self.user.username if self.user else None,
            "nombre": self.user.first_name if self.user else None,
            "apellidos": self.user.last_name if self.user else None,
            "categoria_solicitada_id": self.requested_category_id,
            "nombre_categoria_solicitada": (
                self.requested_category.name if self.requested_category else None
            ),
            "estado": self.status,
            "observaciones_admin": self.admin_notes,
            "fecha_solicitud": _iso(self.requested_at),
            "fecha_revision": _iso(self.reviewed_at),
        }
        if detail:
            data["documentos"] = [d.to_dict() for d in self.documents]
            data["publicaciones"] = [p.to_dict() for p in self.publications]
        return data


class RequestDocument(db.Model):
    """Documento adjunto a una solicitud"""

    __tablename__ = "request_documents"

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.Integer,
        db.ForeignKey("category_change_requests.id"),
        nullable=False,
        index=True,
    )
    file_name = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)
    mime_type = db.Column(db.String(100))
    size_bytes = db.Column(db.Integer)
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "nombre_archivo": self.file_name,
            "path_archivo": self.file_path,
            "tipo_mime": self.mime_type,
            "tamano_bytes": self.size_bytes,
            "fecha_carga": _iso(self.uploaded_at),
        }


class RequestPublication(db.Model):
    """Enlace a una publicacion que respalda la solicitud"""

    __tablename__ = "request_publications"

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.Integer,
        db.ForeignKey("category_change_requests.id"),
        nullable=False,
        index=True,
    )
    url = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text)
    added_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "url": self.url,
            "descripcion": self.description,
            "fecha_agregado": _iso(self.added_at),
        }


# =============================================================================
# NOTIFICATIONS
# =============================================================================


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(50), default=NotificationType.GENERAL.value)
    link = db.Column(db.String(255))
    is_read = db.Column(db.Boolean, default=False, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Notification {self.id} user={self.user_id}>"

    def to_dict(self):
        return {
            "id": self.id,
            "mensaje": self.message,
            "tipo": self.type,
            "enlace": self.link,
            "leida": self.is_read,
            "fecha_creacion": _iso(self.created_at),
        }


# =============================================================================
# NEWS / EVENTS / CONVOCATORIAS
# =============================================================================


class News(db.Model):
    """Noticia institucional"""

    __tablename__ = "news"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    image_base64 = db.Column(db.Text)  # data URI
    is_public = db.Column(db.Boolean, default=True, nullable=False)  # ispublica
    is_published = db.Column(db.Boolean, default=True, nullable=False)  # publicada
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    created_by = db.relationship("User")

    def __repr__(self):
        return f"<News {self.title}>"

    def to_dict(self):
        return {
            "id": self.id,
            "titulo": self.title,
            "contenido": self.content,
            "imagen_base64": self.image_base64,
            "ispublica": self.is_public,
            "publicada": self.is_published,
            "autor": self.created_by.full_name if self.created_by else None,
            "fecha_creacion": _iso(self.created_at),
            "fecha_actualizacion": _iso(self.updated_at),
        }


class Event(db.Model):
    """Evento"""

    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    event_date = db.Column(db.DateTime, nullable=False, index=True)
    location = db.Column(db.String(255))
    is_public = db.Column(db.Boolean, default=True, nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self):
        return f"<Event {self.title}>"

    def to_dict(self):
        return {
            "id": self.id,
            "titulo": self.title,
            "descripcion": self.description,
            "fecha_evento": _iso(self.event_date),
            "ubicacion": self.location,
            "publico": self.is_public,
            "fecha_creacion": _iso(self.created_at),
        }


class Convocatoria(db.Model):
    """Convocatoria (llamado a concurso, beca, proyecto...)"""

    __tablename__ = "convocatorias"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    is_public = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self):
        return f"<Convocatoria {self.title}>"

    def to_dict(self):
        return {
            "id": self.id,
            "titulo": self.title,
            "descripcion": self.description,
            "publico": self.is_public,
            "fecha_creacion": _iso(self.created_at),
        }


def _iso(value):
    return value.isoformat() if value else None


# =============================================================================
# DEFAULT DATA
# =============================================================================

DEFAULT_ROLES = [
    ("Decano", "Dirección de la facultad"),
    ("Jefe de Departamento", "Dirección de departamento docente"),
    (ROLE_ADMIN, "Administración del sistema"),
    (ROLE_PROFESSOR, "Profesor"),
]

# Norma semanal: 190.6 h mensuales / 4.33 semanas
DEFAULT_CATEGORIES = [
    ("Titular", Decimal("44.00")),
    ("Auxiliar", Decimal("44.00")),
    ("Asistente", Decimal("44.00")),
    ("Instructor", Decimal("44.00")),
    ("Recién Graduado", Decimal("44.00")),
]

# (nombre, requiere_grupo, requiere_estudiantes)
DEFAULT_ACTIVITY_TYPES = [
    ("Docencia Directa de Pregrado y Posgrado", True, True),
    ("Preparación de la Asignatura", True, False),
    ("Tutoría de Estudiantes de Pregrado", False, True),
    ("Trabajo Metodológico", False, False),
    ("Investigación Científica", False, False),
    ("Superación Profesional", False, False),
    ("Extensión Universitaria", False, False),
]


def init_default_data(app, policy=None):
    """Crea roles, categorias y tipos de actividad si la base esta vacia."""
    from workload.workload_calculator import DEFAULT_POLICY, classify_activity_type

    policy = policy or DEFAULT_POLICY
    with app.app_context():
        if Role.query.count() == 0:
            for name, description in DEFAULT_ROLES:
                db.session.add(Role(name=name, description=description))
            print(">>> Created default roles")

        if Category.query.count() == 0:
            for name, weekly_norm in DEFAULT_CATEGORIES:
                db.session.add(Category(name=name, weekly_hour_norm=weekly_norm))
            print(">>> Created default categories")

        if ActivityType.query.count() == 0:
            for name, requires_group, requires_students in DEFAULT_ACTIVITY_TYPES:
                flags = classify_activity_type(name, policy)
                db.session.add(
                    ActivityType(
                        name=name,
                        requires_group=requires_group,
                        requires_student_count=requires_students,
                        is_direct_teaching=flags.is_direct_teaching,
                        counts_as_pregrad=flags.counts_as_pregrad,
                        counts_as_preparation=flags.counts_as_preparation,
                    )
                )
            print(">>> Created default activity types")

        db.session.commit()
