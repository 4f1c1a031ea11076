"""Initial schema: users, categories, activity plan, category requests, content

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade():
    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("code", sa.String(length=20), unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=50), nullable=False, unique=True),
        sa.Column("description", sa.String(length=255)),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("weekly_hour_norm", sa.Numeric(6, 2), nullable=False),
        sa.Column("description", sa.Text()),
        *_timestamps(),
        sa.CheckConstraint(
            "weekly_hour_norm > 0", name="ck_categories_weekly_norm_positive"
        ),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=True),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column("first_name", sa.String(length=100)),
        sa.Column("last_name", sa.String(length=150)),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=True),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("paid_dues", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("society_member", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("failed_login_count", sa.Integer(), nullable=True),
        sa.Column("locked_until", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role_id", "users", ["role_id"])
    op.create_index("ix_users_category_id", "users", ["category_id"])
    op.create_index("ix_users_department_id", "users", ["department_id"])

    op.create_table(
        "activity_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        sa.Column("requires_group", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_student_count", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_direct_teaching", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("counts_as_pregrad", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("counts_as_preparation", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_table(
        "activity_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("activity_type_id", sa.Integer(), sa.ForeignKey("activity_types.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("hours", sa.Numeric(7, 2), nullable=False),
        sa.Column("group_name", sa.String(length=50)),
        sa.Column("student_count", sa.Integer()),
        sa.Column("description", sa.String(length=500)),
        *_timestamps(),
        sa.CheckConstraint("hours > 0", name="ck_activity_records_hours_positive"),
    )
    op.create_index("ix_activity_records_user_id", "activity_records", ["user_id"])
    op.create_index("ix_activity_records_activity_type_id", "activity_records", ["activity_type_id"])
    op.create_index("ix_activity_records_date", "activity_records", ["date"])
    op.create_index("idx_activity_records_user_date", "activity_records", ["user_id", "date"])

    op.create_table(
        "category_change_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("requested_category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Pendiente"),
        sa.Column("admin_notes", sa.Text()),
        sa.Column("requested_at", sa.DateTime(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("reviewed_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
    )
    op.create_index("ix_category_change_requests_user_id", "category_change_requests", ["user_id"])
    op.create_index("ix_category_change_requests_status", "category_change_requests", ["status"])

    op.create_table(
        "request_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("request_id", sa.Integer(), sa.ForeignKey("category_change_requests.id"), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=False),
        sa.Column("mime_type", sa.String(length=100)),
        sa.Column("size_bytes", sa.Integer()),
        sa.Column("uploaded_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_request_documents_request_id", "request_documents", ["request_id"])
    op.create_table(
        "request_publications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("request_id", sa.Integer(), sa.ForeignKey("category_change_requests.id"), nullable=False),
        sa.Column("url", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("added_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_request_publications_request_id", "request_publications", ["request_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=50)),
        sa.Column("link", sa.String(length=255)),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_is_read", "notifications", ["is_read"])

    op.create_table(
        "news",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("image_base64", sa.Text()),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_news_created_at", "news", ["created_at"])
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("event_date", sa.DateTime(), nullable=False),
        sa.Column("location", sa.String(length=255)),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_events_event_date", "events", ["event_date"])
    op.create_table(
        "convocatorias",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_convocatorias_created_at", "convocatorias", ["created_at"])


def downgrade():
    for table in (
        "convocatorias",
        "events",
        "news",
        "notifications",
        "request_publications",
        "request_documents",
        "category_change_requests",
        "activity_records",
        "activity_types",
        "users",
        "categories",
        "roles",
        "departments",
    ):
        op.drop_table(table)
