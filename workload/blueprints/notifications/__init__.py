from .routes import notification_bp  # noqa: F401
