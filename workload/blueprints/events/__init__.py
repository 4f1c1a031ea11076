from .routes import event_bp  # noqa: F401
