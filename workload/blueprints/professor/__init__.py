from .routes import professor_bp  # noqa: F401
