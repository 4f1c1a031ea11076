from .routes import planning_bp  # noqa: F401
