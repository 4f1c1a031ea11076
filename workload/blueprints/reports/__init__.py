from .routes import report_bp  # noqa: F401
