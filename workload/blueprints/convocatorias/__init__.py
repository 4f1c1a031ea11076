from .routes import convocatoria_bp  # noqa: F401
