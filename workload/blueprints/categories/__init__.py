from .routes import category_bp  # noqa: F401
