from .routes import news_bp  # noqa: F401
