"""Admin blueprint package."""

from flask import Blueprint

admin_bp = Blueprint("admin", __name__)

# Import route modules so decorators attach to `admin_bp`.
from . import users  # noqa: F401
from . import roles  # noqa: F401
from . import departments  # noqa: F401
from . import category_requests  # noqa: F401
from . import planning  # noqa: F401
