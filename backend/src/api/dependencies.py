"""FastAPI dependencies for injection."""
from core.auth import get_admin_user, get_current_user, get_optional_user
from core.config import get_settings
from db.session import get_async_session
from services.container import get_services

__all__ = [
    "get_admin_user",
    "get_async_session",
    "get_current_user",
    "get_optional_user",
    "get_services",
    "get_settings",
]
