"""Core app configuration and database."""

from smart_city.core.config import get_settings, settings
from smart_city.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
