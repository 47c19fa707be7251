"""SQLAlchemy ORM models."""

from smart_city.models.accident import Accident
from smart_city.models.base import Base
from smart_city.models.city_zone import CityZone
from smart_city.models.session import UserSession
from smart_city.models.user import User

__all__ = ["Accident", "Base", "CityZone", "User", "UserSession"]
