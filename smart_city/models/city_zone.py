"""ORM model for named city zones that accidents may belong to."""

from sqlalchemy import Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import relationship

from smart_city.models.base import Base, JSONType


class CityZone(Base):
    """Zone polygon (GeoJSON-like coordinates) such as a district or neighbourhood."""

    __tablename__ = "city_zones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    type = Column(String(64), nullable=False)
    description = Column(Text, nullable=True)
    coordinates = Column(JSONType, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    accidents = relationship("Accident", back_populates="zone")
