"""ORM model for reported traffic accidents."""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from smart_city.models.base import Base


class Accident(Base):
    """
    Accident report. reported_by is null for anonymous or system-seeded
    reports; zone_id optionally ties the report to a city zone.
    """

    __tablename__ = "accidents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    location = Column(String(200), nullable=False)
    type = Column(String(32), nullable=False, index=True)
    severity = Column(String(32), nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    description = Column(Text, nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    reported_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    zone_id = Column(
        Integer,
        ForeignKey("city_zones.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    reporter = relationship("User", back_populates="accidents")
    zone = relationship("CityZone", back_populates="accidents")
