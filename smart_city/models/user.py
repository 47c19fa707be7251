"""ORM model for application users (auth and RBAC)."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from smart_city.models.base import Base, JSONType


def default_preferences() -> dict:
    return {
        "notifications": True,
        "language": "es",
        "theme": "light",
        "emailUpdates": True,
    }


class User(Base):
    """
    Citizen, operator or administrator account.

    role: 'CITIZEN', 'OPERATOR' or 'ADMIN' (see smart_city.core.roles).
    Accounts are deactivated by clearing is_active, never deleted.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(32), nullable=True)
    address = Column(String(200), nullable=True)
    city = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    role = Column(String(32), nullable=False, default="CITIZEN")
    is_active = Column(Boolean, nullable=False, default=True)
    avatar = Column(String(1024), nullable=True)
    preferences = Column(JSONType, nullable=True, default=default_preferences)
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

    sessions = relationship(
        "UserSession",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    accidents = relationship("Accident", back_populates="reporter")
