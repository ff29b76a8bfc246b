import enum
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
from app.models.mixins import UUIDPrimaryKeyMixin


class UserRole(str, enum.Enum):
    """User role enumeration - defines platform access level."""
    ADMIN = "admin"
    MEMBER = "member"
    GUEST = "guest"


class User(UUIDPrimaryKeyMixin, Base):
    """User model - platform accounts (authenticated upstream by the identity provider)."""

    __tablename__ = "users"

    email = Column(String(255), nullable=True, index=True)
    display_name = Column(String(255), nullable=True)
    role = Column(String(50), default=UserRole.MEMBER.value, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    api_keys = relationship("ApiKey", back_populates="user")
    credentials = relationship("UserCredential", back_populates="user", cascade="all, delete-orphan")
