from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
from app.models.mixins import UUIDPrimaryKeyMixin


class UserCredential(UUIDPrimaryKeyMixin, Base):
    """UserCredential model - encrypted third-party AI service keys owned by a user."""

    __tablename__ = "user_credentials"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    service = Column(String(100), nullable=False, index=True)  # e.g., "openai", "anthropic", "meshy"
    encrypted_api_key = Column(Text, nullable=False)
    key_prefix = Column(String(32), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    user = relationship("User", back_populates="credentials")
