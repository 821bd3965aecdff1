from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.orm import relationship
from database.db import Base
from datetime import datetime, timezone
import enum


def _utcnow():
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    SUPPORT = "support"


class SubscriptionTier(str, enum.Enum):
    FREE = "free"
    LIGHT = "light"
    PRO = "pro"


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)  # UUID or Auth0 ID
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    # Plain text column; tier values are validated in the application layer
    subscription_tier = Column(String, default=SubscriptionTier.FREE.value, nullable=False)
    role = Column(Enum(UserRole, values_callable=lambda x: [e.value for e in x]), default=UserRole.USER, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    # Relationships
    entries = relationship("Entry", back_populates="owner", cascade="all, delete-orphan")
    tags = relationship("Tag", back_populates="owner", cascade="all, delete-orphan")
    projects = relationship("Project", back_populates="owner", cascade="all, delete-orphan")
