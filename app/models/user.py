import enum
from sqlalchemy import Column, Integer, String, Boolean, Enum
from sqlalchemy.orm import relationship
from app.database import Base, TimestampMixin


class UserRole(str, enum.Enum):
    """Capability tier of a user. Not tied to any particular tenant."""
    PLATFORM_ADMIN = "platform_admin"
    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"


class User(Base, TimestampMixin):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    phone = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.OWNER)
    is_active = Column(Boolean, default=True, nullable=False)
    # Set for accounts created on the owner's behalf; allows one password-less login
    requires_password_change = Column(Boolean, default=False, nullable=False)

    owned_tenants = relationship("Tenant", back_populates="owner")
    memberships = relationship("Membership", back_populates="user", cascade="all, delete-orphan")
