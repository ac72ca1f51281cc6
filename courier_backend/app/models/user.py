"""
User model

Admin accounts for the back office. Passwords are bcrypt hashes
(see app.core.security).
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum
import enum

from app.core.database import Base
from app.core.utils import utcnow


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)  # stored lowercase
    hashed_password = Column(String, nullable=False)
    role = Column(SQLEnum(UserRole, native_enum=False, length=20), default=UserRole.ADMIN, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    last_login = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User {self.email}>"
