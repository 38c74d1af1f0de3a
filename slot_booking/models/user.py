"""User model definitions."""

from sqlalchemy import Column, Integer, String
from slot_booking.database import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String)
    role = Column(String, nullable=False, default=ROLE_USER)  # user/admin

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
