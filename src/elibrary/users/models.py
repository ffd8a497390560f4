"""SQLAlchemy model for library members and administrators.

Tables:
- users: Borrowers and admins
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, timestamp_now
from .schemas import Role


class User(Base):
    """User model - someone who borrows books or runs the library."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    role: Mapped[str] = mapped_column(String(20), default=Role.USER.value, index=True)

    created_at: Mapped[str] = mapped_column(String(32), default=timestamp_now)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"

    @property
    def is_admin(self) -> bool:
        """Check if this user runs the library."""
        return self.role == Role.ADMIN.value
