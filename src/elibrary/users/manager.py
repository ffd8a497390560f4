"""User manager for member and admin records."""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.sqlite import Database, get_db
from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..logging import get_logger
from .models import User
from .schemas import Role, UserCreate

logger = get_logger(__name__)


class UserManager:
    """Manages library users."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize user manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def create_user(self, data: UserCreate) -> User:
        """Register a user.

        Args:
            data: User creation data

        Returns:
            Created user

        Raises:
            ValidationError: Email already registered
        """
        with self.db.transaction() as session:
            if self.get_user_by_email(data.email, session=session):
                raise ValidationError(f"User with email {data.email} already exists")

            user = User(name=data.name, email=data.email, role=data.role.value)
            session.add(user)
            try:
                session.flush()
            except IntegrityError as e:
                raise ValidationError(f"User with email {data.email} already exists") from e
            session.expunge(user)

        logger.info("Registered %s %s", user.role, user.id)
        return user

    def create_admin(self, name: str, email: str) -> User:
        """Create the first admin account.

        Raises:
            ConflictError: An admin already exists
        """
        with self.db.get_session() as session:
            admins = session.execute(
                select(func.count()).where(User.role == Role.ADMIN.value)
            ).scalar() or 0
        if admins:
            raise ConflictError("Admin user already exists")
        return self.create_user(UserCreate(name=name, email=email, role=Role.ADMIN))

    def get_user(self, user_id: str, session: Optional[Session] = None) -> User:
        """Get a user by ID.

        Raises:
            NotFoundError: No user with that ID
        """

        def _get(s: Session) -> User:
            user = s.get(User, user_id)
            if user is None:
                raise NotFoundError(f"User not found: {user_id}")
            return user

        if session:
            return _get(session)
        with self.db.get_session() as s:
            user = _get(s)
            s.expunge(user)
            return user

    def get_user_by_email(
        self, email: str, session: Optional[Session] = None
    ) -> Optional[User]:
        """Get a user by email (case-insensitive), or None."""

        def _get(s: Session) -> Optional[User]:
            stmt = select(User).where(func.lower(User.email) == email.strip().lower())
            return s.execute(stmt).scalar_one_or_none()

        if session:
            return _get(session)
        with self.db.get_session() as s:
            user = _get(s)
            if user:
                s.expunge(user)
            return user

    def list_users(self, role: Optional[Role] = None) -> list[User]:
        """List users ordered by name.

        Args:
            role: Only return users with this role

        Returns:
            List of users
        """
        with self.db.get_session() as session:
            stmt = select(User).order_by(User.name)
            if role:
                stmt = stmt.where(User.role == role.value)

            users = session.execute(stmt).scalars().all()
            for u in users:
                session.expunge(u)
            return list(users)
