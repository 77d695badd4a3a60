from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select
from app.models.user import User, UserRole
from app.core.security import get_password_hash


class CRUDUser:
    """
    CRUD operations for User model.

    Users are platform-wide (a user may own or staff several tenants), so
    this does not inherit the tenant-filtered CRUDBase.
    """

    def __init__(self):
        self.model = User

    def get_by_phone(self, db: Session, phone: str) -> Optional[User]:
        stmt = select(User).where(User.phone == phone)
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def get(self, db: Session, user_id: int) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def create(
        self,
        db: Session,
        *,
        phone: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: UserRole = UserRole.OWNER,
        is_active: bool = True,
        requires_password_change: bool = False,
        commit: bool = True
    ) -> User:
        """
        Create a new user with hashed password.

        Args:
            db: Database session
            phone: Login phone number
            password: Plain text password (will be hashed)
            role: Capability tier
            requires_password_change: Allow one password-less setup login
            commit: Whether to commit immediately

        Raises:
            ValueError: If a user with this phone already exists
        """
        db_user = User(
            phone=phone,
            hashed_password=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=is_active,
            requires_password_change=requires_password_change,
        )
        db.add(db_user)

        try:
            if commit:
                db.commit()
                db.refresh(db_user)
            else:
                db.flush()  # Get ID without committing
        except IntegrityError:
            db.rollback()
            raise ValueError(f"User with phone {phone} already exists")

        return db_user

    def set_password(self, db: Session, *, db_user: User, password: str) -> User:
        db_user.hashed_password = get_password_hash(password)
        db_user.requires_password_change = False
        db.commit()
        db.refresh(db_user)
        return db_user


# Create singleton instance
user = CRUDUser()
