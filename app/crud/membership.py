from typing import List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select
from app.crud.base import CRUDBase
from app.models.membership import Membership
from app.models.user import UserRole
from app.schemas.membership import MembershipCreate, MembershipUpdate


class CRUDMembership(CRUDBase[Membership, MembershipCreate, MembershipUpdate]):
    """
    CRUD operations for Membership model.

    Lookups by (tenant, user) are never cached: access decisions read the
    membership table on every request.
    """

    def get_for_user(self, db: Session, *, tenant_id: int, user_id: int) -> Optional[Membership]:
        stmt = select(Membership).where(
            Membership.tenant_id == tenant_id,
            Membership.user_id == user_id,
        )
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def get_multi_with_users(self, db: Session, *, tenant_id: int) -> List[Membership]:
        stmt = select(Membership).where(
            Membership.tenant_id == tenant_id
        ).options(selectinload(Membership.user)).order_by(Membership.id)
        return list(db.execute(stmt).scalars().all())

    def create_for_user(
        self,
        db: Session,
        *,
        tenant_id: int,
        user_id: int,
        role: UserRole,
        permissions: Optional[dict] = None,
    ) -> Membership:
        """
        Raises:
            ValueError: If the user is already a member of the tenant
        """
        db_obj = Membership(
            tenant_id=tenant_id,
            user_id=user_id,
            role=role,
            permissions=permissions,
        )
        db.add(db_obj)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValueError("User is already a member of this tenant")
        db.refresh(db_obj)
        return db_obj


# Create singleton instance
membership = CRUDMembership(Membership)
