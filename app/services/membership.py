from typing import List
from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from app.crud.membership import membership as membership_crud
from app.crud.user import user as user_crud
from app.core.logging_config import logger
from app.models.membership import Membership
from app.models.tenant import Tenant
from app.schemas.membership import MembershipCreate, MembershipUpdate


class MembershipService:
    """Grants and revokes staff access to a tenant."""

    def __init__(self, store=membership_crud, users=user_crud):
        self.store = store
        self.users = users

    def add_member(self, db: Session, tenant: Tenant, data: MembershipCreate) -> Membership:
        """
        Raises:
            HTTPException 404: If no user has the phone number
            HTTPException 409: If the user owns the tenant or is already a member
        """
        user = self.users.get_by_phone(db, data.phone)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )
        if user.id == tenant.owner_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="The owner already has access to this tenant"
            )

        try:
            membership = self.store.create_for_user(
                db,
                tenant_id=tenant.id,
                user_id=user.id,
                role=data.role,
                permissions=data.permissions,
            )
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

        logger.info(f"Membership granted: tenant_id={tenant.id}, user_id={user.id}, role={data.role.value}")
        return membership

    def get_members(self, db: Session, tenant_id: int) -> List[Membership]:
        return self.store.get_multi_with_users(db, tenant_id=tenant_id)

    def update_member(self, db: Session, membership_id: int, tenant_id: int, data: MembershipUpdate) -> Membership:
        membership = self.store.get(db=db, id=membership_id, tenant_id=tenant_id)
        if membership is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Membership not found"
            )
        membership = self.store.update(db, db_obj=membership, obj_in=data)
        logger.info(f"Membership updated: id={membership_id}, tenant_id={tenant_id}")
        return membership

    def remove_member(self, db: Session, membership_id: int, tenant_id: int) -> None:
        deleted = self.store.delete(db=db, id=membership_id, tenant_id=tenant_id)
        if deleted is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Membership not found"
            )
        logger.info(f"Membership revoked: id={membership_id}, tenant_id={tenant_id}")


# Create a singleton instance
membership_service = MembershipService()
