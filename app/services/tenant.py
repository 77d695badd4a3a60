import re
import secrets
from datetime import datetime
from typing import Callable, List, Optional
from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import TenantNotFoundError
from app.core.logging_config import logger
from app.crud.tenant import tenant as tenant_crud
from app.crud.user import user as user_crud
from app.models.subscription import SubscriptionPlan
from app.models.tenant import Tenant
from app.models.user import User, UserRole
from app.schemas.tenant import TenantCreate
from app.utils.time import add_months, utcnow


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "restaurant"


class TenantService:
    """
    Tenant creation and removal.

    A tenant is always created together with its subscription and settings,
    and deleting it removes them along with all tenant data.
    """

    def __init__(self, tenants=tenant_crud, users=user_crud, clock: Callable[[], datetime] = utcnow):
        self.tenants = tenants
        self.users = users
        self.clock = clock

    def unique_slug(self, db: Session, name: str) -> str:
        base = slugify(name)
        slug, suffix = base, 1
        while self.tenants.slug_exists(db, slug):
            suffix += 1
            slug = f"{base}-{suffix}"
        return slug

    def _resolve_owner(self, db: Session, principal: User, data: TenantCreate) -> User:
        """
        The owner of a new tenant: the caller, or for platform admins the user
        behind owner_phone (created with a pending password if unknown).
        """
        if data.owner_phone is None:
            return principal

        if principal.role != UserRole.PLATFORM_ADMIN:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only platform admins can create tenants for other owners"
            )

        owner = self.users.get_by_phone(db, data.owner_phone)
        if owner is not None:
            return owner

        logger.info(f"Creating owner account for phone={data.owner_phone}")
        return self.users.create(
            db,
            phone=data.owner_phone,
            password=secrets.token_urlsafe(16),
            first_name=data.owner_first_name,
            last_name=data.owner_last_name,
            role=UserRole.OWNER,
            requires_password_change=True,
            commit=False,
        )

    def create_tenant(self, db: Session, principal: User, data: TenantCreate) -> Tenant:
        """
        Raises:
            HTTPException 409: If the slug or a new owner's phone is taken
        """
        try:
            owner = self._resolve_owner(db, principal, data)
            now = self.clock()
            tenant = self.tenants.create_with_subscription(
                db,
                name=data.name,
                slug=self.unique_slug(db, data.name),
                owner_id=owner.id,
                plan=data.plan or SubscriptionPlan(settings.DEFAULT_SUBSCRIPTION_PLAN),
                period_start=now,
                period_end=add_months(now, data.subscription_months),
                description=data.description,
                currency=data.currency,
                timezone=data.timezone,
                languages=data.languages,
                default_language=data.default_language,
            )
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

        logger.info(f"Tenant created: id={tenant.id}, slug={tenant.slug}, owner_id={tenant.owner_id}")
        return tenant

    def get_tenants_for(self, db: Session, principal: User) -> List[Tenant]:
        if principal.role == UserRole.PLATFORM_ADMIN:
            return self.tenants.get_multi(db)
        return self.tenants.get_multi_for_user(db, principal.id)

    def get_tenant_details(self, db: Session, tenant_id: int) -> Tenant:
        tenant = self.tenants.get_with_details(db, tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant

    def delete_tenant(self, db: Session, tenant: Tenant) -> None:
        tenant_id = tenant.id
        self.tenants.delete(db, db_obj=tenant)
        logger.info(f"Tenant deleted: id={tenant_id}")


# Create a singleton instance
tenant_service = TenantService()
