from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, or_
from app.models.tenant import Tenant, TenantSettings
from app.models.subscription import Subscription, SubscriptionPlan, SubscriptionStatus
from app.models.membership import Membership


class CRUDTenant:
    """
    CRUD operations for Tenant model.

    Note: Tenant model doesn't have tenant_id (it IS the tenant),
    so we don't inherit from CRUDBase.
    """

    def __init__(self):
        self.model = Tenant

    def get(self, db: Session, tenant_id: int) -> Optional[Tenant]:
        stmt = select(Tenant).where(Tenant.id == tenant_id)
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def get_with_details(self, db: Session, tenant_id: int) -> Optional[Tenant]:
        """Tenant with subscription, settings and owner loaded in one go."""
        stmt = select(Tenant).where(Tenant.id == tenant_id).options(
            selectinload(Tenant.subscription),
            selectinload(Tenant.settings),
            selectinload(Tenant.owner),
        )
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def slug_exists(self, db: Session, slug: str) -> bool:
        stmt = select(Tenant.id).where(Tenant.slug == slug)
        return db.execute(stmt).first() is not None

    def get_multi_for_user(self, db: Session, user_id: int) -> List[Tenant]:
        """Tenants the user owns or holds a membership in."""
        member_of = select(Membership.tenant_id).where(Membership.user_id == user_id)
        stmt = select(Tenant).where(
            or_(Tenant.owner_id == user_id, Tenant.id.in_(member_of))
        ).order_by(Tenant.id)
        return list(db.execute(stmt).scalars().all())

    def get_multi(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[Tenant]:
        stmt = select(Tenant).order_by(Tenant.id).offset(skip).limit(limit)
        return list(db.execute(stmt).scalars().all())

    def create_with_subscription(
        self,
        db: Session,
        *,
        name: str,
        slug: str,
        owner_id: int,
        plan: SubscriptionPlan,
        period_start: datetime,
        period_end: datetime,
        description: Optional[str] = None,
        currency: str = "EGP",
        timezone: str = "UTC",
        languages: Optional[List[str]] = None,
        default_language: str = "en",
    ) -> Tenant:
        """
        Create a tenant together with its subscription and settings.

        All three rows are committed in one transaction, so a tenant never
        exists without a subscription. The caller may have flushed other
        rows (e.g. a freshly created owner) into the same transaction.

        Raises:
            ValueError: If the slug is already taken
        """
        try:
            tenant = Tenant(
                name=name,
                slug=slug,
                owner_id=owner_id,
                description=description,
                currency=currency,
                timezone=timezone,
            )
            db.add(tenant)
            db.flush()  # Get tenant.id without committing

            db.add(Subscription(
                tenant_id=tenant.id,
                plan=plan,
                status=SubscriptionStatus.ACTIVE,
                current_period_start=period_start,
                current_period_end=period_end,
                cancel_at_period_end=False,
            ))
            db.add(TenantSettings(
                tenant_id=tenant.id,
                languages=languages or ["en"],
                default_language=default_language,
            ))

            db.commit()
            db.refresh(tenant)
            return tenant

        except IntegrityError as e:
            db.rollback()
            if "slug" in str(e).lower():
                raise ValueError(f"Tenant with slug {slug} already exists")
            raise e

    def delete(self, db: Session, *, db_obj: Tenant) -> None:
        """Delete a tenant; subscription, settings and tenant data cascade."""
        db.delete(db_obj)
        db.commit()


# Create singleton instance
tenant = CRUDTenant()
