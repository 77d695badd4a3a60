from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select, func
from app.crud.base import upsert_insert
from app.models.subscription import Subscription, SubscriptionPlan, SubscriptionStatus
from app.models.tenant import Tenant


class CRUDSubscription:
    """
    CRUD operations for Subscription model.

    Subscriptions are keyed by tenant_id (1:1), so writes go through a single
    upsert rather than separate find/create/update round trips.
    """

    def __init__(self):
        self.model = Subscription

    def get_by_tenant(self, db: Session, tenant_id: int) -> Optional[Subscription]:
        stmt = select(Subscription).where(
            Subscription.tenant_id == tenant_id
        ).execution_options(populate_existing=True)
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def get_by_billing_ref(self, db: Session, billing_subscription_ref: str) -> Optional[Subscription]:
        stmt = select(Subscription).where(
            Subscription.billing_subscription_ref == billing_subscription_ref
        )
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def get_multi_with_tenants(self, db: Session) -> List[Subscription]:
        stmt = select(Subscription).options(
            selectinload(Subscription.tenant).selectinload(Tenant.owner)
        ).order_by(Subscription.created_at.desc(), Subscription.id.desc())
        return list(db.execute(stmt).scalars().all())

    def count_by_status(self, db: Session) -> Dict[str, int]:
        stmt = select(Subscription.status, func.count()).group_by(Subscription.status)
        return {row[0].value: row[1] for row in db.execute(stmt).all()}

    def count_by_plan(self, db: Session) -> Dict[str, int]:
        stmt = select(Subscription.plan, func.count()).group_by(Subscription.plan)
        return {row[0].value: row[1] for row in db.execute(stmt).all()}

    def upsert(self, db: Session, *, tenant_id: int, values: Dict[str, Any]) -> Subscription:
        """
        Create the tenant's subscription or overwrite the given fields in place.

        Fields are assigned, never incremented, so replaying the same values
        leaves the row unchanged.
        """
        insert_values = {
            "tenant_id": tenant_id,
            "plan": SubscriptionPlan.PRO,
            "status": SubscriptionStatus.ACTIVE,
            "cancel_at_period_end": False,
            **values,
        }
        stmt = upsert_insert(db, Subscription).values(**insert_values)
        if values:
            stmt = stmt.on_conflict_do_update(
                index_elements=["tenant_id"],
                set_={**values, "updated_at": func.now()},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=["tenant_id"])
        db.execute(stmt)
        db.commit()
        return self.get_by_tenant(db, tenant_id)


# Create singleton instance
subscription = CRUDSubscription()
