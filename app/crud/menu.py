from typing import List
from sqlalchemy.orm import Session, selectinload, with_loader_criteria
from sqlalchemy import select
from app.crud.base import CRUDBase
from app.models.menu import Category, MenuItem
from app.schemas.menu import CategoryCreate, CategoryUpdate, MenuItemCreate, MenuItemUpdate


class CRUDCategory(CRUDBase[Category, CategoryCreate, CategoryUpdate]):

    def get_multi_ordered(self, db: Session, *, tenant_id: int) -> List[Category]:
        stmt = select(Category).where(
            Category.tenant_id == tenant_id
        ).order_by(Category.display_order, Category.id)
        return list(db.execute(stmt).scalars().all())

    def get_public_tree(self, db: Session, *, tenant_id: int) -> List[Category]:
        """Active categories with their available items, both in display order."""
        stmt = select(Category).where(
            Category.tenant_id == tenant_id,
            Category.is_active.is_(True),
        ).options(
            selectinload(Category.items),
            with_loader_criteria(MenuItem, MenuItem.is_available.is_(True)),
        ).order_by(Category.display_order, Category.id)
        return list(db.execute(stmt).scalars().all())


class CRUDMenuItem(CRUDBase[MenuItem, MenuItemCreate, MenuItemUpdate]):
    pass


# Create singleton instances
category = CRUDCategory(Category)
menu_item = CRUDMenuItem(MenuItem)
