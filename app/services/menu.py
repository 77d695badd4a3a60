from typing import Dict, List, Optional
from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from app.crud.menu import category as category_crud, menu_item as menu_item_crud
from app.crud.tenant import tenant as tenant_crud
from app.core.exceptions import TenantNotFoundError
from app.models.menu import Category, MenuItem
from app.schemas.menu import (
    CategoryCreate,
    CategoryUpdate,
    MenuItemCreate,
    MenuItemUpdate,
    PublicCategory,
    PublicMenuItem,
    PublicMenuResponse,
    PublicTenant,
)
from app.schemas.tenant import TenantSettingsResponse


def translate(base: Optional[str], translations: Optional[Dict[str, str]], language: str) -> Optional[str]:
    """Translated text for ``language``, falling back to the base text."""
    if translations and translations.get(language):
        return translations[language]
    return base


class MenuService:
    """Menu management for the dashboard and the translated public menu."""

    def __init__(self, categories=category_crud, items=menu_item_crud, tenants=tenant_crud):
        self.categories = categories
        self.items = items
        self.tenants = tenants

    def create_category(self, db: Session, data: CategoryCreate, tenant_id: int) -> Category:
        return self.categories.create(db=db, obj_in=data, tenant_id=tenant_id)

    def get_categories(self, db: Session, tenant_id: int) -> List[Category]:
        return self.categories.get_multi_ordered(db, tenant_id=tenant_id)

    def create_item(self, db: Session, data: MenuItemCreate, tenant_id: int) -> MenuItem:
        """
        Raises:
            HTTPException 404: If the category does not belong to the tenant
        """
        if self.categories.get(db=db, id=data.category_id, tenant_id=tenant_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )
        return self.items.create(db=db, obj_in=data, tenant_id=tenant_id)

    def update_category(self, db: Session, category_id: int, data: CategoryUpdate, tenant_id: int) -> Category:
        category = self.categories.get(db=db, id=category_id, tenant_id=tenant_id)
        if category is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )
        return self.categories.update(db, db_obj=category, obj_in=data)

    def update_item(self, db: Session, item_id: int, data: MenuItemUpdate, tenant_id: int) -> MenuItem:
        item = self.items.get(db=db, id=item_id, tenant_id=tenant_id)
        if item is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Menu item not found"
            )
        return self.items.update(db, db_obj=item, obj_in=data)

    def get_public_menu(self, db: Session, tenant_id: int, language: Optional[str] = None) -> PublicMenuResponse:
        """
        Category/item tree for visitors, translated into ``language``.

        Only active categories and available items are included. The caller
        is responsible for the subscription gate.
        """
        tenant = self.tenants.get_with_details(db, tenant_id)
        if tenant is None or not tenant.is_active:
            raise TenantNotFoundError(tenant_id)

        settings = tenant.settings
        language = language or (settings.default_language if settings else "en")

        categories = [
            PublicCategory(
                id=c.id,
                name=translate(c.name, c.name_translations, language),
                description=c.description,
                items=[
                    PublicMenuItem(
                        id=i.id,
                        name=translate(i.name, i.name_translations, language),
                        description=translate(i.description, i.description_translations, language),
                        price=i.price,
                        image=i.image,
                    )
                    for i in c.items
                ],
            )
            for c in self.categories.get_public_tree(db, tenant_id=tenant_id)
        ]

        return PublicMenuResponse(
            tenant=PublicTenant(
                id=tenant.id,
                name=tenant.name,
                description=tenant.description,
                logo=(settings.custom_logo if settings and settings.custom_logo else tenant.logo),
                currency=tenant.currency,
            ),
            settings=TenantSettingsResponse.model_validate(settings) if settings else None,
            categories=categories,
            current_language=language,
            available_languages=(settings.languages if settings else ["en"]),
        )


# Create a singleton instance
menu_service = MenuService()
