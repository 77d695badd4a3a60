from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from app.database import get_db
from app.dependencies import subscribed_member_access
from app.core.policies import TenantContext
from app.schemas.menu import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
)
from app.services.menu import menu_service
from app.core.logging_config import logger

router = APIRouter()


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    tenant_id: int,
    category_data: CategoryCreate,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(subscribed_member_access)
):
    logger.info(f"Creating category: name={category_data.name}, tenant_id={context.tenant.id}")
    result = menu_service.create_category(db, data=category_data, tenant_id=context.tenant.id)
    logger.info(f"Category created successfully: id={result.id}")
    return result


@router.get("/categories", response_model=List[CategoryResponse])
def get_categories(
    tenant_id: int,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(subscribed_member_access)
):
    """Retrieve the tenant's categories in display order."""
    return menu_service.get_categories(db, tenant_id=context.tenant.id)


@router.post("/items", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
def create_menu_item(
    tenant_id: int,
    item_data: MenuItemCreate,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(subscribed_member_access)
):
    """
    Add an item to one of the tenant's categories.

    Raises:
        HTTPException 404: If the category does not belong to the tenant
    """
    logger.info(f"Creating menu item: name={item_data.name}, tenant_id={context.tenant.id}")
    result = menu_service.create_item(db, data=item_data, tenant_id=context.tenant.id)
    logger.info(f"Menu item created successfully: id={result.id}")
    return result


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
    tenant_id: int,
    category_id: int,
    category_data: CategoryUpdate,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(subscribed_member_access)
):
    logger.info(f"Updating category: id={category_id}, tenant_id={context.tenant.id}")
    return menu_service.update_category(db, category_id=category_id, data=category_data, tenant_id=context.tenant.id)


@router.patch("/items/{item_id}", response_model=MenuItemResponse)
def update_menu_item(
    tenant_id: int,
    item_id: int,
    item_data: MenuItemUpdate,
    db: Session = Depends(get_db),
    context: TenantContext = Depends(subscribed_member_access)
):
    """
    Partially update a menu item. Hidden items (is_available false) drop out
    of the public menu.
    """
    logger.info(f"Updating menu item: id={item_id}, tenant_id={context.tenant.id}")
    return menu_service.update_item(db, item_id=item_id, data=item_data, tenant_id=context.tenant.id)
