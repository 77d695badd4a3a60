from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from app.schemas.tenant import TenantSettingsResponse


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    name_translations: Optional[Dict[str, str]] = None
    display_order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    name_translations: Optional[Dict[str, str]] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(CategoryCreate):
    id: int
    tenant_id: int

    class Config:
        from_attributes = True


class MenuItemCreate(BaseModel):
    category_id: int
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    name_translations: Optional[Dict[str, str]] = None
    description_translations: Optional[Dict[str, str]] = None
    price: Decimal = Field(Decimal("0"), ge=0)
    image: Optional[str] = None
    display_order: int = 0
    is_available: bool = True


class MenuItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    name_translations: Optional[Dict[str, str]] = None
    description_translations: Optional[Dict[str, str]] = None
    price: Optional[Decimal] = Field(None, ge=0)
    image: Optional[str] = None
    display_order: Optional[int] = None
    is_available: Optional[bool] = None


class MenuItemResponse(MenuItemCreate):
    id: int
    tenant_id: int

    class Config:
        from_attributes = True


# Public menu (translated)

class PublicMenuItem(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    image: Optional[str] = None


class PublicCategory(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    items: List[PublicMenuItem]


class PublicTenant(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    logo: Optional[str] = None
    currency: str


class PublicMenuResponse(BaseModel):
    tenant: PublicTenant
    settings: Optional[TenantSettingsResponse] = None
    categories: List[PublicCategory]
    current_language: str
    available_languages: List[str]
