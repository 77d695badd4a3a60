from app.crud.base import CRUDBase
from .analytics import daily_analytics
from .membership import membership
from .menu import category, menu_item
from .qr_code import qr_code
from .subscription import subscription
from .tenant import tenant
from .user import user

__all__ = [
    "CRUDBase", "daily_analytics", "membership", "category", "menu_item",
    "qr_code", "subscription", "tenant", "user",
]
