from app.services.subscription import subscription_service
from app.services.billing_webhook import billing_webhook_service
from .qr_code import qr_code_service
from .scan_recorder import scan_recorder
from .analytics import analytics_service
from .menu import menu_service
from .tenant import tenant_service
from .membership import membership_service
from .admin import admin_service

__all__ = [
    "subscription_service", "billing_webhook_service", "qr_code_service", "scan_recorder",
    "analytics_service", "menu_service", "tenant_service", "membership_service", "admin_service",
]
