from .analytics import DailyAnalytics
from .membership import Membership
from .menu import Category, MenuItem
from .qr_code import QrCode, ScanEvent
from .subscription import Subscription, SubscriptionPlan, SubscriptionStatus
from .tenant import Tenant, TenantSettings
from .user import User, UserRole
