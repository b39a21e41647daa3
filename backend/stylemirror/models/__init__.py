from .tenancy import Store
from .auth import User, UserRole
from .catalog import ClothingItem, ClothingCategory
from .sessions import QrSession, CustomerSession
from .tryon import TryOnHistory
from .audit import UsageLog

__all__ = [
    'Store',
    'User', 'UserRole',
    'ClothingItem', 'ClothingCategory',
    'QrSession', 'CustomerSession',
    'TryOnHistory',
    'UsageLog',
]
