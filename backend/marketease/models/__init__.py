from .inventory import Product
from .sales import Sale, SaleItem, ImmutableRecordError
from .auth import User, SessionToken, ROLE_ADMIN, ROLE_USER, ROLES
from .security import AuditLog

__all__ = [
    'Product',
    'Sale', 'SaleItem', 'ImmutableRecordError',
    'User', 'SessionToken', 'ROLE_ADMIN', 'ROLE_USER', 'ROLES',
    'AuditLog',
]
