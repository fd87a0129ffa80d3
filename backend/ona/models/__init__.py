from .catalog import Product, Category, Subcategory, Component, ComponentVersion
from .accounts import User, AuthToken
from .licensing import License
from .activity import AuditLog, UserFavorite, ComponentView, ComponentCopy

__all__ = [
    'Product', 'Category', 'Subcategory', 'Component', 'ComponentVersion',
    'User', 'AuthToken',
    'License',
    'AuditLog', 'UserFavorite', 'ComponentView', 'ComponentCopy',
]
