# Overview: Per-entity data access modules over db.session.

from . import (
    base,
    activity_repository,
    category_repository,
    component_repository,
    license_repository,
    product_repository,
    subcategory_repository,
    user_repository,
    version_repository,
)

__all__ = [
    "base",
    "activity_repository",
    "category_repository",
    "component_repository",
    "license_repository",
    "product_repository",
    "subcategory_repository",
    "user_repository",
    "version_repository",
]
