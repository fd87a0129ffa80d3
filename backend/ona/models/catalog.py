from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import (
    ACCESS_TYPES,
    COMPONENT_STATUSES,
    CSS_FRAMEWORKS,
    FRAMEWORKS,
    LICENSE_TIERS,
    decimal_to_float,
    id_column,
    one_of,
)


class Product(db.Model):
    """
    Top-level namespace (e.g. "ui-kit", "templates").

    Deleting a product cascades to its categories and everything below them.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("slug", name="uq_products_slug"),
    )

    id = id_column()
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    categories = db.relationship(
        "Category",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "sortOrder": self.sort_order,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Category(db.Model):
    """
    Second level of the catalog. Slug is unique per product, enforced by the
    composite unique constraint rather than only by the service check.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("product_id", "slug", name="uq_categories_product_slug"),
        db.Index("ix_categories_product_sort", "product_id", "sort_order"),
    )

    id = id_column()
    product_id = db.Column(
        db.String(36), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    icon_name = db.Column(db.String(50), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    product = db.relationship("Product", back_populates="categories")
    subcategories = db.relationship(
        "Subcategory",
        back_populates="category",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "iconName": self.icon_name,
            "sortOrder": self.sort_order,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Subcategory(db.Model):
    __tablename__ = "subcategories"
    __table_args__ = (
        db.UniqueConstraint("category_id", "slug", name="uq_subcategories_category_slug"),
        db.Index("ix_subcategories_category_sort", "category_id", "sort_order"),
    )

    id = id_column()
    category_id = db.Column(
        db.String(36), db.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    category = db.relationship("Category", back_populates="subcategories")
    components = db.relationship(
        "Component",
        back_populates="subcategory",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "categoryId": self.category_id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "sortOrder": self.sort_order,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Component(db.Model):
    """
    A sellable UI component.

    view_count and copy_count are only ever changed by single-statement
    increments (see repositories.component_repository).
    """
    __tablename__ = "components"
    __table_args__ = (
        db.UniqueConstraint("subcategory_id", "slug", name="uq_components_subcategory_slug"),
        db.Index("ix_components_free_status", "is_free", "status"),
        one_of("status", COMPONENT_STATUSES, "ck_components_status"),
        one_of("required_tier", LICENSE_TIERS, "ck_components_required_tier"),
        one_of("access_type", ACCESS_TYPES, "ck_components_access_type"),
        db.CheckConstraint("view_count >= 0 AND copy_count >= 0", name="ck_components_counters"),
    )

    id = id_column()
    subcategory_id = db.Column(
        db.String(36), db.ForeignKey("subcategories.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)

    is_free = db.Column(db.Boolean, nullable=False, default=False, index=True)
    required_tier = db.Column(db.String(16), nullable=False, default="pro")  # free, pro, team, enterprise
    access_type = db.Column(db.String(16), nullable=False, default="preview_only")

    status = db.Column(db.String(16), nullable=False, default="draft", index=True)  # draft, published, archived, deprecated
    is_new = db.Column(db.Boolean, nullable=False, default=False)
    is_featured = db.Column(db.Boolean, nullable=False, default=False)

    conversion_rate = db.Column(db.Numeric(5, 2), nullable=True)
    tested_companies = db.Column(db.JSON, nullable=True)

    preview_image_large = db.Column(db.String(500), nullable=True)
    preview_image_small = db.Column(db.String(500), nullable=True)
    preview_video_url = db.Column(db.String(500), nullable=True)

    tags = db.Column(db.JSON, nullable=True)  # ordered list of strings
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    view_count = db.Column(db.Integer, nullable=False, default=0)
    copy_count = db.Column(db.Integer, nullable=False, default=0)

    published_at = db.Column(db.DateTime(timezone=True), nullable=True)
    archived_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    subcategory = db.relationship("Subcategory", back_populates="components")
    versions = db.relationship(
        "ComponentVersion",
        back_populates="component",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subcategoryId": self.subcategory_id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "isFree": self.is_free,
            "requiredTier": self.required_tier,
            "accessType": self.access_type,
            "status": self.status,
            "isNew": self.is_new,
            "isFeatured": self.is_featured,
            "conversionRate": decimal_to_float(self.conversion_rate),
            "testedCompanies": list(self.tested_companies or []),
            "previewImageLarge": self.preview_image_large,
            "previewImageSmall": self.preview_image_small,
            "previewVideoUrl": self.preview_video_url,
            "tags": list(self.tags or []),
            "sortOrder": self.sort_order,
            "viewCount": self.view_count,
            "copyCount": self.copy_count,
            "publishedAt": to_utc_z(self.published_at),
            "archivedAt": to_utc_z(self.archived_at),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class ComponentVersion(db.Model):
    """
    One code variant of a component for a (framework, css_framework) pair.

    The partial unique index below allows zero or one default version per
    component; version_repository.set_as_default clears the old default in
    the same transaction before setting the new one.
    """
    __tablename__ = "component_versions"
    __table_args__ = (
        db.UniqueConstraint(
            "component_id", "framework", "css_framework", "version_number",
            name="uq_component_versions_variant",
        ),
        db.Index("ix_component_versions_framework", "framework", "css_framework"),
        one_of("framework", FRAMEWORKS, "ck_component_versions_framework"),
        one_of("css_framework", CSS_FRAMEWORKS, "ck_component_versions_css_framework"),
    )

    id = id_column()
    component_id = db.Column(
        db.String(36), db.ForeignKey("components.id", ondelete="CASCADE"), nullable=False, index=True
    )

    version_number = db.Column(db.String(20), nullable=False)
    framework = db.Column(db.String(16), nullable=False)
    css_framework = db.Column(db.String(16), nullable=False)

    code_preview = db.Column(db.Text, nullable=True)
    code_full = db.Column(db.Text, nullable=True)
    code_encrypted = db.Column(db.Text, nullable=True)

    dependencies = db.Column(db.JSON, nullable=True)
    config_required = db.Column(db.JSON, nullable=True)

    supports_dark_mode = db.Column(db.Boolean, nullable=False, default=False)
    dark_mode_code = db.Column(db.Text, nullable=True)

    integrations = db.Column(db.JSON, nullable=True)
    integration_code = db.Column(db.JSON, nullable=True)
    files = db.Column(db.JSON, nullable=True)

    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    component = db.relationship("Component", back_populates="versions")

    def to_dict(self, include_code: bool = True) -> dict:
        data = {
            "id": self.id,
            "componentId": self.component_id,
            "versionNumber": self.version_number,
            "framework": self.framework,
            "cssFramework": self.css_framework,
            "codePreview": self.code_preview,
            "codeFull": self.code_full,
            "codeEncrypted": self.code_encrypted,
            "dependencies": self.dependencies,
            "configRequired": self.config_required,
            "supportsDarkMode": self.supports_dark_mode,
            "darkModeCode": self.dark_mode_code,
            "integrations": self.integrations,
            "integrationCode": self.integration_code,
            "files": self.files,
            "isDefault": self.is_default,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if not include_code:
            for key in ("codeFull", "codeEncrypted", "darkModeCode", "integrationCode", "files"):
                data[key] = None
        return data


db.Index(
    "uq_component_versions_one_default",
    ComponentVersion.component_id,
    unique=True,
    postgresql_where=ComponentVersion.is_default == db.true(),
    sqlite_where=ComponentVersion.is_default == db.true(),
)
