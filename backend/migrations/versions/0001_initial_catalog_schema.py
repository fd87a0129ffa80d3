"""Initial catalog schema: products through versions, users, licenses, activity

Revision ID: 0001_initial_catalog
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_catalog"
down_revision = None
branch_labels = None
depends_on = None

NOW = sa.text("(CURRENT_TIMESTAMP)")


def _in(column, values):
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
    ]


def upgrade():
    op.create_table(
        "products",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_products_slug"),
    )
    op.create_index("ix_products_is_active", "products", ["is_active"])

    op.create_table(
        "categories",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("product_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon_name", sa.String(50), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "slug", name="uq_categories_product_slug"),
    )
    op.create_index("ix_categories_product_id", "categories", ["product_id"])
    op.create_index("ix_categories_is_active", "categories", ["is_active"])
    op.create_index("ix_categories_product_sort", "categories", ["product_id", "sort_order"])

    op.create_table(
        "subcategories",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("category_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("category_id", "slug", name="uq_subcategories_category_slug"),
    )
    op.create_index("ix_subcategories_category_id", "subcategories", ["category_id"])
    op.create_index("ix_subcategories_is_active", "subcategories", ["is_active"])
    op.create_index("ix_subcategories_category_sort", "subcategories", ["category_id", "sort_order"])

    op.create_table(
        "components",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("subcategory_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_free", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("required_tier", sa.String(16), nullable=False, server_default="pro"),
        sa.Column("access_type", sa.String(16), nullable=False, server_default="preview_only"),
        sa.Column("status", sa.String(16), nullable=False, server_default="draft"),
        sa.Column("is_new", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("conversion_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("tested_companies", sa.JSON(), nullable=True),
        sa.Column("preview_image_large", sa.String(500), nullable=True),
        sa.Column("preview_image_small", sa.String(500), nullable=True),
        sa.Column("preview_video_url", sa.String(500), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("copy_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["subcategory_id"], ["subcategories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subcategory_id", "slug", name="uq_components_subcategory_slug"),
        sa.CheckConstraint(_in("status", ("draft", "published", "archived", "deprecated")), name="ck_components_status"),
        sa.CheckConstraint(_in("required_tier", ("free", "pro", "team", "enterprise")), name="ck_components_required_tier"),
        sa.CheckConstraint(
            _in("access_type", ("preview_only", "copy", "full_access", "download")), name="ck_components_access_type"
        ),
        sa.CheckConstraint("view_count >= 0 AND copy_count >= 0", name="ck_components_counters"),
    )
    op.create_index("ix_components_subcategory_id", "components", ["subcategory_id"])
    op.create_index("ix_components_slug", "components", ["slug"])
    op.create_index("ix_components_is_free", "components", ["is_free"])
    op.create_index("ix_components_status", "components", ["status"])
    op.create_index("ix_components_free_status", "components", ["is_free", "status"])

    op.create_table(
        "component_versions",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("component_id", sa.String(36), nullable=False),
        sa.Column("version_number", sa.String(20), nullable=False),
        sa.Column("framework", sa.String(16), nullable=False),
        sa.Column("css_framework", sa.String(16), nullable=False),
        sa.Column("code_preview", sa.Text(), nullable=True),
        sa.Column("code_full", sa.Text(), nullable=True),
        sa.Column("code_encrypted", sa.Text(), nullable=True),
        sa.Column("dependencies", sa.JSON(), nullable=True),
        sa.Column("config_required", sa.JSON(), nullable=True),
        sa.Column("supports_dark_mode", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dark_mode_code", sa.Text(), nullable=True),
        sa.Column("integrations", sa.JSON(), nullable=True),
        sa.Column("integration_code", sa.JSON(), nullable=True),
        sa.Column("files", sa.JSON(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["component_id"], ["components.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "component_id", "framework", "css_framework", "version_number", name="uq_component_versions_variant"
        ),
        sa.CheckConstraint(
            _in("framework", ("html", "react", "vue", "svelte", "alpine", "angular")),
            name="ck_component_versions_framework",
        ),
        sa.CheckConstraint(
            _in("css_framework", ("tailwind_v3", "tailwind_v4", "vanilla_css")),
            name="ck_component_versions_css_framework",
        ),
    )
    op.create_index("ix_component_versions_component_id", "component_versions", ["component_id"])
    op.create_index("ix_component_versions_framework", "component_versions", ["framework", "css_framework"])
    # At most one default version per component
    op.create_index(
        "uq_component_versions_one_default",
        "component_versions",
        ["component_id"],
        unique=True,
        postgresql_where=sa.text("is_default = true"),
        sqlite_where=sa.text("is_default = 1"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("role", sa.String(16), nullable=False, server_default="user"),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("preferred_framework", sa.String(16), nullable=False, server_default="react"),
        sa.Column("preferred_css", sa.String(16), nullable=False, server_default="tailwind_v4"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.CheckConstraint(_in("role", ("user", "admin", "super_admin")), name="ck_users_role"),
        sa.CheckConstraint(
            _in("preferred_framework", ("html", "react", "vue", "svelte", "alpine", "angular")),
            name="ck_users_preferred_framework",
        ),
        sa.CheckConstraint(
            _in("preferred_css", ("tailwind_v3", "tailwind_v4", "vanilla_css")), name="ck_users_preferred_css"
        ),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_username", "users", ["username"])

    op.create_table(
        "auth_tokens",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("token_type", sa.String(16), nullable=False, server_default="session"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(_in("token_type", ("session", "api_key")), name="ck_auth_tokens_type"),
    )
    op.create_index("ix_auth_tokens_user_id", "auth_tokens", ["user_id"])
    op.create_index("ix_auth_tokens_token_hash", "auth_tokens", ["token_hash"], unique=True)
    op.create_index("ix_auth_tokens_expires_at", "auth_tokens", ["expires_at"])
    op.create_index("ix_auth_tokens_user_type", "auth_tokens", ["user_id", "token_type"])

    op.create_table(
        "licenses",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("license_key", sa.String(255), nullable=False),
        sa.Column("tier", sa.String(16), nullable=False),
        sa.Column("stripe_payment_id", sa.String(255), nullable=True),
        sa.Column("stripe_customer_id", sa.String(255), nullable=True),
        sa.Column("amount_paid", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("seats_allowed", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("seats_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("valid_from", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_lifetime", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_early_bird", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("discount_percentage", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_code", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("license_key", name="uq_licenses_license_key"),
        sa.UniqueConstraint("stripe_payment_id", name="uq_licenses_stripe_payment"),
        sa.CheckConstraint("seats_used <= seats_allowed", name="ck_licenses_seats"),
        sa.CheckConstraint("discount_percentage >= 0 AND discount_percentage <= 100", name="ck_licenses_discount"),
        sa.CheckConstraint(_in("tier", ("free", "pro", "team", "enterprise")), name="ck_licenses_tier"),
        sa.CheckConstraint(
            _in("payment_status", ("pending", "completed", "failed", "refunded", "disputed")),
            name="ck_licenses_payment_status",
        ),
    )
    op.create_index("ix_licenses_user_id", "licenses", ["user_id"])
    op.create_index("ix_licenses_user_active", "licenses", ["user_id", "is_active"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(255), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])
    op.create_index("ix_audit_logs_action_created", "audit_logs", ["action", "created_at"])

    op.create_table(
        "user_favorites",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("component_id", sa.String(36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["component_id"], ["components.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "component_id", name="uq_user_favorites_user_component"),
    )
    op.create_index("ix_user_favorites_component_id", "user_favorites", ["component_id"])

    op.create_table(
        "component_views",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("component_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("session_id", sa.String(255), nullable=True),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("viewed_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["component_id"], ["components.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_component_views_component_id", "component_views", ["component_id"])
    op.create_index("ix_component_views_viewed_at", "component_views", ["viewed_at"])

    op.create_table(
        "component_copies",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("component_id", sa.String(36), nullable=False),
        sa.Column("version_id", sa.String(36), nullable=True),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("license_id", sa.String(36), nullable=True),
        sa.Column("copied_target", sa.String(50), nullable=False, server_default="component"),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("copied_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["component_id"], ["components.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["version_id"], ["component_versions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["license_id"], ["licenses.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_component_copies_component_id", "component_copies", ["component_id"])
    op.create_index("ix_component_copies_user_id", "component_copies", ["user_id"])
    op.create_index("ix_component_copies_copied_at", "component_copies", ["copied_at"])


def downgrade():
    for table in (
        "component_copies",
        "component_views",
        "user_favorites",
        "audit_logs",
        "licenses",
        "auth_tokens",
        "users",
        "component_versions",
        "components",
        "subcategories",
        "categories",
        "products",
    ):
        op.drop_table(table)
