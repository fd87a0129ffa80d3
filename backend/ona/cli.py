# Overview: Flask CLI command groups for bootstrap, catalog maintenance, and license support.

# backend/ona/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables (if missing) and the default admin account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions --older-than-days 30
#   Delete expired and revoked session tokens.
#
# User inspection/bootstrap:
# - python -m flask users create-admin --email admin@ona.local --password "Password123"
#   Create an administrator (prompts if options are omitted).
# - python -m flask users list [--role admin]
#   List users with role and active status.
# - python -m flask users issue-token admin@ona.local --days 365
#   Issue a long-lived API key for scripts and the Python client.
#
# Catalog:
# - python -m flask catalog seed
#   Load a small demo catalog (idempotent: skipped when the demo product exists).
# - python -m flask catalog export [--product-id <uuid>] [--output categories.json]
#   Write the category tree as JSON.
# - python -m flask catalog stats
#   Print catalog and license totals.
#
# Licenses:
# - python -m flask licenses issue admin@ona.local --tier pro
#   Grant a license without a payment (support, partners).
# - python -m flask licenses validate ONA-XXXX-XXXX-XXXX
#   Check a key the same way /api/public/licenses/validate does.
# - python -m flask licenses deactivate <license-id> --reason "refund"
#   Deactivate a license.

import json

import click
from flask.cli import with_appcontext

from .context import RequestContext
from .errors import ServiceError
from .extensions import db
from .models import Product
from .models.common import LICENSE_TIERS, USER_ROLES
from .repositories import product_repository, user_repository
from .services import (
    auth_service,
    category_service,
    component_service,
    license_service,
    product_service,
    session_service,
    subcategory_service,
    version_service,
)

DEFAULT_ADMIN_EMAIL = "admin@ona.local"
DEFAULT_ADMIN_PASSWORD = "Password123"

DEMO_PRODUCT = {"name": "Ona UI", "slug": "ona-ui", "description": "Marketing and application UI blocks"}
DEMO_TREE = {
    "Marketing": {
        "Hero Sections": [
            ("Simple Centered Hero", True),
            ("Split Hero With Screenshot", False),
        ],
        "Pricing": [
            ("Three Tier Pricing", False),
        ],
    },
    "Application UI": {
        "Forms": [
            ("Sign In Form", True),
            ("Multi Step Form", False),
        ],
        "Tables": [
            ("Sortable Table", False),
        ],
    },
}


def _user_by_email(email: str):
    user = user_repository.find_by_email(email.strip().lower())
    if user is None:
        raise click.ClickException(f"No user with email {email}")
    return user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--email', default=DEFAULT_ADMIN_EMAIL, help='Admin email')
@click.option('--password', default=DEFAULT_ADMIN_PASSWORD, help='Admin password')
@with_appcontext
def init_system(email, password):
    """
    Create any missing tables and the default admin account.

    SECURITY: Change the default password immediately outside development!
    """
    click.echo("START Initializing Ona catalog...")
    db.create_all()
    click.echo("PASS Tables ready")

    if user_repository.find_by_email(email) is not None:
        click.echo(f"WARN  User '{email}' already exists, skipping...")
    else:
        auth_service.validate_password_strength(password)
        auth_service.create_user(email=email, password=password, role="super_admin", username="admin")
        click.echo(f"PASS Created admin: {email}")

    click.echo("\nDONE Run 'python -m flask catalog seed' for demo data.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@system_group.command('cleanup-sessions')
@click.option('--older-than-days', default=30, show_default=True, type=int)
@with_appcontext
def cleanup_sessions(older_than_days):
    """Delete expired and revoked session tokens."""
    removed = session_service.cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"PASS Removed {removed} session tokens")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create-admin')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--username', default=None, help='Optional username')
@click.option('--role', type=click.Choice(["admin", "super_admin"]), default="admin", show_default=True)
@with_appcontext
def create_admin(email, password, username, role):
    """Create an administrator account."""
    try:
        auth_service.validate_password_strength(password)
        user = auth_service.create_user(email=email, password=password, role=role, username=username)
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created {role}: {user.email} (ID: {user.id})")


@users_group.command('list')
@click.option('--role', type=click.Choice(USER_ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List users with their role."""
    users = user_repository.find_by_role(role) if role else user_repository.paginate(page=1, limit=1000).items

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 100)
    click.echo(f"{'ID':<38} {'Email':<32} {'Role':<12} {'Active':<8}")
    click.echo("=" * 100)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<38} {user.email:<32} {user.role:<12} {active_str:<8}")
    click.echo(f"\nTotal: {len(users)} users")


@users_group.command('issue-token')
@click.argument('email')
@click.option('--days', default=365, show_default=True, type=int)
@with_appcontext
def issue_token(email, days):
    """Issue a long-lived API key. The plaintext is shown once."""
    user = _user_by_email(email)
    record, token = session_service.issue_api_key(user.id, days=days)
    click.echo(f"PASS API key for {user.email} (expires {record.to_dict()['expiresAt']}):")
    click.echo(token)


@click.group('catalog')
def catalog_group():
    """Catalog seed, export, and statistics commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Load a small demo catalog: one product, two categories, published components."""
    if product_repository.find_by_slug(DEMO_PRODUCT["slug"]) is not None:
        click.echo(f"WARN  Product '{DEMO_PRODUCT['slug']}' already exists, skipping seed")
        return

    ctx = RequestContext.system()
    product = product_service.create_product(ctx, dict(DEMO_PRODUCT))
    created_components = 0
    for category_name, subcategories in DEMO_TREE.items():
        category = category_service.create_category(ctx, {"product_id": product.id, "name": category_name})
        for subcategory_name, components in subcategories.items():
            subcategory = subcategory_service.create_subcategory(
                ctx, {"category_id": category.id, "name": subcategory_name}
            )
            for component_name, is_free in components:
                component = component_service.create_component(ctx, {
                    "subcategory_id": subcategory.id,
                    "name": component_name,
                    "is_free": is_free,
                    "required_tier": "free" if is_free else "pro",
                    "status": "published",
                    "tags": [subcategory.slug],
                })
                version_service.create_version(ctx, component.id, {
                    "framework": "react",
                    "css_framework": "tailwind_v4",
                    "code_preview": f"<section>{component_name}</section>",
                    "code_full": f"export default function Component() {{\n  return <section>{component_name}</section>\n}}\n",
                    "is_default": True,
                })
                created_components += 1
    click.echo(f"PASS Seeded '{product.name}' with {created_components} components")


@catalog_group.command('export')
@click.option('--product-id', default=None, help='Limit to one product')
@click.option('--output', type=click.Path(dir_okay=False, writable=True), default=None, help='File to write')
@with_appcontext
def export_catalog(product_id, output):
    """Write the category tree as JSON (stdout when --output is omitted)."""
    try:
        data = category_service.export_categories(product_id)
    except ServiceError as e:
        raise click.ClickException(e.message)
    text = json.dumps(data, indent=2)
    if output:
        with open(output, "w", encoding="utf-8") as handle:
            handle.write(text)
        click.echo(f"PASS Wrote {data['stats']['totalCategories']} categories to {output}")
    else:
        click.echo(text)


@catalog_group.command('stats')
@with_appcontext
def catalog_stats():
    """Print catalog and license totals."""
    products = db.session.query(Product).count()
    categories = category_service.global_stats()
    components = component_service.catalog_stats()
    licenses = license_service.license_stats()

    click.echo("\n" + "=" * 60)
    click.echo(f"Products:       {products}")
    click.echo(f"Categories:     {categories['totalCategories']} ({categories['activeCategories']} active)")
    click.echo(f"Subcategories:  {categories['totalSubcategories']}")
    click.echo(f"Components:     {components['totalComponents']} ({components['publishedComponents']} published)")
    click.echo(f"Licenses:       {licenses['total']} ({licenses['active']} active)")
    click.echo("=" * 60)


@click.group('licenses')
def licenses_group():
    """License support commands."""


@licenses_group.command('issue')
@click.argument('email')
@click.option('--tier', type=click.Choice(LICENSE_TIERS), default="pro", show_default=True)
@click.option('--seats', type=int, default=None, help='Seats (defaults by tier)')
@click.option('--notes', default=None)
@with_appcontext
def issue_license(email, tier, seats, notes):
    """Grant a license without a payment."""
    user = _user_by_email(email)
    try:
        lic = license_service.issue_license(
            RequestContext.system(), user_id=user.id, tier=tier, seats_allowed=seats, notes=notes,
        )
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Issued {tier} license {lic.license_key} (ID: {lic.id}) to {user.email}")


@licenses_group.command('validate')
@click.argument('license_key')
@with_appcontext
def validate_license(license_key):
    """Check a license key."""
    result = license_service.validate_license(license_key)
    if result["valid"]:
        click.echo(f"PASS Valid {result['license']['tier']} license")
    else:
        click.echo(f"FAIL {result['reason']}")


@licenses_group.command('deactivate')
@click.argument('license_id')
@click.option('--reason', default=None)
@with_appcontext
def deactivate_license(license_id, reason):
    """Deactivate a license."""
    try:
        lic = license_service.deactivate_license(RequestContext.system(), license_id, reason)
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Deactivated license {lic.license_key}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(licenses_group)
