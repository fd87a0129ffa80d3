"""
Pytest fixtures for Ona catalog backend tests.

Provides an in-memory database, a catalog tree (product -> category ->
subcategory -> components), users with bearer tokens, and the test client.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from ona import create_app
from ona.context import RequestContext
from ona.extensions import db
from ona.services import (
    auth_service,
    category_service,
    component_service,
    product_service,
    session_service,
    subcategory_service,
    version_service,
)

PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp('uploads')),
        'LOGIN_MAX_FAILED_ATTEMPTS': 3,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# USERS AND TOKENS
# =============================================================================


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Administrator account."""
    return auth_service.create_user(email="admin@ona.test", password=PASSWORD, role="admin", username="admin")


@pytest.fixture(scope='function')
def regular_user(db_session):
    """Customer account without a license."""
    return auth_service.create_user(email="user@ona.test", password=PASSWORD, username="customer")


@pytest.fixture(scope='function')
def admin_ctx(admin_user):
    return RequestContext(user=admin_user, ip_address="127.0.0.1", user_agent="pytest")


@pytest.fixture(scope='function')
def user_ctx(regular_user):
    return RequestContext(user=regular_user, ip_address="127.0.0.1", user_agent="pytest")


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    _, token = session_service.create_session(admin_user.id, user_agent="pytest")
    return auth_headers(token)


@pytest.fixture(scope='function')
def user_headers(regular_user):
    _, token = session_service.create_session(regular_user.id, user_agent="pytest")
    return auth_headers(token)


# =============================================================================
# CATALOG TREE
# =============================================================================


@pytest.fixture(scope='function')
def product(db_session):
    """Top-level product."""
    return product_service.create_product(RequestContext.system(), {"name": "Ona UI"})


@pytest.fixture(scope='function')
def category(product):
    """Category "Marketing" in the product."""
    return category_service.create_category(
        RequestContext.system(), {"product_id": product.id, "name": "Marketing", "icon_name": "megaphone"}
    )


@pytest.fixture(scope='function')
def subcategory(category):
    """Subcategory "Hero Sections" in Marketing."""
    return subcategory_service.create_subcategory(
        RequestContext.system(), {"category_id": category.id, "name": "Hero Sections"}
    )


@pytest.fixture(scope='function')
def premium_component(subcategory):
    """Published pro-tier component with a default react version."""
    component = component_service.create_component(RequestContext.system(), {
        "subcategory_id": subcategory.id,
        "name": "Split Hero",
        "description": "Hero with a screenshot on the right",
        "required_tier": "pro",
        "status": "published",
        "tags": ["hero", "marketing"],
        "conversion_rate": Decimal("7.50"),
    })
    version_service.create_version(RequestContext.system(), component.id, {
        "framework": "react",
        "css_framework": "tailwind_v4",
        "code_preview": "<section>Split Hero</section>",
        "code_full": "export default function SplitHero() { return null }",
        "is_default": True,
    })
    return component


@pytest.fixture(scope='function')
def free_component(subcategory):
    """Published free component."""
    return component_service.create_component(RequestContext.system(), {
        "subcategory_id": subcategory.id,
        "name": "Simple Hero",
        "is_free": True,
        "required_tier": "free",
        "status": "published",
        "tags": ["hero"],
    })


@pytest.fixture(scope='function')
def draft_component(subcategory):
    """Unpublished component; only admins can see it."""
    return component_service.create_component(RequestContext.system(), {
        "subcategory_id": subcategory.id,
        "name": "Work In Progress Hero",
    })


@pytest.fixture(scope='function')
def fail_commit(monkeypatch):
    """
    Arm db.session.commit() to raise OperationalError once, on the commit
    that follows `after` successful ones. Returns the call counter.
    """
    def arm(after: int = 0) -> dict:
        real_commit = db.session.commit
        calls = {"count": 0}

        def commit():
            calls["count"] += 1
            if calls["count"] == after + 1:
                raise OperationalError("COMMIT", {}, Exception("database is locked"))
            return real_commit()

        monkeypatch.setattr(db.session, "commit", commit)
        return calls

    return arm


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def login(client, email: str, password: str = PASSWORD):
    """Helper to log in through the API; returns the response."""
    return client.post('/api/auth/login', json={'email': email, 'password': password})
