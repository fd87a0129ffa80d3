"""
Concurrency tests against a file-backed SQLite database.

Each worker thread pushes its own app context, so every worker has its
own session and connection.
"""

import threading

import pytest

from ona import create_app
from ona.context import RequestContext
from ona.errors import ConflictError
from ona.extensions import db
from ona.integrations import CheckoutSession
from ona.models import Component, ComponentView, License
from ona.services import (
    auth_service,
    category_service,
    component_service,
    license_service,
    product_service,
    subcategory_service,
)

WORKERS = 4
ROUNDS = 10


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30, "check_same_thread": False}},
        "BCRYPT_ROUNDS": 4,
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def component_id(file_app):
    ctx = RequestContext.system()
    with file_app.app_context():
        product = product_service.create_product(ctx, {"name": "Ona UI"})
        category = category_service.create_category(ctx, {"product_id": product.id, "name": "Marketing"})
        subcategory = subcategory_service.create_subcategory(ctx, {"category_id": category.id, "name": "Hero"})
        component = component_service.create_component(ctx, {
            "subcategory_id": subcategory.id, "name": "Split Hero", "status": "published",
            "is_free": True, "required_tier": "free",
        })
        return component.id


def _run_workers(target, count=WORKERS):
    errors = []

    def wrapped(index):
        try:
            target(index)
        except Exception as exc:  # collected and asserted on by the test
            errors.append(exc)

    threads = [threading.Thread(target=wrapped, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return errors


class TestCounters:
    """Counter updates are single UPDATE statements, so no increment is lost."""

    def test_parallel_views(self, file_app, component_id):
        def worker(index):
            with file_app.app_context():
                for _ in range(ROUNDS):
                    component_service.record_view_event(None, component_id, session_id=f"worker-{index}")

        assert _run_workers(worker) == []
        with file_app.app_context():
            assert db.session.get(Component, component_id).view_count == WORKERS * ROUNDS
            assert db.session.query(ComponentView).count() == WORKERS * ROUNDS

    def test_parallel_copies(self, file_app, component_id):
        def worker(index):
            with file_app.app_context():
                for _ in range(ROUNDS):
                    component_service.record_copy(None, component_id)

        assert _run_workers(worker) == []
        with file_app.app_context():
            assert db.session.get(Component, component_id).copy_count == WORKERS * ROUNDS


class TestCheckoutRace:
    def test_same_session_issues_one_license(self, file_app):
        with file_app.app_context():
            user = auth_service.create_user(email="buyer@ona.test", password="Password123")
            checkout = CheckoutSession(
                id="cs_race", user_id=user.id, tier="pro", amount_cents=14900, currency="USD",
                status="paid", url="http://localhost/checkout/cs_race", payment_id="pi_race",
            )

        issued = []

        def worker(index):
            with file_app.app_context():
                try:
                    issued.append(license_service.complete_checkout(RequestContext.system(), checkout).id)
                except ConflictError:
                    pass

        assert _run_workers(worker) == []
        with file_app.app_context():
            assert db.session.query(License).count() == 1
            assert len(set(issued)) == 1
