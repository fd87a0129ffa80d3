"""
Category service tests: slugs, ordering, deletion rules, batch actions,
statistics, and export.
"""

import pytest
from sqlalchemy.exc import OperationalError

from ona.errors import BadRequestError, ConflictError, NotFoundError, ValidationFailed
from ona.models import AuditLog, Category
from ona.services import category_service, product_service, subcategory_service
from ona.validation import ReorderItem


def _category(ctx, product, name, **extra):
    return category_service.create_category(ctx, {"product_id": product.id, "name": name, **extra})


class TestCreateCategory:
    """Creation derives slugs and appends to the end of the sibling list."""

    def test_slug_from_name(self, admin_ctx, product):
        category = _category(admin_ctx, product, "Application UI")
        assert category.slug == "application-ui"

    def test_sort_order_appends(self, admin_ctx, product):
        first = _category(admin_ctx, product, "Marketing")
        second = _category(admin_ctx, product, "Ecommerce")
        assert (first.sort_order, second.sort_order) == (1, 2)

    def test_duplicate_slug_in_same_product(self, admin_ctx, product):
        _category(admin_ctx, product, "Marketing")
        with pytest.raises(ConflictError) as exc:
            _category(admin_ctx, product, "Marketing!")
        assert exc.value.details["slug"] == "marketing"

    def test_same_slug_in_other_product(self, admin_ctx, product):
        other = product_service.create_product(admin_ctx, {"name": "Ona Icons"})
        _category(admin_ctx, product, "Marketing")
        assert _category(admin_ctx, other, "Marketing").slug == "marketing"

    def test_unknown_product(self, admin_ctx, db_session):
        with pytest.raises(NotFoundError):
            category_service.create_category(
                admin_ctx, {"product_id": "6a1d2c3b-4e5f-4a7b-8c9d-0e1f2a3b4c5d", "name": "Orphans"}
            )

    def test_name_without_slug_characters(self, admin_ctx, product):
        with pytest.raises(ValidationFailed):
            _category(admin_ctx, product, "???")

    def test_create_is_audited(self, admin_ctx, product, db_session):
        category = _category(admin_ctx, product, "Marketing")
        entry = db_session.query(AuditLog).filter_by(action="category.create", entity_id=category.id).one()
        assert entry.user_id == admin_ctx.user_id
        assert entry.changes["slug"] == "marketing"


class TestUpdateAndDelete:
    def test_rename_slug_conflict(self, admin_ctx, product):
        _category(admin_ctx, product, "Marketing")
        other = _category(admin_ctx, product, "Ecommerce")
        with pytest.raises(ConflictError):
            category_service.update_category(admin_ctx, other.id, {"slug": "marketing"})

    def test_update_keeps_own_slug(self, admin_ctx, category):
        updated = category_service.update_category(admin_ctx, category.id, {"slug": "marketing", "name": "Marketing UI"})
        assert updated.name == "Marketing UI"

    def test_delete_with_subcategories_is_refused(self, admin_ctx, subcategory):
        with pytest.raises(ConflictError) as exc:
            category_service.delete_category(admin_ctx, subcategory.category_id)
        assert exc.value.details == {"subcategoriesCount": 1}

    def test_delete_empty_category(self, admin_ctx, category, db_session):
        category_id = category.id
        category_service.delete_category(admin_ctx, category_id)
        assert db_session.get(Category, category_id) is None

    def test_delete_unknown(self, admin_ctx, db_session):
        with pytest.raises(NotFoundError):
            category_service.delete_category(admin_ctx, "6a1d2c3b-4e5f-4a7b-8c9d-0e1f2a3b4c5d")


class TestReorder:
    """Reorder writes exactly the supplied sort orders or nothing."""

    def test_reorder_sets_given_positions(self, admin_ctx, product):
        a = _category(admin_ctx, product, "Alpha")
        b = _category(admin_ctx, product, "Beta")
        c = _category(admin_ctx, product, "Gamma")
        result = category_service.reorder_categories(
            admin_ctx, [ReorderItem(a.id, 3), ReorderItem(b.id, 1)]
        )
        assert [row["slug"] for row in result] == ["beta", "alpha"]
        # Siblings left out keep their position
        assert category_service.get_category(c.id).sort_order == 3

    def test_unknown_id_rolls_back_everything(self, admin_ctx, product):
        a = _category(admin_ctx, product, "Alpha")
        with pytest.raises(NotFoundError):
            category_service.reorder_categories(
                admin_ctx,
                [ReorderItem(a.id, 9), ReorderItem("6a1d2c3b-4e5f-4a7b-8c9d-0e1f2a3b4c5d", 1)],
            )
        assert category_service.get_category(a.id).sort_order == 1

    def test_mixed_parents(self, admin_ctx, product):
        other = product_service.create_product(admin_ctx, {"name": "Ona Icons"})
        a = _category(admin_ctx, product, "Alpha")
        b = _category(admin_ctx, other, "Beta")
        with pytest.raises(BadRequestError):
            category_service.reorder_categories(admin_ctx, [ReorderItem(a.id, 2), ReorderItem(b.id, 1)])


class TestBatch:
    """Batch actions report per-item outcomes."""

    def test_partial_success(self, admin_ctx, product, subcategory):
        empty = _category(admin_ctx, product, "Empty")
        busy_id = subcategory.category_id
        result = category_service.batch_categories(admin_ctx, "delete", [empty.id, busy_id])
        assert (result["processed"], result["successful"], result["failed"]) == (2, 1, 1)
        assert result["errors"][0]["id"] == busy_id
        assert result["errors"][0]["code"] == "CONFLICT"
        assert category_service.get_category(busy_id) is not None

    def test_repeated_id_counts_each_time(self, admin_ctx, product):
        empty = _category(admin_ctx, product, "Empty")
        result = category_service.batch_categories(admin_ctx, "delete", [empty.id, empty.id])
        assert (result["processed"], result["successful"], result["failed"]) == (2, 1, 1)
        assert result["errors"][0]["code"] == "NOT_FOUND"

    def test_deactivate(self, admin_ctx, category):
        result = category_service.batch_categories(admin_ctx, "deactivate", [category.id])
        assert result["results"][0]["category"]["isActive"] is False

    def test_update_requires_data(self, admin_ctx, category):
        with pytest.raises(ValidationFailed):
            category_service.batch_categories(admin_ctx, "update", [category.id], {})

    def test_update_applies_patch(self, admin_ctx, category):
        result = category_service.batch_categories(admin_ctx, "update", [category.id], {"iconName": "star"})
        assert result["results"][0]["category"]["iconName"] == "star"


class TestReadsAndStats:
    def test_list_with_counts(self, admin_ctx, subcategory, premium_component, draft_component):
        page = category_service.list_categories(page=1, limit=10, include_subcategories=True)
        assert page.total == 1
        row = page.items[0]
        assert row["subcategoriesCount"] == 1
        assert row["componentsCount"] == 2
        assert row["subcategories"][0]["slug"] == "hero-sections"

    def test_public_category_by_slug(self, subcategory, premium_component, draft_component):
        data = category_service.get_public_category("marketing")
        assert data["subcategories"][0]["componentsCount"] == 1
        assert data["componentsCount"] == 1

    def test_inactive_category_is_hidden(self, admin_ctx, category):
        category_service.update_category(admin_ctx, category.id, {"is_active": False})
        with pytest.raises(NotFoundError):
            category_service.get_public_category(category.id)

    def test_navigation_counts_published_only(self, subcategory, premium_component, free_component, draft_component):
        tree = category_service.navigation()
        assert tree[0]["componentsCount"] == 2
        assert tree[0]["subcategories"][0]["componentsCount"] == 2

    def test_global_stats(self, admin_ctx, product, subcategory):
        _category(admin_ctx, product, "Empty", is_active=False)
        stats = category_service.global_stats()
        assert stats["totalCategories"] == 2
        assert stats["inactiveCategories"] == 1
        assert stats["averageSubcategoriesPerCategory"] == 0.5

    def test_detailed_stats_for_category(self, subcategory, premium_component, draft_component):
        stats = category_service.detailed_stats(subcategory.category_id)
        assert stats["componentsCount"] == 2
        assert stats["publishedComponentsCount"] == 1
        assert stats["averageComponentsPerSubcategory"] == 2.0

    def test_export_includes_inactive(self, admin_ctx, product, subcategory, premium_component):
        subcategory_service.update_subcategory(admin_ctx, subcategory.id, {"is_active": False})
        export = category_service.export_categories(product.id)
        assert export["stats"] == {"totalCategories": 1, "totalSubcategories": 1, "totalComponents": 1}
        assert export["categories"][0]["subcategories"][0]["isActive"] is False

    def test_check_slug(self, category):
        taken = category_service.check_slug("marketing", category.product_id)
        assert taken["available"] is False
        assert taken["existing"]["id"] == category.id
        assert category_service.check_slug("marketing", category.product_id, category.id)["available"] is True


class TestCommitFailure:
    """A commit that fails is reported, and none of its writes stick."""

    def test_update_raises_and_keeps_old_name(self, admin_ctx, category, db_session, fail_commit):
        category_id = category.id
        calls = fail_commit()
        with pytest.raises(OperationalError):
            category_service.update_category(admin_ctx, category_id, {"name": "Renamed"})
        assert calls["count"] == 1
        db_session.expire_all()
        assert category_service.get_category(category_id).name == "Marketing"
        assert db_session.query(AuditLog).filter_by(action="category.update").count() == 0

    def test_create_leaves_nothing_behind(self, admin_ctx, product, db_session, fail_commit):
        fail_commit()
        with pytest.raises(OperationalError):
            _category(admin_ctx, product, "Ecommerce")
        assert db_session.query(Category).filter_by(slug="ecommerce").count() == 0

    def test_batch_raises_instead_of_reporting_success(self, admin_ctx, category, db_session, fail_commit):
        category_id = category.id
        fail_commit()
        with pytest.raises(OperationalError):
            category_service.batch_categories(admin_ctx, "deactivate", [category_id])
        db_session.expire_all()
        assert category_service.get_category(category_id).is_active is True

    def test_next_commit_goes_through(self, admin_ctx, category, fail_commit):
        category_id = category.id
        fail_commit()
        with pytest.raises(OperationalError):
            category_service.update_category(admin_ctx, category_id, {"name": "Renamed"})
        assert category_service.update_category(admin_ctx, category_id, {"name": "Renamed"}).name == "Renamed"
