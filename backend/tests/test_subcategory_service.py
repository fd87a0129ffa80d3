"""
Subcategory service tests: creation, moves between categories, reorder,
and batch moves.
"""

import pytest

from ona.errors import ConflictError, NotFoundError, ValidationFailed
from ona.services import category_service, subcategory_service
from ona.validation import ReorderItem


def _subcategory(ctx, category, name):
    return subcategory_service.create_subcategory(ctx, {"category_id": category.id, "name": name})


@pytest.fixture
def second_category(admin_ctx, product):
    return category_service.create_category(admin_ctx, {"product_id": product.id, "name": "Application UI"})


class TestCreateSubcategory:
    def test_slug_unique_per_category(self, admin_ctx, category, second_category):
        _subcategory(admin_ctx, category, "Forms")
        with pytest.raises(ConflictError):
            _subcategory(admin_ctx, category, "Forms")
        assert _subcategory(admin_ctx, second_category, "Forms").slug == "forms"

    def test_unknown_category(self, admin_ctx, db_session):
        with pytest.raises(NotFoundError):
            subcategory_service.create_subcategory(
                admin_ctx, {"category_id": "6a1d2c3b-4e5f-4a7b-8c9d-0e1f2a3b4c5d", "name": "Forms"}
            )

    def test_delete_with_components_is_refused(self, admin_ctx, subcategory, premium_component):
        with pytest.raises(ConflictError) as exc:
            subcategory_service.delete_subcategory(admin_ctx, subcategory.id)
        assert exc.value.details == {"componentsCount": 1}

    def test_details_include_parent(self, subcategory):
        data = subcategory_service.get_subcategory_details(subcategory.id)
        assert data["category"]["slug"] == "marketing"
        assert data["componentsCount"] == 0


class TestMoveSubcategory:
    """Moving re-parents and appends unless a position is given."""

    def test_move_appends_to_target(self, admin_ctx, subcategory, second_category):
        _subcategory(admin_ctx, second_category, "Tables")
        moved = subcategory_service.move_subcategory(admin_ctx, subcategory.id, second_category.id)
        assert moved.category_id == second_category.id
        assert moved.sort_order == 2

    def test_move_with_explicit_position(self, admin_ctx, subcategory, second_category):
        moved = subcategory_service.move_subcategory(admin_ctx, subcategory.id, second_category.id, 7)
        assert moved.sort_order == 7

    def test_move_slug_clash(self, admin_ctx, subcategory, second_category):
        _subcategory(admin_ctx, second_category, "Hero Sections")
        with pytest.raises(ConflictError):
            subcategory_service.move_subcategory(admin_ctx, subcategory.id, second_category.id)

    def test_move_to_unknown_category(self, admin_ctx, subcategory):
        with pytest.raises(NotFoundError):
            subcategory_service.move_subcategory(admin_ctx, subcategory.id, "6a1d2c3b-4e5f-4a7b-8c9d-0e1f2a3b4c5d")

    def test_move_bad_sort_order(self, admin_ctx, subcategory, second_category):
        with pytest.raises(ValidationFailed):
            subcategory_service.move_subcategory(admin_ctx, subcategory.id, second_category.id, -3)

    def test_move_keeps_components(self, admin_ctx, subcategory, premium_component, second_category):
        subcategory_service.move_subcategory(admin_ctx, subcategory.id, second_category.id)
        stats = category_service.detailed_stats(second_category.id)
        assert stats["componentsCount"] == 1


class TestReorderAndBatch:
    def test_reorder(self, admin_ctx, category):
        a = _subcategory(admin_ctx, category, "Alpha")
        b = _subcategory(admin_ctx, category, "Beta")
        result = subcategory_service.reorder_subcategories(admin_ctx, [ReorderItem(a.id, 2), ReorderItem(b.id, 1)])
        assert [row["slug"] for row in result] == ["beta", "alpha"]

    def test_batch_move(self, admin_ctx, category, second_category):
        a = _subcategory(admin_ctx, category, "Alpha")
        b = _subcategory(admin_ctx, category, "Beta")
        result = subcategory_service.batch_subcategories(
            admin_ctx, "move", [a.id, b.id], {"categoryId": second_category.id}
        )
        assert result["successful"] == 2
        assert {row["subcategory"]["categoryId"] for row in result["results"]} == {second_category.id}

    def test_batch_move_needs_target(self, admin_ctx, subcategory):
        with pytest.raises(ValidationFailed):
            subcategory_service.batch_subcategories(admin_ctx, "move", [subcategory.id], {})

    def test_batch_reports_unknown_ids(self, admin_ctx, subcategory):
        missing = "6a1d2c3b-4e5f-4a7b-8c9d-0e1f2a3b4c5d"
        result = subcategory_service.batch_subcategories(admin_ctx, "deactivate", [subcategory.id, missing])
        assert result["successful"] == 1
        assert result["errors"] == [{"id": missing, "error": "Subcategory not found", "code": "NOT_FOUND"}]
