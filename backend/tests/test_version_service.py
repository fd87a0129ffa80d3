"""
Component version tests: numbering per framework, the single default,
unchanged-content detection, comparison, and variants.
"""

import pytest

from ona.context import ANONYMOUS
from ona.errors import ConflictError, NotFoundError, ValidationFailed
from ona.models import ComponentVersion
from ona.services import version_service


def _version(ctx, component, framework="react", css="tailwind_v4", code="<div/>", **extra):
    data = {"framework": framework, "css_framework": css, "code_preview": code, **extra}
    version, _ = version_service.create_version(ctx, component.id, data)
    return version


class TestNumbering:
    def test_first_version_per_framework(self, admin_ctx, draft_component):
        react = _version(admin_ctx, draft_component)
        vue = _version(admin_ctx, draft_component, framework="vue")
        assert (react.version_number, vue.version_number) == ("1.0.0", "1.0.0")

    def test_patch_bump(self, admin_ctx, draft_component):
        _version(admin_ctx, draft_component, code="<div>1</div>")
        second = _version(admin_ctx, draft_component, code="<div>2</div>")
        assert second.version_number == "1.0.1"

    def test_bump_follows_highest_number(self, admin_ctx, draft_component):
        _version(admin_ctx, draft_component, code="a", version_number="2.3.9")
        _version(admin_ctx, draft_component, code="b", version_number="1.0.0")
        assert _version(admin_ctx, draft_component, code="c").version_number == "2.3.10"

    def test_explicit_number_must_be_semver(self, admin_ctx, draft_component):
        with pytest.raises(ValidationFailed):
            _version(admin_ctx, draft_component, version_number="v2")

    def test_duplicate_explicit_number(self, admin_ctx, draft_component):
        _version(admin_ctx, draft_component, code="a", version_number="1.2.0")
        with pytest.raises(ConflictError):
            _version(admin_ctx, draft_component, code="b", version_number="1.2.0")


class TestUnchangedContent:
    """Re-submitting identical code returns the existing version."""

    def test_same_content_returns_existing(self, admin_ctx, draft_component):
        first, created = version_service.create_version(
            admin_ctx, draft_component.id, {"framework": "react", "css_framework": "tailwind_v4", "code_preview": "<a/>"}
        )
        again, created_again = version_service.create_version(
            admin_ctx, draft_component.id, {"framework": "react", "css_framework": "tailwind_v4", "code_preview": "<a/>"}
        )
        assert created is True and created_again is False
        assert again.id == first.id

    def test_force_new(self, admin_ctx, draft_component):
        data = {"framework": "react", "css_framework": "tailwind_v4", "code_preview": "<a/>"}
        version_service.create_version(admin_ctx, draft_component.id, data)
        forced, created = version_service.create_version(admin_ctx, draft_component.id, data, force_new=True)
        assert created is True
        assert forced.version_number == "1.0.1"


class TestDefaults:
    """At most one default per component."""

    def test_new_default_replaces_old(self, admin_ctx, draft_component, db_session):
        first = _version(admin_ctx, draft_component, code="a", is_default=True)
        second = _version(admin_ctx, draft_component, framework="vue", code="b", is_default=True)
        db_session.expire_all()
        defaults = db_session.query(ComponentVersion).filter_by(component_id=draft_component.id, is_default=True).all()
        assert [v.id for v in defaults] == [second.id]
        assert version_service.default_version(draft_component.id).id == second.id
        assert first.id != second.id

    def test_set_default(self, admin_ctx, draft_component):
        first = _version(admin_ctx, draft_component, code="a", is_default=True)
        second = _version(admin_ctx, draft_component, code="b")
        version_service.set_default(admin_ctx, draft_component.id, second.id)
        assert version_service.default_version(draft_component.id).id == second.id
        assert version_service.get_version(draft_component.id, first.id).is_default is False

    def test_cannot_unset_current_default(self, admin_ctx, draft_component):
        first = _version(admin_ctx, draft_component, code="a", is_default=True)
        with pytest.raises(ConflictError):
            version_service.update_version(admin_ctx, draft_component.id, first.id, {"is_default": False})

    def test_cannot_delete_default(self, admin_ctx, draft_component):
        first = _version(admin_ctx, draft_component, code="a", is_default=True)
        with pytest.raises(ConflictError):
            version_service.delete_version(admin_ctx, draft_component.id, first.id)

    def test_default_falls_back_to_newest(self, admin_ctx, draft_component):
        _version(admin_ctx, draft_component, code="a")
        newest = _version(admin_ctx, draft_component, code="b")
        assert version_service.default_version(draft_component.id).id == newest.id

    def test_version_of_other_component(self, admin_ctx, draft_component, free_component):
        version = _version(admin_ctx, free_component)
        with pytest.raises(NotFoundError):
            version_service.get_version(draft_component.id, version.id)


class TestComparisonAndVariants:
    def test_compare(self, admin_ctx, draft_component):
        left = _version(admin_ctx, draft_component, code="a", dependencies=["react"])
        right = _version(admin_ctx, draft_component, code="b", dependencies=["react"])
        result = version_service.compare_versions(draft_component.id, left.id, right.id)
        assert result["hasChanges"] is True
        assert result["changedFields"] == ["versionNumber", "codePreview"]

    def test_framework_variants(self, admin_ctx, draft_component):
        _version(admin_ctx, draft_component, framework="vue", css="vanilla_css")
        variants = version_service.framework_variants(draft_component.id)
        assert len(variants) == 18
        available = [(v["framework"], v["cssFramework"]) for v in variants if v["isAvailable"]]
        assert available == [("vue", "vanilla_css")]

    def test_stats(self, admin_ctx, draft_component):
        _version(admin_ctx, draft_component, code="a", is_default=True)
        _version(admin_ctx, draft_component, framework="vue", code="b")
        stats = version_service.version_stats(draft_component.id)
        assert stats["totalVersions"] == 2
        assert stats["defaultFramework"] == "react"

    def test_public_default_hides_code(self, premium_component):
        data = version_service.public_default_version(ANONYMOUS, premium_component.id)
        assert data["codeFull"] is None
        assert data["canViewCode"] is False

    def test_public_default_for_missing_framework(self, premium_component):
        with pytest.raises(NotFoundError):
            version_service.public_default_version(ANONYMOUS, premium_component.id, framework="svelte")
