"""
Storefront API tests: category tree, component listings and detail,
copy gating, checkout to license, the signed-in user area, and system
endpoints.
"""

import pytest

from ona.models import ComponentView


# =============================================================================
# CATEGORIES
# =============================================================================


class TestPublicCategories:
    def test_tree_hides_inactive(self, client, admin_ctx, category, subcategory):
        from ona.services import category_service

        category_service.create_category(admin_ctx, {"product_id": category.product_id, "name": "Hidden",
                                                     "is_active": False})
        response = client.get("/api/public/categories")
        assert response.status_code == 200
        assert [row["slug"] for row in response.get_json()["data"]] == ["marketing"]

    def test_navigation(self, client, subcategory, premium_component, draft_component):
        data = client.get("/api/public/categories/navigation").get_json()["data"]
        assert data[0]["subcategories"][0]["componentsCount"] == 1

    def test_by_slug(self, client, subcategory):
        response = client.get("/api/public/categories/marketing")
        assert response.get_json()["data"]["iconName"] == "megaphone"

    def test_unknown_slug(self, client, db_session):
        assert client.get("/api/public/categories/nope").status_code == 404

    def test_stats(self, client, subcategory, premium_component, draft_component):
        data = client.get("/api/public/categories/stats").get_json()["data"]
        assert data == {"totalCategories": 1, "totalSubcategories": 1, "totalComponents": 1}

    def test_bad_product_id(self, client, db_session):
        assert client.get("/api/public/categories?productId=42").status_code == 422


# =============================================================================
# COMPONENTS
# =============================================================================


class TestPublicComponents:
    def test_listing_is_annotated(self, client, premium_component, free_component, draft_component):
        response = client.get("/api/public/components?sortBy=name")
        data = response.get_json()["data"]
        assert data["pagination"]["total"] == 2
        by_slug = {row["slug"]: row for row in data["items"]}
        assert by_slug["simple-hero"]["canCopy"] is True
        assert by_slug["split-hero"]["accessLevel"] == "preview_only"

    def test_listing_filters(self, client, premium_component, free_component):
        response = client.get("/api/public/components?isFree=false&tags=marketing")
        assert [row["slug"] for row in response.get_json()["data"]["items"]] == ["split-hero"]

    def test_bad_sort(self, client, db_session):
        assert client.get("/api/public/components?sortBy=secret").status_code == 422

    def test_search(self, client, premium_component, free_component):
        response = client.get("/api/public/components/search?q=split")
        assert [row["slug"] for row in response.get_json()["data"]["items"]] == ["split-hero"]

    def test_search_too_short(self, client, db_session):
        response = client.get("/api/public/components/search?q=a")
        assert response.status_code == 422

    def test_popular(self, client, premium_component, free_component):
        client.get(f"/api/public/components/{free_component.id}")
        data = client.get("/api/public/components/popular?limit=1").get_json()["data"]
        assert [row["slug"] for row in data] == ["simple-hero"]

    def test_detail_counts_view(self, client, premium_component, db_session):
        component_id = premium_component.id
        response = client.get(
            "/api/public/components/split-hero",
            headers={"X-Session-Id": "visitor-1", "Referer": "https://ona.dev/blocks"},
        )
        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["viewCount"] == 1
        assert data["versions"][0]["codeFull"] is None
        assert data["subcategory"]["slug"] == "hero-sections"
        view = db_session.query(ComponentView).filter_by(component_id=component_id).one()
        assert (view.session_id, view.referrer) == ("visitor-1", "https://ona.dev/blocks")

    def test_draft_is_not_found(self, client, draft_component):
        assert client.get(f"/api/public/components/{draft_component.id}").status_code == 404

    def test_licensed_user_sees_code(self, client, admin_ctx, regular_user, user_headers, premium_component):
        from ona.services import license_service

        license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro")
        response = client.get(f"/api/public/components/{premium_component.id}/versions/default", headers=user_headers)
        data = response.get_json()["data"]
        assert data["canViewCode"] is True
        assert data["codeFull"].startswith("export default")

    def test_default_version_bad_framework(self, client, premium_component):
        response = client.get(f"/api/public/components/{premium_component.id}/versions/default?framework=qt")
        assert response.status_code == 422

    def test_recommendations(self, client, premium_component, free_component):
        data = client.get(f"/api/public/components/{premium_component.id}/recommendations").get_json()["data"]
        assert [row["slug"] for row in data["similar"]] == ["simple-hero"]


class TestCopy:
    def test_anonymous_copy_of_premium(self, client, premium_component):
        response = client.post(f"/api/public/components/{premium_component.id}/copy", json={"target": "code"})
        assert response.status_code == 402
        error = response.get_json()["error"]
        assert error["code"] == "PREMIUM_REQUIRED"
        assert error["details"] == {"requiredTier": "pro"}

    def test_copy_free_without_body(self, client, free_component):
        response = client.post(f"/api/public/components/{free_component.id}/copy")
        assert response.status_code == 200
        assert response.get_json()["data"]["copyCount"] == 1

    def test_bad_target(self, client, free_component):
        response = client.post(f"/api/public/components/{free_component.id}/copy", json={"target": "zip"})
        assert response.status_code == 422


# =============================================================================
# PAYMENTS AND LICENSES
# =============================================================================


class TestCheckout:
    def test_checkout_to_license(self, client, user_headers, premium_component):
        response = client.post("/api/public/payment/checkout", json={"tier": "pro"}, headers=user_headers)
        assert response.status_code == 201
        checkout = response.get_json()["data"]
        assert checkout["status"] == "paid"
        assert checkout["amountCents"] == 14900

        response = client.post("/api/public/payment/complete", json={"sessionId": checkout["id"]}, headers=user_headers)
        assert response.status_code == 200
        lic = response.get_json()["data"]
        assert lic["tier"] == "pro"

        again = client.post("/api/public/payment/complete", json={"sessionId": checkout["id"]}, headers=user_headers)
        assert again.get_json()["data"]["id"] == lic["id"]

        response = client.get(f"/api/public/licenses/validate?key={lic['licenseKey']}")
        assert response.get_json()["data"]["valid"] is True

        response = client.post(f"/api/public/components/{premium_component.id}/copy", headers=user_headers)
        assert response.status_code == 200

    def test_checkout_requires_login(self, client, db_session):
        assert client.post("/api/public/payment/checkout", json={"tier": "pro"}).status_code == 401

    def test_free_tier_cannot_be_bought(self, client, user_headers):
        response = client.post("/api/public/payment/checkout", json={"tier": "free"}, headers=user_headers)
        assert response.status_code == 422

    def test_someone_elses_session(self, client, user_headers):
        checkout = client.post("/api/public/payment/checkout", json={"tier": "team"}, headers=user_headers)
        session_id = checkout.get_json()["data"]["id"]
        from ona.services import auth_service, session_service

        stranger = auth_service.create_user(email="stranger@ona.test", password="Password123")
        _, token = session_service.create_session(stranger.id)
        response = client.post(
            "/api/public/payment/complete", json={"sessionId": session_id},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 403

    def test_unknown_session(self, client, user_headers):
        response = client.post("/api/public/payment/complete", json={"sessionId": "cs_missing"}, headers=user_headers)
        assert response.status_code == 404

    def test_validate_requires_key(self, client, db_session):
        assert client.get("/api/public/licenses/validate").status_code == 422

    def test_validate_unknown_key(self, client, db_session):
        data = client.get("/api/public/licenses/validate?key=ONA-0000-0000-0000").get_json()["data"]
        assert data == {"valid": False, "reason": "License not found", "license": None}


# =============================================================================
# SIGNED-IN USER
# =============================================================================


class TestUserArea:
    def test_profile_and_preferences(self, client, user_headers):
        response = client.put(
            "/api/user/profile", json={"fullName": "Casey", "preferredFramework": "vue"}, headers=user_headers
        )
        assert response.status_code == 200
        data = response.get_json()["data"]
        assert (data["fullName"], data["preferredFramework"]) == ("Casey", "vue")
        assert data["subscription"]["hasActiveSubscription"] is False

    def test_profile_refuses_role_change(self, client, user_headers):
        response = client.put("/api/user/profile", json={"role": "admin"}, headers=user_headers)
        assert response.status_code == 422
        assert response.get_json()["error"]["details"] == {"role": "field not allowed"}

    def test_subscription_and_permissions(self, client, admin_ctx, regular_user, user_headers):
        from ona.services import license_service

        license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="team")
        subscription = client.get("/api/user/subscription", headers=user_headers).get_json()["data"]
        assert (subscription["tier"], subscription["teamSeats"]) == ("team", 5)
        permissions = client.get("/api/user/permissions", headers=user_headers).get_json()["data"]
        assert permissions["accessibleTiers"] == ["free", "pro", "team"]
        assert permissions["canManageComponents"] is False
        licenses = client.get("/api/user/licenses", headers=user_headers).get_json()["data"]
        assert len(licenses) == 1

    def test_favorites(self, client, user_headers, premium_component):
        component_id = premium_component.id
        for _ in range(2):
            response = client.post(f"/api/user/favorites/{component_id}", headers=user_headers)
            assert response.status_code == 200
        listing = client.get("/api/user/favorites", headers=user_headers).get_json()["data"]
        assert listing["pagination"]["total"] == 1
        assert listing["items"][0]["slug"] == "split-hero"

        client.delete(f"/api/user/favorites/{component_id}", headers=user_headers)
        listing = client.get("/api/user/favorites", headers=user_headers).get_json()["data"]
        assert listing["items"] == []

    @pytest.mark.parametrize("path", ["/api/user/profile", "/api/user/licenses", "/api/user/favorites"])
    def test_requires_login(self, client, db_session, path):
        assert client.get(path).status_code == 401


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystem:
    def test_health_degraded_when_empty(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["status"] == "degraded"
        assert data["checks"]["database"]["status"] == "healthy"

    def test_health_ok(self, client, admin_user, premium_component):
        data = client.get("/api/health").get_json()["data"]
        assert data["status"] == "healthy"

    def test_version(self, client, db_session):
        data = client.get("/api/version").get_json()["data"]
        assert data["apiVersion"] == "1.0.0"
        assert "databaseUrl" not in data

    def test_cors_for_allowed_origin(self, client, app, db_session):
        origin = app.config["CORS_ORIGINS"][0]
        response = client.get("/api/version", headers={"Origin": origin})
        assert response.headers["Access-Control-Allow-Origin"] == origin
        other = client.get("/api/version", headers={"Origin": "https://evil.example"})
        assert "Access-Control-Allow-Origin" not in other.headers
