# Overview: Typed REST client for the catalog API, built on httpx.

# backend/ona/client.py
"""
Python client for scripts, the admin tooling, and integration tests.

    client = OnaClient("http://localhost:5000", token="...")
    page = client.categories.list(productId=product_id, includeSubcategories=True)
    client.categories.reorder([{"id": a, "sortOrder": 2}, {"id": b, "sortOrder": 1}])

Every method returns the envelope's `data`. Error envelopes raise ApiError
carrying the HTTP status and the error code, message and details.
Query parameters are passed through with their camelCase API names.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import httpx


class ApiError(Exception):
    def __init__(self, status: int, code: str, message: str, details: Any = None):
        super().__init__(f"{status} {code}: {message}")
        self.status = status
        self.code = code
        self.message = message
        self.details = details


def _params(params: Dict[str, Any]) -> Dict[str, Any]:
    """Drop None values and render booleans the way the API parses them."""
    out = {}
    for key, value in params.items():
        if value is None:
            continue
        out[key] = ("true" if value else "false") if isinstance(value, bool) else value
    return out


class _Resource:
    def __init__(self, client: "OnaClient"):
        self._client = client


class CategoriesResource(_Resource):
    path = "/api/admin/categories"

    def list(self, **params) -> dict:
        return self._client.get(self.path, params=params)

    def get(self, category_id: str) -> dict:
        return self._client.get(f"{self.path}/{category_id}")

    def create(self, data: dict) -> dict:
        return self._client.post(self.path, json=data)

    def update(self, category_id: str, data: dict) -> dict:
        return self._client.put(f"{self.path}/{category_id}", json=data)

    def delete(self, category_id: str) -> None:
        return self._client.delete(f"{self.path}/{category_id}")

    def reorder(self, items: Iterable[dict]) -> list:
        return self._client.post(f"{self.path}/reorder", json={"categories": list(items)})

    def check_slug(self, product_id: str, slug: str, exclude_id: Optional[str] = None) -> dict:
        payload = {"productId": product_id, "slug": slug}
        if exclude_id:
            payload["excludeId"] = exclude_id
        return self._client.post(f"{self.path}/check-slug", json=payload)

    def batch(self, operation: str, ids: Iterable[str], data: Optional[dict] = None) -> dict:
        return self._client.post(
            f"{self.path}/batch", json={"operation": operation, "categoryIds": list(ids), "data": data or {}}
        )

    def detailed_stats(self, category_id: Optional[str] = None) -> dict:
        return self._client.get(f"{self.path}/stats/detailed", params={"categoryId": category_id})

    def global_stats(self) -> dict:
        return self._client.get(f"{self.path}/global-stats")

    def export(self, product_id: Optional[str] = None) -> dict:
        return self._client.get(f"{self.path}/export", params={"productId": product_id, "download": "false"})


class SubcategoriesResource(_Resource):
    path = "/api/admin/subcategories"

    def list(self, **params) -> dict:
        return self._client.get(self.path, params=params)

    def get(self, subcategory_id: str) -> dict:
        return self._client.get(f"{self.path}/{subcategory_id}")

    def create(self, data: dict) -> dict:
        return self._client.post(self.path, json=data)

    def update(self, subcategory_id: str, data: dict) -> dict:
        return self._client.put(f"{self.path}/{subcategory_id}", json=data)

    def delete(self, subcategory_id: str) -> None:
        return self._client.delete(f"{self.path}/{subcategory_id}")

    def move(self, subcategory_id: str, category_id: str, sort_order: Optional[int] = None) -> dict:
        payload: Dict[str, Any] = {"categoryId": category_id}
        if sort_order is not None:
            payload["sortOrder"] = sort_order
        return self._client.post(f"{self.path}/{subcategory_id}/move", json=payload)

    def reorder(self, items: Iterable[dict]) -> list:
        return self._client.post(f"{self.path}/reorder", json={"subcategories": list(items)})

    def check_slug(self, category_id: str, slug: str, exclude_id: Optional[str] = None) -> dict:
        payload = {"categoryId": category_id, "slug": slug}
        if exclude_id:
            payload["excludeId"] = exclude_id
        return self._client.post(f"{self.path}/check-slug", json=payload)

    def batch(self, operation: str, ids: Iterable[str], data: Optional[dict] = None) -> dict:
        return self._client.post(
            f"{self.path}/batch", json={"operation": operation, "subcategoryIds": list(ids), "data": data or {}}
        )


class ComponentsResource(_Resource):
    path = "/api/admin/components"

    def list(self, **params) -> dict:
        return self._client.get(self.path, params=params)

    def get(self, component_id: str) -> dict:
        return self._client.get(f"{self.path}/{component_id}")

    def create(self, data: dict) -> dict:
        return self._client.post(self.path, json=data)

    def update(self, component_id: str, data: dict) -> dict:
        return self._client.put(f"{self.path}/{component_id}", json=data)

    def delete(self, component_id: str) -> None:
        return self._client.delete(f"{self.path}/{component_id}")

    def duplicate(self, component_id: str) -> dict:
        return self._client.post(f"{self.path}/{component_id}/duplicate")

    def set_status(self, component_id: str, status: str) -> dict:
        return self._client.post(f"{self.path}/{component_id}/status", json={"status": status})

    def stats(self, component_id: str) -> dict:
        return self._client.get(f"{self.path}/{component_id}/stats")

    def catalog_stats(self) -> dict:
        return self._client.get(f"{self.path}/stats")

    def batch(self, operation: str, ids: Iterable[str], data: Optional[dict] = None) -> dict:
        return self._client.post(
            f"{self.path}/batch", json={"operation": operation, "componentIds": list(ids), "data": data or {}}
        )

    def upload_preview_image(self, component_id: str, filename: str, content: bytes,
                             size: str = "large", content_type: str = "image/png") -> dict:
        return self._client.request(
            "POST",
            f"{self.path}/{component_id}/preview-image",
            files={"file": (filename, content, content_type)},
            data={"size": size},
        )


class VersionsResource(_Resource):
    def _path(self, component_id: str) -> str:
        return f"/api/admin/components/{component_id}/versions"

    def list(self, component_id: str, **params) -> dict:
        return self._client.get(self._path(component_id), params=params)

    def get(self, component_id: str, version_id: str) -> dict:
        return self._client.get(f"{self._path(component_id)}/{version_id}")

    def create(self, component_id: str, data: dict, force_new: bool = False) -> dict:
        payload = dict(data)
        if force_new:
            payload["forceNew"] = True
        return self._client.post(self._path(component_id), json=payload)

    def update(self, component_id: str, version_id: str, data: dict) -> dict:
        return self._client.put(f"{self._path(component_id)}/{version_id}", json=data)

    def delete(self, component_id: str, version_id: str) -> None:
        return self._client.delete(f"{self._path(component_id)}/{version_id}")

    def set_default(self, component_id: str, version_id: str) -> dict:
        return self._client.post(f"{self._path(component_id)}/{version_id}/set-default")

    def compare(self, component_id: str, version_id: str, other_id: str) -> dict:
        return self._client.get(f"{self._path(component_id)}/{version_id}/compare/{other_id}")

    def stats(self, component_id: str) -> dict:
        return self._client.get(f"{self._path(component_id)}/stats")

    def frameworks(self, component_id: str) -> list:
        return self._client.get(f"/api/admin/components/{component_id}/frameworks")


class PublicResource(_Resource):
    path = "/api/public"

    def categories(self, product_id: Optional[str] = None) -> list:
        return self._client.get(f"{self.path}/categories", params={"productId": product_id})

    def navigation(self, product_id: Optional[str] = None) -> list:
        return self._client.get(f"{self.path}/categories/navigation", params={"productId": product_id})

    def category_stats(self) -> dict:
        return self._client.get(f"{self.path}/categories/stats")

    def category(self, id_or_slug: str, product_id: Optional[str] = None) -> dict:
        return self._client.get(f"{self.path}/categories/{id_or_slug}", params={"productId": product_id})

    def components(self, **params) -> dict:
        return self._client.get(f"{self.path}/components", params=params)

    def search(self, q: str, **params) -> dict:
        return self._client.get(f"{self.path}/components/search", params={"q": q, **params})

    def featured(self, limit: Optional[int] = None) -> list:
        return self._client.get(f"{self.path}/components/featured", params={"limit": limit})

    def popular(self, limit: Optional[int] = None) -> list:
        return self._client.get(f"{self.path}/components/popular", params={"limit": limit})

    def component(self, id_or_slug: str) -> dict:
        return self._client.get(f"{self.path}/components/{id_or_slug}")

    def default_version(self, component_id: str, framework: Optional[str] = None,
                        css_framework: Optional[str] = None) -> dict:
        return self._client.get(
            f"{self.path}/components/{component_id}/versions/default",
            params={"framework": framework, "cssFramework": css_framework},
        )

    def recommendations(self, component_id: str) -> dict:
        return self._client.get(f"{self.path}/components/{component_id}/recommendations")

    def copy(self, component_id: str, version_id: Optional[str] = None, target: str = "component") -> dict:
        payload: Dict[str, Any] = {"target": target}
        if version_id:
            payload["versionId"] = version_id
        return self._client.post(f"{self.path}/components/{component_id}/copy", json=payload)

    def checkout(self, tier: str, success_url: Optional[str] = None, cancel_url: Optional[str] = None) -> dict:
        payload: Dict[str, Any] = {"tier": tier}
        if success_url:
            payload["successUrl"] = success_url
        if cancel_url:
            payload["cancelUrl"] = cancel_url
        return self._client.post(f"{self.path}/payment/checkout", json=payload)

    def complete_checkout(self, session_id: str) -> dict:
        return self._client.post(f"{self.path}/payment/complete", json={"sessionId": session_id})

    def validate_license(self, key: str) -> dict:
        return self._client.get(f"{self.path}/licenses/validate", params={"key": key})


class OnaClient:
    """
    HTTP client wrapper with authentication and resource groups.

    `transport` is handed to httpx.Client; tests pass httpx.WSGITransport(app=app)
    to talk to a Flask app in-process.
    """

    def __init__(self, base_url: str, token: Optional[str] = None,
                 transport: Optional[httpx.BaseTransport] = None, timeout: float = 30.0):
        self.token = token
        self.http = httpx.Client(base_url=base_url.rstrip("/"), transport=transport, timeout=timeout)
        self.categories = CategoriesResource(self)
        self.subcategories = SubcategoriesResource(self)
        self.components = ComponentsResource(self)
        self.versions = VersionsResource(self)
        self.public = PublicResource(self)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method: str, path: str, *, params: Optional[Dict] = None, **kwargs) -> Any:
        response = self.http.request(
            method, path, params=_params(params or {}), headers=self._headers(), **kwargs
        )
        return self._unwrap(response)

    def _unwrap(self, response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            raise ApiError(response.status_code, "INTERNAL_ERROR", "Response was not JSON")
        if not response.is_success or not body.get("success", False):
            error = body.get("error") or {}
            raise ApiError(
                response.status_code,
                error.get("code", "INTERNAL_ERROR"),
                error.get("message", response.reason_phrase),
                error.get("details"),
            )
        return body.get("data")

    def get(self, path: str, params: Optional[Dict] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Optional[Dict] = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Optional[Dict] = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def login(self, email: str, password: str) -> dict:
        """Authenticate and keep the token for later calls."""
        data = self.post("/api/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data

    def logout(self) -> None:
        if self.token:
            self.post("/api/auth/logout")
            self.token = None

    def health(self) -> dict:
        return self.get("/api/health")

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "OnaClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
