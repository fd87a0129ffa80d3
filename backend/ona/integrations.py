# Overview: Narrow interfaces to external collaborators (auth, payments, file storage) and their local defaults.

"""
Each collaborator is a small class with one main public method, chosen by
config at startup and stored in app.extensions["ona"]:

- AUTH_PROVIDER   -> get_session(headers) -> RequestContext | None
- PAYMENT_PROVIDER -> create_checkout_session(...) / retrieve_session(id)
- FILE_STORE      -> upload_image(file) -> UploadedFile

The defaults here are self-contained: bearer tokens from auth_tokens, an
in-process checkout that always succeeds (development only), and a local
upload folder served under /uploads/<name>.
"""

from __future__ import annotations

import os
import threading
import uuid
from dataclasses import dataclass, field

from flask import Flask, current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from .context import RequestContext
from .errors import BadRequestError, NotFoundError, ValidationFailed
from .models.common import TIER_RANK
from .services import session_service
from .time_utils import to_utc_z, utcnow

IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "webp", "svg"})


# -- Auth --

class TokenAuthProvider:
    """Authorization: Bearer <token> checked against auth_tokens."""

    def get_session(self, headers) -> RequestContext | None:
        header = headers.get("Authorization") or ""
        if not header.startswith("Bearer "):
            return None
        info = session_service.validate_session(header.split(" ", 1)[1].strip())
        if info is None:
            return None
        return RequestContext(user=info.user, session=info.session)


# -- Payments --

@dataclass
class CheckoutSession:
    id: str
    user_id: str
    tier: str
    amount_cents: int
    currency: str
    status: str  # open, paid, expired
    url: str
    success_url: str | None = None
    cancel_url: str | None = None
    payment_id: str | None = None
    customer_id: str | None = None
    created_at: str = field(default_factory=lambda: to_utc_z(utcnow()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "tier": self.tier,
            "amountCents": self.amount_cents,
            "currency": self.currency,
            "status": self.status,
            "url": self.url,
            "paymentId": self.payment_id,
            "createdAt": self.created_at,
        }


class LocalPaymentProvider:
    """
    Development checkout kept in process memory.

    Every session is created already paid so the license flow can be
    exercised end to end without a payment processor.
    """

    def __init__(self, prices: dict[str, int], base_url: str, currency: str = "USD"):
        self.prices = dict(prices)
        self.base_url = base_url.rstrip("/")
        self.currency = currency
        self._sessions: dict[str, CheckoutSession] = {}
        self._lock = threading.Lock()

    def create_checkout_session(self, user, tier: str, success_url: str | None = None,
                                cancel_url: str | None = None) -> CheckoutSession:
        if tier not in self.prices:
            raise ValidationFailed.field("tier", f"tier must be one of: {', '.join(sorted(self.prices, key=TIER_RANK.get))}")
        session_id = f"cs_local_{uuid.uuid4().hex}"
        session = CheckoutSession(
            id=session_id,
            user_id=user.id,
            tier=tier,
            amount_cents=self.prices[tier],
            currency=self.currency,
            status="paid",
            url=f"{self.base_url}/checkout/{session_id}",
            success_url=success_url,
            cancel_url=cancel_url,
            payment_id=f"pi_local_{uuid.uuid4().hex}",
            customer_id=f"cus_local_{user.id}",
        )
        with self._lock:
            self._sessions[session_id] = session
        return session

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError.for_entity("Checkout session", session_id)
        return session


# -- Files --

@dataclass
class UploadedFile:
    url: str
    filename: str
    size: int
    content_type: str | None = None

    def to_dict(self) -> dict:
        return {"url": self.url, "filename": self.filename, "size": self.size, "contentType": self.content_type}


class LocalFileStore:
    def __init__(self, folder: str, base_url: str, max_bytes: int):
        self.folder = folder
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

    def upload_image(self, file: FileStorage | None) -> UploadedFile:
        if file is None or not file.filename:
            raise BadRequestError("No file provided", details={"file": "is required"})
        original = secure_filename(file.filename)
        extension = original.rsplit(".", 1)[-1].lower() if "." in original else ""
        if extension not in IMAGE_EXTENSIONS:
            raise ValidationFailed.field("file", f"Allowed image types: {', '.join(sorted(IMAGE_EXTENSIONS))}")

        payload = file.read()
        if not payload:
            raise ValidationFailed.field("file", "File is empty")
        if len(payload) > self.max_bytes:
            raise ValidationFailed.field("file", f"File exceeds {self.max_bytes} bytes")

        os.makedirs(self.folder, exist_ok=True)
        name = f"{uuid.uuid4().hex}.{extension}"
        with open(os.path.join(self.folder, name), "wb") as handle:
            handle.write(payload)
        return UploadedFile(
            url=f"{self.base_url}/uploads/{name}",
            filename=name,
            size=len(payload),
            content_type=file.mimetype,
        )


# -- Registry --

AUTH_PROVIDERS = {"token": lambda app: TokenAuthProvider()}
PAYMENT_PROVIDERS = {
    "local": lambda app: LocalPaymentProvider(app.config["TIER_PRICES_CENTS"], app.config["PUBLIC_BASE_URL"]),
}
FILE_STORES = {
    "local": lambda app: LocalFileStore(
        upload_folder(app), app.config["PUBLIC_BASE_URL"], app.config["MAX_UPLOAD_BYTES"]
    ),
}


def upload_folder(app: Flask) -> str:
    folder = app.config["UPLOAD_FOLDER"]
    return folder if os.path.isabs(folder) else os.path.join(app.instance_path, folder)


def _pick(registry: dict, name: str, kind: str, app: Flask):
    try:
        factory = registry[name]
    except KeyError:
        raise ValueError(f"Unknown {kind} '{name}' (available: {', '.join(registry)})")
    return factory(app)


def init_integrations(app: Flask) -> None:
    app.extensions["ona"] = {
        "auth_provider": _pick(AUTH_PROVIDERS, app.config["AUTH_PROVIDER"], "auth provider", app),
        "payment_provider": _pick(PAYMENT_PROVIDERS, app.config["PAYMENT_PROVIDER"], "payment provider", app),
        "file_store": _pick(FILE_STORES, app.config["FILE_STORE"], "file store", app),
    }


def auth_provider() -> TokenAuthProvider:
    return current_app.extensions["ona"]["auth_provider"]


def payment_provider() -> LocalPaymentProvider:
    return current_app.extensions["ona"]["payment_provider"]


def file_store() -> LocalFileStore:
    return current_app.extensions["ona"]["file_store"]
