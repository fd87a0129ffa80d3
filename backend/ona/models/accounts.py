from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import CSS_FRAMEWORKS, FRAMEWORKS, TOKEN_TYPES, USER_ROLES, id_column, one_of


class User(db.Model):
    """
    Marketplace account. Owns licenses, favorites, views, copies, and audit entries.

    password_hash is nullable: accounts created through an external provider
    never get a local password.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.UniqueConstraint("username", name="uq_users_username"),
        one_of("role", USER_ROLES, "ck_users_role"),
        one_of("preferred_framework", FRAMEWORKS, "ck_users_preferred_framework"),
        one_of("preferred_css", CSS_FRAMEWORKS, "ck_users_preferred_css"),
    )

    id = id_column()
    email = db.Column(db.String(255), nullable=False, index=True)
    username = db.Column(db.String(255), nullable=True, index=True)
    full_name = db.Column(db.String(255), nullable=True)
    avatar_url = db.Column(db.Text, nullable=True)

    role = db.Column(db.String(16), nullable=False, default="user")  # user, admin, super_admin
    password_hash = db.Column(db.String(255), nullable=True)
    email_verified = db.Column(db.Boolean, nullable=False, default=False)

    preferred_framework = db.Column(db.String(16), nullable=False, default="react")
    preferred_css = db.Column(db.String(16), nullable=False, default="tailwind_v4")

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    licenses = db.relationship(
        "License",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "fullName": self.full_name,
            "avatarUrl": self.avatar_url,
            "role": self.role,
            "emailVerified": self.email_verified,
            "preferredFramework": self.preferred_framework,
            "preferredCss": self.preferred_css,
            "isActive": self.is_active,
            "lastLoginAt": to_utc_z(self.last_login_at),
            "createdAt": to_utc_z(self.created_at),
        }


class AuthToken(db.Model):
    """
    Opaque bearer tokens. Only the SHA-256 hash is stored.

    Sessions expire on an absolute deadline and on idle time; revoked_at
    marks explicit logout.
    """
    __tablename__ = "auth_tokens"
    __table_args__ = (
        db.Index("ix_auth_tokens_user_type", "user_id", "token_type"),
        one_of("token_type", TOKEN_TYPES, "ck_auth_tokens_type"),
    )

    id = id_column()
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    token_type = db.Column(db.String(16), nullable=False, default="session")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    user = db.relationship("User", backref=db.backref("tokens", lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "tokenType": self.token_type,
            "createdAt": to_utc_z(self.created_at),
            "lastUsedAt": to_utc_z(self.last_used_at),
            "expiresAt": to_utc_z(self.expires_at),
        }
