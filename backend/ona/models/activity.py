from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import id_column


class AuditLog(db.Model):
    """
    Administrative audit trail.

    IMMUTABLE: rows are only ever inserted. entity_id is a plain string so
    entries survive deletion of the entity they describe.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        db.Index("ix_audit_logs_action_created", "action", "created_at"),
    )

    id = id_column()
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = db.Column(db.String(100), nullable=False)  # e.g. "category.create", "category.reorder"
    entity_type = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.String(255), nullable=True)
    changes = db.Column(db.JSON, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "action": self.action,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "changes": self.changes,
            "ipAddress": self.ip_address,
            "createdAt": to_utc_z(self.created_at),
        }


class UserFavorite(db.Model):
    __tablename__ = "user_favorites"
    __table_args__ = (
        db.UniqueConstraint("user_id", "component_id", name="uq_user_favorites_user_component"),
    )

    id = id_column()
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    component_id = db.Column(db.String(36), db.ForeignKey("components.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())


class ComponentView(db.Model):
    __tablename__ = "component_views"

    id = id_column()
    component_id = db.Column(db.String(36), db.ForeignKey("components.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    session_id = db.Column(db.String(255), nullable=True)
    referrer = db.Column(db.Text, nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)
    viewed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True)


class ComponentCopy(db.Model):
    __tablename__ = "component_copies"

    id = id_column()
    component_id = db.Column(db.String(36), db.ForeignKey("components.id", ondelete="CASCADE"), nullable=False, index=True)
    version_id = db.Column(db.String(36), db.ForeignKey("component_versions.id", ondelete="CASCADE"), nullable=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    license_id = db.Column(db.String(36), db.ForeignKey("licenses.id", ondelete="SET NULL"), nullable=True)
    copied_target = db.Column(db.String(50), nullable=False, default="component")
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)
    copied_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True)
