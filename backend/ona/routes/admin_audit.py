# Overview: Flask API routes for reading the admin audit trail.

from flask import Blueprint, request

from ..decorators import require_admin
from ..envelope import paginated
from ..services import audit_service
from ..validation import parse_search

admin_audit_bp = Blueprint("admin_audit", __name__, url_prefix="/api/admin/audit-logs")

AUDIT_FILTERS = {"entityType": "str", "entityId": "str", "action": "str", "userId": "uuid"}


@admin_audit_bp.get("")
@require_admin
def list_audit_logs(ctx):
    """Newest first. Query params: entityType, entityId, action, userId, page, limit."""
    params = parse_search(request.args, filters=AUDIT_FILTERS)
    result = audit_service.list_entries(page=params.page, limit=params.limit, **params.filters)
    return paginated(result, [entry.to_dict() for entry in result.items])
