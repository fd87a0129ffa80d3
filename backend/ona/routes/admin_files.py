# Overview: Flask API routes for admin file uploads; hands multipart files to the configured file store.

from flask import Blueprint, request

from ..decorators import require_admin
from ..envelope import created
from ..integrations import file_store

admin_files_bp = Blueprint("admin_files", __name__, url_prefix="/api/admin/files")


@admin_files_bp.post("/images")
@require_admin
def upload_image(ctx):
    """Multipart field "file"; returns {url, filename, size, contentType}."""
    uploaded = file_store().upload_image(request.files.get("file"))
    return created(uploaded.to_dict(), "Image uploaded")
