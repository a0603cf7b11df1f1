import mimetypes

from django.conf import settings

from core.exceptions import BadRequest

IMAGE_CONTENT_TYPES = {"image/png", "image/jpeg", "image/jpg"}
DOCUMENT_CONTENT_TYPES = IMAGE_CONTENT_TYPES | {"application/pdf"}


def validate_upload(upload, *, field: str, allowed_content_types: set[str], max_bytes: int | None = None):
    """Reject a missing, oversized or wrongly typed multipart file before it reaches storage."""
    if upload is None:
        raise BadRequest(f"{field} file is required.")

    limit = max_bytes or settings.MAX_UPLOAD_BYTES
    if upload.size > limit:
        raise BadRequest(f"{field} must be {limit // (1024 * 1024)} MB or smaller.")

    content_type = upload.content_type or mimetypes.guess_type(upload.name)[0]
    if content_type not in allowed_content_types:
        allowed = ", ".join(sorted(allowed_content_types))
        raise BadRequest(f"Unsupported file type for {field}. Allowed: {allowed}.")
    return upload
