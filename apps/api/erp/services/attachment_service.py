"""Claim attachments: validation, storage backends, two-phase attach.

The claim row always exists before any file is written. attach_files
validates every file, stores them, then records the storage keys on the
claim in one commit; if storing or the row update fails, files written by
this call are deleted again.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from typing import BinaryIO

import boto3
from sqlalchemy.orm import Session

from erp.core.config import settings
from erp.core.exceptions import ForbiddenError, InternalError, NotFoundError, ValidationError
from erp.core.permissions import require_capability
from erp.db.enums import Role
from erp.db.models import Claim, utcnow
from erp.schemas.auth import UserSession

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

ALLOWED_EXTENSIONS = {"pdf", "png", "jpg", "jpeg"}
ALLOWED_MIME_TYPES = {
    "application/pdf",
    "image/png",
    "image/jpeg",
    "image/jpg",
}
MAX_FILES_PER_REQUEST = 10


@dataclass
class IncomingFile:
    """An uploaded file handed over by the router."""
    filename: str
    content_type: str
    file: BinaryIO
    size: int


# =============================================================================
# Storage Backend
# =============================================================================

def _get_s3_client():
    """Get boto3 S3 client."""
    return boto3.client(
        "s3",
        region_name=settings.S3_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
    )


def _get_local_storage_path() -> str:
    """Get local storage directory path."""
    path = settings.LOCAL_STORAGE_PATH
    os.makedirs(path, exist_ok=True)
    return path


def store_file(storage_key: str, file: BinaryIO) -> None:
    """Store file to configured backend."""
    file.seek(0)
    if settings.STORAGE_BACKEND == "s3":
        _get_s3_client().upload_fileobj(file, settings.S3_BUCKET, storage_key)
        return

    path = os.path.join(_get_local_storage_path(), storage_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(file.read())


def delete_file(storage_key: str) -> None:
    """Delete file from storage."""
    if settings.STORAGE_BACKEND == "s3":
        _get_s3_client().delete_object(Bucket=settings.S3_BUCKET, Key=storage_key)
        return

    path = os.path.join(_get_local_storage_path(), storage_key)
    if os.path.exists(path):
        os.remove(path)


# =============================================================================
# Validation
# =============================================================================

def validate_file(filename: str, content_type: str, file_size: int) -> tuple[bool, str | None]:
    """
    Validate file against allowlists and size limits.

    Returns (is_valid, error_message)
    """
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in ALLOWED_EXTENSIONS:
        return False, f"File extension '.{ext}' not allowed"

    if content_type not in ALLOWED_MIME_TYPES:
        return False, f"Content type '{content_type}' not allowed"

    if file_size > settings.MAX_UPLOAD_BYTES:
        max_mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
        return False, f"File size exceeds {max_mb:.0f} MB limit"

    return True, None


def _storage_key(claim_id: uuid.UUID, filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower()
    return f"claims/{claim_id}/{uuid.uuid4()}.{ext}"


# =============================================================================
# Service Functions
# =============================================================================

def attach_files(
    db: Session,
    claim_id: uuid.UUID,
    files: list[IncomingFile],
    caller: UserSession,
) -> Claim:
    """
    Store files and append their keys to claim.file_paths.

    Raises:
        NotFoundError: claim does not exist
        ForbiddenError: client attaching to another client's claim
        ValidationError: no files, too many, or a file fails validation
        InternalError: storage failed (already-stored files are cleaned up)
    """
    require_capability(caller.role, "claims.attach")

    if not files:
        raise ValidationError("At least one file is required")
    if len(files) > MAX_FILES_PER_REQUEST:
        raise ValidationError(f"At most {MAX_FILES_PER_REQUEST} files per upload")
    for incoming in files:
        is_valid, error = validate_file(incoming.filename, incoming.content_type, incoming.size)
        if not is_valid:
            raise ValidationError(f"{incoming.filename}: {error}")

    claim = db.query(Claim).filter(Claim.id == claim_id).with_for_update().first()
    if not claim:
        raise NotFoundError("Claim not found")
    if caller.role == Role.CLIENT and claim.client_id != caller.user_id:
        raise ForbiddenError("You can only attach files to your own claims")

    stored: list[str] = []
    try:
        for incoming in files:
            key = _storage_key(claim.id, incoming.filename)
            store_file(key, incoming.file)
            stored.append(key)

        claim.file_paths = [*(claim.file_paths or []), *stored]
        claim.updated_at = utcnow()
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error("Attachment upload failed for claim %s; cleaning up %d file(s)", claim_id, len(stored))
        _cleanup(stored)
        raise InternalError("Failed to store attachments") from e

    db.refresh(claim)
    logger.info("Attached %d file(s) to claim %s", len(stored), claim.id)
    return claim


def _cleanup(storage_keys: list[str]) -> None:
    for key in storage_keys:
        try:
            delete_file(key)
        except Exception:
            logger.warning("Failed to remove orphaned attachment %s", key, exc_info=True)
