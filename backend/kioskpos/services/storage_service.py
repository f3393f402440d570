# Overview: Local object storage for item images and clock-in photos.

"""
Object storage.

Two buckets live as directories under STORAGE_ROOT:
- item-images: catalog pictures, written by the manager
- clockin-photos: attendance photos, written by kiosks under "<kiosk_id>/..."

Both buckets are publicly readable through /api/storage/<bucket>/<path>; the
stored URL is what goes into image_url columns.
"""

from __future__ import annotations

import os

from flask import current_app
from werkzeug.security import safe_join


BUCKET_ITEM_IMAGES = "item-images"
BUCKET_CLOCK_PHOTOS = "clockin-photos"
BUCKETS = (BUCKET_ITEM_IMAGES, BUCKET_CLOCK_PHOTOS)

IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

URL_PREFIX = "/api/storage"


class StorageError(Exception):
    """Raised for rejected uploads or unknown objects."""
    pass


def storage_root() -> str:
    root = current_app.config["STORAGE_ROOT"]
    if not os.path.isabs(root):
        root = os.path.join(current_app.instance_path, root)
    return root


def bucket_dir(bucket: str) -> str:
    if bucket not in BUCKETS:
        raise StorageError(f"Unknown bucket: {bucket}")
    return os.path.join(storage_root(), bucket)


def _resolve(bucket: str, path: str) -> str:
    full = safe_join(bucket_dir(bucket), path)
    if full is None or not path or path.endswith("/"):
        raise StorageError("Invalid object path")
    return full


def looks_like_jpeg(data: bytes) -> bool:
    return data[:3] == b"\xff\xd8\xff"


def public_url(bucket: str, path: str) -> str:
    return f"{URL_PREFIX}/{bucket}/{path}"


def save(bucket: str, path: str, data: bytes, content_type: str | None = None) -> str:
    """Write an object and return its public URL. Existing objects are overwritten."""
    if not data:
        raise StorageError("Empty upload")
    limit = current_app.config["MAX_UPLOAD_BYTES"]
    if len(data) > limit:
        raise StorageError(f"Upload exceeds {limit} bytes")
    if content_type is not None and content_type not in IMAGE_TYPES:
        raise StorageError(f"Unsupported content type: {content_type}")

    full = _resolve(bucket, path)
    os.makedirs(os.path.dirname(full), exist_ok=True)
    with open(full, "wb") as fh:
        fh.write(data)

    current_app.logger.info("Stored %s/%s (%d bytes)", bucket, path, len(data))
    return public_url(bucket, path)


def exists(bucket: str, path: str) -> bool:
    try:
        return os.path.isfile(_resolve(bucket, path))
    except StorageError:
        return False


def extension_for(content_type: str | None) -> str:
    return IMAGE_TYPES.get(content_type or "", ".jpg")
