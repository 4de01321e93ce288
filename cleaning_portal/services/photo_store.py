"""Object storage for uploaded images.

Objects live under ``{base_dir}/{bucket}/{owner_scope}/{entity_id}/{timestamp}.{ext}``
and are served from ``{public_base_url}/{bucket}/...``.
"""

from __future__ import annotations

import asyncio
import io
import re
import time
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from cleaning_portal.config import get_settings
from cleaning_portal.errors import UploadError

_settings = get_settings()

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif"}

# Owner scopes, entity ids and folders are single path segments
SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def _get_base() -> Path:
    return Path(_settings.storage.base_dir)


def _ext_for(filename: str) -> str:
    ext = filename.rsplit(".", 1)[1].lower() if "." in filename else "jpg"
    if ext not in ALLOWED_EXTENSIONS:
        raise UploadError(filename, f"{filename}: unsupported file type '.{ext}'")
    return ext


def is_safe_segment(value: str) -> bool:
    return bool(value) and SEGMENT_RE.match(value) is not None


def _object_path(bucket: str, relative: str) -> Path:
    """Resolve an object path, refusing anything that leaves the bucket."""
    root = (_get_base() / bucket).resolve()
    target = (root / relative).resolve()
    if not target.is_relative_to(root):
        raise UploadError(relative, f"Invalid object path '{relative}'")
    return target


def _verify_image(data: bytes, filename: str) -> None:
    if not data:
        raise UploadError(filename, f"{filename} is empty")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise UploadError(filename, f"{filename} is not a valid image") from exc


def _save_sync(bucket: str, owner_scope: str, entity_id: str, data: bytes, filename: str) -> str:
    for segment in (owner_scope, entity_id):
        if not is_safe_segment(segment):
            raise UploadError(filename, f"Invalid storage folder '{segment}'")
    ext = _ext_for(filename)
    _verify_image(data, filename)

    directory = _object_path(bucket, f"{owner_scope}/{entity_id}")
    directory.mkdir(parents=True, exist_ok=True)

    # Millisecond timestamps; bump on collision within one batch
    stamp = int(time.time() * 1000)
    target = directory / f"{stamp}.{ext}"
    while target.exists():
        stamp += 1
        target = directory / f"{stamp}.{ext}"

    try:
        target.write_bytes(data)
    except OSError as exc:
        raise UploadError(filename) from exc
    return f"{owner_scope}/{entity_id}/{target.name}"


async def save_object(bucket: str, owner_scope: str, entity_id: str, data: bytes, filename: str) -> str:
    """Store an image. Returns the object path inside the bucket."""
    return await asyncio.to_thread(_save_sync, bucket, owner_scope, entity_id, data, filename)


def public_url(bucket: str, path: str) -> str:
    return f"{_settings.storage.public_base_url.rstrip('/')}/{bucket}/{path}"


def _delete_sync(bucket: str, path: str) -> None:
    _object_path(bucket, path).unlink(missing_ok=True)


async def delete_object(bucket: str, path: str) -> None:
    await asyncio.to_thread(_delete_sync, bucket, path)
