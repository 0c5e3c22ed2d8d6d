#vecinity/services/media.py
import io
import logging
import os
import uuid
from typing import List, Optional

from fastapi import UploadFile
from PIL import Image, ImageOps, UnidentifiedImageError

from vecinity.core.config import settings
from vecinity.core.errors import UploadError
from vecinity.schemas.report import MediaItem

logger = logging.getLogger(__name__)

IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
VIDEO_TYPES = {"video/mp4", "video/avi", "video/mov", "video/wmv"}
ALLOWED = IMAGE_TYPES | VIDEO_TYPES

VIDEO_EXT = {"video/mp4": "mp4", "video/avi": "avi", "video/mov": "mov", "video/wmv": "wmv"}


def public_url(path: str) -> str:
    """Map a file under the storage root onto the public ``/uploads`` mount."""
    rel = os.path.normpath(path).replace("\\", "/")
    root = os.path.normpath(settings.upload_path).replace("\\", "/")
    if rel.startswith(root + "/"):
        rel = rel[len(root) + 1:]
    elif "uploads/" in rel:
        rel = rel.split("uploads/", 1)[1]
    return f"{settings.public_base_url.rstrip('/')}/uploads/{rel.lstrip('/')}"


def local_path(url: str) -> Optional[str]:
    """Inverse of ``public_url`` for files this service wrote; None for foreign URLs."""
    marker = "/uploads/"
    if not url or marker not in url:
        return None
    rel = url.split(marker, 1)[1]
    return os.path.join(os.path.normpath(settings.upload_path), *rel.split("/"))


def _to_rgb(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA", "P"):
        img = img.convert("RGBA")
        bg = Image.new("RGB", img.size, (255, 255, 255))
        bg.paste(img, mask=img.split()[-1])
        return bg
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _save_image(data: bytes, folder: str, stem: str, written: List[str]) -> tuple[str, str]:
    """
    Writes the display variant and the square thumbnail; returns both paths.

    Each path is appended to ``written`` as soon as the file exists so the
    caller can clean up after a failure halfway through.
    """
    try:
        img = Image.open(io.BytesIO(data))
        img = ImageOps.exif_transpose(img)
    except Image.DecompressionBombError:
        raise UploadError("Image dimensions are too large")
    except (UnidentifiedImageError, OSError) as e:
        raise UploadError(f"Could not read image: {e}")
    img = _to_rgb(img)

    display = img.copy()
    side = settings.image_max_side
    # thumbnail() never enlarges
    display.thumbnail((side, side), Image.Resampling.LANCZOS)
    display_path = os.path.join(folder, f"{stem}.jpg")
    display.save(display_path, format="JPEG", quality=settings.image_quality, optimize=True)
    written.append(display_path)

    size = settings.thumbnail_size
    thumb = ImageOps.fit(img, (size, size), Image.Resampling.LANCZOS, centering=(0.5, 0.5))
    thumb_path = os.path.join(folder, f"{stem}_thumb.jpg")
    thumb.save(thumb_path, format="JPEG", quality=settings.thumbnail_quality)
    written.append(thumb_path)
    return display_path, thumb_path


def _check(files: List[UploadFile]) -> List[bytes]:
    """Reads every file and rejects the batch before anything touches disk."""
    if len(files) > settings.max_files:
        raise UploadError(f"Too many files. Maximum {settings.max_files} files per request")

    payloads, total = [], 0
    for f in files:
        ctype = (f.content_type or "").lower()
        if ctype not in ALLOWED:
            allowed = ", ".join(sorted(ALLOWED))
            raise UploadError(f"File type not allowed: {ctype or 'unknown'}. Allowed types: {allowed}")
        data = f.file.read()
        if len(data) > settings.max_file_size:
            raise UploadError(
                f"File {f.filename} is too large. Maximum size is {settings.max_file_size // (1024 * 1024)}MB"
            )
        total += len(data)
        if total > settings.max_total_upload_size:
            raise UploadError(
                f"Total upload size exceeds {settings.max_total_upload_size // (1024 * 1024)}MB"
            )
        payloads.append(data)
    return payloads


def ingest(files: Optional[List[UploadFile]], subdir: str = "reports") -> List[MediaItem]:
    """Validate, process and store uploads. Either every file lands or none does."""
    files = [f for f in (files or []) if f is not None and (f.filename or f.content_type)]
    if not files:
        return []
    payloads = _check(files)

    folder = os.path.join(settings.upload_path, subdir)
    os.makedirs(folder, exist_ok=True)

    written: List[str] = []
    items: List[MediaItem] = []
    try:
        for f, data in zip(files, payloads):
            ctype = f.content_type.lower()
            stem = uuid.uuid4().hex
            if ctype in IMAGE_TYPES:
                display_path, thumb_path = _save_image(data, folder, stem, written)
                items.append(MediaItem(
                    tipo="imagen",
                    url=public_url(display_path),
                    thumbnail=public_url(thumb_path),
                    nombre_original=f.filename or "",
                    tamano=os.path.getsize(display_path),
                    mime_type="image/jpeg",
                ))
            else:
                path = os.path.join(folder, f"{stem}.{VIDEO_EXT.get(ctype, 'bin')}")
                with open(path, "wb") as out:
                    out.write(data)
                written.append(path)
                items.append(MediaItem(
                    tipo="video",
                    url=public_url(path),
                    nombre_original=f.filename or "",
                    tamano=len(data),
                    mime_type=ctype,
                ))
    except Exception:
        _remove(written)
        logger.warning("Upload failed, removed %d partially written file(s)", len(written))
        raise
    return items


def ingest_avatar(file: Optional[UploadFile]) -> Optional[MediaItem]:
    if file is None or not (file.filename or file.content_type):
        return None
    if (file.content_type or "").lower() not in IMAGE_TYPES:
        raise UploadError("Avatar must be an image (jpeg, png or webp)")
    items = ingest([file], subdir="avatars")
    return items[0] if items else None


def _remove(paths: List[str]) -> None:
    for p in paths:
        try:
            os.remove(p)
        except FileNotFoundError:
            continue


def discard(items: List[MediaItem]) -> None:
    """Drop stored files when the database write that referenced them did not happen."""
    paths = []
    for item in items:
        for url in (item.url, item.thumbnail):
            p = local_path(url) if url else None
            if p:
                paths.append(p)
    _remove(paths)
    if paths:
        logger.info("Discarded %d stored upload file(s)", len(paths))
