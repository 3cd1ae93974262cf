"""
Cloudinary asset storage for gallery images.
Uploads return the secure delivery URL stored in gallery_images.image_url;
deletes are best-effort cleanup after the database rows are gone.
"""
import asyncio
import logging
import re
from typing import Any, Dict, Optional

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from sitecms.config import settings

logger = logging.getLogger(__name__)

cloudinary.config(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET,
    secure=True,
)

_PUBLIC_ID = re.compile(r"/image/upload/(?:[^/]+,[^/]*/|[a-z]_[^/]+/)*(?:v\d+/)?(.+?)(?:\.[A-Za-z0-9]+)?$")


def validate_cloudinary_config() -> bool:
    missing = [
        name for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")
        if not getattr(settings, name)
    ]
    if missing:
        logger.warning(f"Cloudinary not configured, missing: {', '.join(missing)}")
        return False
    return True


def public_id_from_url(url: str) -> Optional[str]:
    """
    Recover the public id from a delivery URL, e.g.
    https://res.cloudinary.com/demo/image/upload/v1712/gallery/abc.webp -> gallery/abc
    Returns None for URLs that are not Cloudinary uploads.
    """
    if "res.cloudinary.com" not in url:
        return None
    match = _PUBLIC_ID.search(url)
    return match.group(1) if match else None


async def _with_retries(action: str, call, max_retries: int):
    for attempt in range(max_retries):
        try:
            # The SDK is blocking; keep it off the event loop
            return await asyncio.to_thread(call)
        except CloudinaryError as e:
            logger.warning(f"Cloudinary {action} error (attempt {attempt + 1}/{max_retries}): {str(e)}")
            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)
                continue
            logger.error(f"Cloudinary {action} failed after {max_retries} attempts: {str(e)}")
            raise


async def upload_image(file: Any, folder: Optional[str] = None, max_retries: int = 3) -> Dict[str, Any]:
    """
    Upload bytes or a file object.

    Returns:
        dict with url, public_id, width, height, bytes

    Raises:
        CloudinaryError: If upload fails after all retries
    """
    result = await _with_retries(
        "upload",
        lambda: cloudinary.uploader.upload(
            file,
            folder=folder or settings.CLOUDINARY_FOLDER,
            resource_type="image",
        ),
        max_retries,
    )
    logger.info(f"Uploaded image to Cloudinary: {result['public_id']}")
    return {
        "url": result["secure_url"],
        "public_id": result["public_id"],
        "width": result.get("width"),
        "height": result.get("height"),
        "bytes": result.get("bytes"),
    }


async def delete_image(public_id: str, max_retries: int = 3) -> Dict[str, Any]:
    """
    Destroy an asset and invalidate its CDN copies. "not found" counts as done.

    Raises:
        CloudinaryError: If deletion fails after all retries
    """
    result = await _with_retries(
        "delete",
        lambda: cloudinary.uploader.destroy(public_id, invalidate=True, resource_type="image"),
        max_retries,
    )
    if result.get("result") not in ("ok", "not found"):
        logger.warning(f"Unexpected Cloudinary delete result for {public_id}: {result}")
    return result


async def delete_assets(urls) -> int:
    """
    Best-effort removal of the assets behind deleted gallery rows.
    Failures are logged and skipped; returns how many deletes succeeded.
    """
    public_ids = [public_id for public_id in (public_id_from_url(url) for url in urls) if public_id]
    if not public_ids or not validate_cloudinary_config():
        return 0

    results = await asyncio.gather(*(delete_image(public_id) for public_id in public_ids), return_exceptions=True)
    deleted = 0
    for public_id, result in zip(public_ids, results):
        if isinstance(result, Exception):
            logger.warning(f"Cloudinary deletion failed for {public_id}: {str(result)}")
        else:
            deleted += 1
    return deleted
