"""
Public gallery routes.
Published images only; no authentication is consulted here.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
import logging

from sitecms.dependencies import get_gallery_service
from sitecms.errors import FetchError
from sitecms.gallery.grouping import categories, group_images, select_cover
from sitecms.gallery.lightbox import Lightbox
from sitecms.gallery.service import GalleryService
from sitecms.schemas import (
    GalleryGroupResponse,
    GalleryImagePublicResponse,
    GalleryResponse,
    GalleryTileResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _unavailable(e: FetchError, **extra) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=dict({"error": "Failed to retrieve gallery images", "detail": str(e.detail)}, **extra),
    )


@router.get("/gallery", response_model=GalleryResponse)
async def get_gallery(
    category: Optional[str] = None,
    service: GalleryService = Depends(get_gallery_service),
):
    """
    Gallery grid: one tile per standalone image or group, in display order.

    Args:
        category: Only tiles whose cover image carries this category ("all" or empty for every tile)

    Raises:
        HTTPException: 503 with an empty tile list if the images cannot be read
    """
    if category in ("", "all"):
        category = None
    try:
        images = await service.list_published()
    except FetchError as e:
        raise _unavailable(e, tiles=[])

    tiles = group_images(images, category)
    logger.info(f"Built {len(tiles)} gallery tile(s) from {len(images)} image(s) (category: {category})")

    return GalleryResponse(
        tiles=[
            GalleryTileResponse(
                image=GalleryImagePublicResponse.model_validate(tile.image),
                group_id=tile.group_id,
                photo_count=tile.photo_count,
            )
            for tile in tiles
        ],
        categories=categories(images),
        category=category,
    )


@router.get("/gallery/groups/{group_id}", response_model=GalleryGroupResponse)
async def get_gallery_group(
    group_id: str,
    index: int = 0,
    service: GalleryService = Depends(get_gallery_service),
):
    """
    Members of a group in upload order, with the lightbox positioned at
    `index` (clamped to the group's bounds).
    """
    try:
        members = await service.get_group(group_id, published_only=True)
    except FetchError as e:
        raise _unavailable(e)

    if not members:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Group not found", "detail": f"Group {group_id} does not exist"},
        )

    cover = select_cover(members)
    lightbox = Lightbox(members, index=index)
    return GalleryGroupResponse(
        group_id=group_id,
        title=cover.title,
        category=cover.category,
        description=cover.description,
        images=[GalleryImagePublicResponse.model_validate(image) for image in lightbox.members],
        index=lightbox.index,
        has_next=lightbox.has_next,
        has_previous=lightbox.has_previous,
    )


@router.get("/gallery/images/{image_id}", response_model=GalleryImagePublicResponse)
async def get_gallery_image(
    image_id: str,
    service: GalleryService = Depends(get_gallery_service),
):
    try:
        image = await service.get_image(image_id)
    except FetchError as e:
        raise _unavailable(e)

    if image is None or not image.published:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Image not found", "detail": f"Image ID {image_id} does not exist"},
        )
    return GalleryImagePublicResponse.model_validate(image)
