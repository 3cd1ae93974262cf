"""
CMS API routes for the admin dashboard.
Every endpoint requires a valid admin session token.
"""
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Request
from typing import List
import asyncio
import logging

from sitecms.config import settings
from sitecms.dependencies import get_gallery_service, get_site_flags, get_store
from sitecms.errors import FetchError, StoreError, ValidationError
from sitecms.gallery.batch import BatchEntry, GalleryMetadata, UploadBatch
from sitecms.gallery.service import GalleryService
from sitecms.gallery.uploads import UploadResult
from sitecms.schemas import (
    DeleteResponse,
    GalleryBatchCreate,
    GalleryGroupUpdate,
    GalleryImageResponse,
    GalleryImageUpdate,
    GroupCoverRequest,
    MaintenanceStatus,
    MaintenanceUpdate,
    UploadFailure,
    UploadResponse,
    UploadResultResponse,
)
from sitecms.services.cloudinary_service import delete_assets, upload_image
from sitecms.site_settings import SiteFlags
from sitecms.store import ContentStore
from sitecms.utils.image_converter import to_webp
from sitecms.utils.jwt_auth import verify_cms_token
from sitecms.utils.rate_limit import limiter, RATE_LIMITS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cms", tags=["CMS"])


def _failure(e: Exception, action: str) -> HTTPException:
    """Translate a domain error into the HTTP error the dashboard shows as a toast."""
    if isinstance(e, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.to_dict())
    if isinstance(e, FetchError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": f"Failed to {action}", "detail": str(e.detail)},
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": f"Failed to {action}", "detail": str(getattr(e, "detail", e))},
    )


def _not_found(what: str, identifier: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": f"{what} not found", "detail": f"{what} {identifier} does not exist"},
    )


async def _cleanup_assets(images) -> None:
    try:
        await delete_assets([image.image_url for image in images])
    except Exception as e:
        # Rows are already gone; an orphaned asset is only a storage cost
        logger.error(f"Asset cleanup failed: {str(e)}", exc_info=True)


@router.get("/gallery-images", response_model=List[GalleryImageResponse])
async def get_cms_gallery_images(
    service: GalleryService = Depends(get_gallery_service),
    token: dict = Depends(verify_cms_token),
):
    """All gallery images, drafts included, in display order."""
    try:
        images = await service.list_all()
    except FetchError as e:
        raise _failure(e, "retrieve gallery images")
    logger.info(f"Retrieved {len(images)} gallery images for CMS")
    return [GalleryImageResponse.model_validate(image) for image in images]


@router.post("/gallery-images", response_model=List[GalleryImageResponse], status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["write"])
async def commit_gallery_batch(
    request: Request,
    batch_request: GalleryBatchCreate,
    store: ContentStore = Depends(get_store),
    token: dict = Depends(verify_cms_token),
):
    """
    Commit an upload batch.

    One entry creates a standalone image. Several entries create a group
    sharing a new group_id, ordered as uploaded, with the flagged entry as cover.

    Raises:
        HTTPException: 400 if the batch is empty, too large, or has no single cover;
            500 if the write fails (nothing is saved)
    """
    if len(batch_request.entries) > settings.MAX_BATCH_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Batch too large", "detail": f"At most {settings.MAX_BATCH_SIZE} images per batch"},
        )

    batch = UploadBatch(entries=[BatchEntry(url=entry.url, is_cover=entry.is_cover) for entry in batch_request.entries])
    metadata = GalleryMetadata(
        title=batch_request.title,
        description=batch_request.description,
        category=batch_request.category,
        published=batch_request.published,
    )
    try:
        created = await batch.commit(store, metadata)
    except (ValidationError, FetchError, StoreError) as e:
        logger.warning(f"Gallery batch rejected: {e.message}")
        raise _failure(e, "save gallery images")

    return [GalleryImageResponse.model_validate(image) for image in created]


async def _upload_one(file: UploadFile) -> UploadResult:
    content = await file.read()
    content, converted = await asyncio.to_thread(to_webp, content)
    if converted:
        logger.debug(f"Uploading {file.filename} as WebP")
    result = await upload_image(content)
    return UploadResult(url=result["url"])


@router.post("/uploads", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["upload"])
async def upload_gallery_files(
    request: Request,
    files: List[UploadFile] = File(...),
    token: dict = Depends(verify_cms_token),
):
    """
    Upload image files to Cloudinary and return their URLs for a batch.
    Files upload concurrently; one failing file does not sink the others.

    Raises:
        HTTPException: 400 for non-image files, 502 if every upload fails
    """
    for i, file in enumerate(files):
        if not file.content_type or not file.content_type.startswith("image/"):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "Invalid file type", "detail": f"File '{file.filename or i}' is not an image"},
            )

    results = await asyncio.gather(*(_upload_one(file) for file in files), return_exceptions=True)

    uploads, errors = [], []
    for file, result in zip(files, results):
        if isinstance(result, Exception):
            logger.error(f"Error uploading {file.filename}: {str(result)}")
            errors.append(UploadFailure(filename=file.filename or "unknown", error=str(result)))
        else:
            uploads.append(UploadResultResponse(url=result.url))

    if not uploads:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "All uploads failed", "errors": [error.model_dump() for error in errors]},
        )
    if errors:
        logger.warning(f"Partial upload success: {len(uploads)} succeeded, {len(errors)} failed")
    return UploadResponse(uploads=uploads, errors=errors)


@router.put("/gallery-images/{image_id}", response_model=List[GalleryImageResponse])
async def update_cms_gallery_image(
    image_id: str,
    image_update: GalleryImageUpdate,
    service: GalleryService = Depends(get_gallery_service),
    token: dict = Depends(verify_cms_token),
):
    """
    Edit an image. Title, description, category and published apply to the
    whole group when the image belongs to one; image_url and order apply to
    this image only. Returns every record that changed.
    """
    try:
        updated = await service.update_image(image_id, image_update.model_dump(exclude_unset=True))
    except (FetchError, StoreError) as e:
        raise _failure(e, "update gallery image")
    if not updated:
        raise _not_found("Image", image_id)
    logger.info(f"Updated gallery image {image_id} ({len(updated)} record(s))")
    return [GalleryImageResponse.model_validate(image) for image in updated]


@router.delete("/gallery-images/{image_id}", response_model=DeleteResponse)
async def delete_cms_gallery_image(
    image_id: str,
    service: GalleryService = Depends(get_gallery_service),
    token: dict = Depends(verify_cms_token),
):
    """Delete a single image; a deleted cover hands the cover to the next member."""
    try:
        deleted = await service.delete_image(image_id)
    except (FetchError, StoreError) as e:
        raise _failure(e, "delete gallery image")
    if not deleted:
        raise _not_found("Image", image_id)
    await _cleanup_assets(deleted)
    return DeleteResponse(message="Image deleted successfully", deleted_ids=[image.id for image in deleted])


@router.put("/gallery-groups/{group_id}", response_model=List[GalleryImageResponse])
async def update_cms_gallery_group(
    group_id: str,
    group_update: GalleryGroupUpdate,
    service: GalleryService = Depends(get_gallery_service),
    token: dict = Depends(verify_cms_token),
):
    try:
        members = await service.update_group(group_id, group_update.model_dump(exclude_unset=True))
    except (FetchError, StoreError) as e:
        raise _failure(e, "update gallery group")
    if not members:
        raise _not_found("Group", group_id)
    return [GalleryImageResponse.model_validate(image) for image in members]


@router.put("/gallery-groups/{group_id}/cover", response_model=List[GalleryImageResponse])
async def set_cms_gallery_group_cover(
    group_id: str,
    cover: GroupCoverRequest,
    service: GalleryService = Depends(get_gallery_service),
    token: dict = Depends(verify_cms_token),
):
    try:
        members = await service.set_cover(group_id, cover.image_id)
    except (ValidationError, FetchError, StoreError) as e:
        raise _failure(e, "change cover image")
    if not members:
        raise _not_found("Group", group_id)
    return [GalleryImageResponse.model_validate(image) for image in members]


@router.delete("/gallery-groups/{group_id}", response_model=DeleteResponse)
async def delete_cms_gallery_group(
    group_id: str,
    service: GalleryService = Depends(get_gallery_service),
    token: dict = Depends(verify_cms_token),
):
    """Delete every image of a group in one transaction."""
    try:
        deleted = await service.delete_group(group_id)
    except (FetchError, StoreError) as e:
        raise _failure(e, "delete gallery group")
    if not deleted:
        raise _not_found("Group", group_id)
    await _cleanup_assets(deleted)
    return DeleteResponse(
        message=f"Deleted {len(deleted)} image(s) successfully",
        deleted_ids=[image.id for image in deleted],
    )


@router.post("/gallery/repair-covers")
async def repair_gallery_covers(
    service: GalleryService = Depends(get_gallery_service),
    token: dict = Depends(verify_cms_token),
):
    """Give every group without exactly one cover a single cover."""
    try:
        repaired = await service.repair_covers()
    except (FetchError, StoreError) as e:
        raise _failure(e, "repair cover images")
    return {"repaired_groups": repaired, "count": len(repaired)}


@router.get("/settings/maintenance", response_model=MaintenanceStatus)
async def get_maintenance_mode(
    store: ContentStore = Depends(get_store),
    flags: SiteFlags = Depends(get_site_flags),
    token: dict = Depends(verify_cms_token),
):
    flag = flags.maintenance_mode
    await flag.refresh(store, force=True)
    return MaintenanceStatus(maintenance_mode=flag.value, state=flag.state.value)


@router.put("/settings/maintenance", response_model=MaintenanceStatus)
async def set_maintenance_mode(
    update: MaintenanceUpdate,
    store: ContentStore = Depends(get_store),
    flags: SiteFlags = Depends(get_site_flags),
    token: dict = Depends(verify_cms_token),
):
    flag = flags.maintenance_mode
    try:
        await flag.set(store, update.maintenance_mode)
    except StoreError as e:
        raise _failure(e, "update maintenance mode")
    return MaintenanceStatus(maintenance_mode=flag.value, state=flag.state.value)


@router.post("/settings/maintenance/toggle", response_model=MaintenanceStatus)
async def toggle_maintenance_mode(
    store: ContentStore = Depends(get_store),
    flags: SiteFlags = Depends(get_site_flags),
    token: dict = Depends(verify_cms_token),
):
    flag = flags.maintenance_mode
    try:
        await flag.toggle(store)
    except StoreError as e:
        raise _failure(e, "toggle maintenance mode")
    return MaintenanceStatus(maintenance_mode=flag.value, state=flag.state.value)
