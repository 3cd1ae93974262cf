"""
FastAPI dependencies shared by the routers.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sitecms.database import get_db
from sitecms.gallery.service import GalleryService
from sitecms.site_settings import SiteFlags
from sitecms.store import ContentStore


def get_store(db: AsyncSession = Depends(get_db)) -> ContentStore:
    return ContentStore(db)


def get_gallery_service(store: ContentStore = Depends(get_store)) -> GalleryService:
    return GalleryService(store)


def get_site_flags(request: Request) -> SiteFlags:
    return request.app.state.site_flags
