"""
Pydantic schemas for request and response data validation.
Defines data structures for API endpoints with automatic validation and serialization.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional, List


class GalleryImageResponse(BaseModel):
    """Full gallery image record, used by the admin endpoints."""
    id: str
    title: str
    description: str
    category: str
    image_url: str
    published: bool
    order: int
    group_id: Optional[str] = None
    is_cover: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GalleryImagePublicResponse(BaseModel):
    """Public view of an image; timestamps and draft state are left out."""
    id: str
    title: str
    description: str
    category: str
    image_url: str
    order: int
    group_id: Optional[str] = None
    is_cover: bool

    model_config = ConfigDict(from_attributes=True)


class GalleryTileResponse(BaseModel):
    """One grid tile: a standalone image or the cover of a group."""
    image: GalleryImagePublicResponse
    group_id: Optional[str] = None
    photo_count: int


class GalleryResponse(BaseModel):
    tiles: List[GalleryTileResponse]
    categories: List[str]
    category: Optional[str] = None


class GalleryGroupResponse(BaseModel):
    """Members of an open tile plus the lightbox position."""
    group_id: str
    title: str
    category: str
    description: str
    images: List[GalleryImagePublicResponse]
    index: int
    has_next: bool
    has_previous: bool


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Field cannot be blank")
    return v


class BatchEntryRequest(BaseModel):
    url: str = Field(min_length=1)
    is_cover: bool = False


class GalleryBatchCreate(BaseModel):
    """
    Request schema for committing an upload batch.
    Used by POST /api/cms/gallery-images.
    """
    entries: List[BatchEntryRequest]
    title: str = Field(min_length=1)
    description: str = ""
    category: str = Field(min_length=1)
    published: bool = True

    @field_validator("title", "category")
    @classmethod
    def strip_required(cls, v):
        return _strip_required(v)


class GalleryImageUpdate(BaseModel):
    """
    Request schema for editing an image from the admin form.
    Group-wide fields spread to every member of the image's group.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    published: Optional[bool] = None
    image_url: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)

    @field_validator("title", "category")
    @classmethod
    def strip_if_given(cls, v):
        return v if v is None else _strip_required(v)


class GalleryGroupUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    published: Optional[bool] = None

    @field_validator("title", "category")
    @classmethod
    def strip_if_given(cls, v):
        return v if v is None else _strip_required(v)


class GroupCoverRequest(BaseModel):
    image_id: str


class UploadResultResponse(BaseModel):
    url: str


class UploadFailure(BaseModel):
    filename: str
    error: str


class UploadResponse(BaseModel):
    uploads: List[UploadResultResponse]
    errors: List[UploadFailure] = []


class DeleteResponse(BaseModel):
    message: str
    deleted_ids: List[str]


class MaintenanceStatus(BaseModel):
    maintenance_mode: bool
    state: str


class MaintenanceUpdate(BaseModel):
    maintenance_mode: bool


class LoginRequest(BaseModel):
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class SessionResponse(BaseModel):
    authenticated: bool
