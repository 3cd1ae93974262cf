"""
SQLAlchemy models for the application.
All database models inherit from Base (declarative base).
"""
import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func
from sitecms.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class GalleryImage(Base):
    """
    Gallery image record.

    Images sharing a group_id form one multi-photo group shown as a single
    tile; exactly one member of a group carries is_cover. Standalone images
    have group_id NULL and is_cover false.
    """
    __tablename__ = "gallery_images"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False, default="", index=True)
    image_url = Column(String, nullable=False)
    published = Column(Boolean, nullable=False, default=True, index=True)
    order = Column("order", Integer, nullable=False, default=0, index=True)
    group_id = Column(String(36), nullable=True, index=True)
    is_cover = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<GalleryImage id={self.id} group={self.group_id} order={self.order}>"


class SiteSetting(Base):
    """Key/value site-wide settings (maintenance mode)."""
    __tablename__ = "site_settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
