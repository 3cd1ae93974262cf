"""
Admin upload batch.

Uploaded asset URLs collect here until the admin commits them. One entry
becomes a standalone image; several become a new group sharing a fresh
group_id, with exactly one entry flagged as the cover.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Union
import logging
import uuid

from sitecms.errors import ValidationError
from sitecms.gallery.uploads import UploadResult

logger = logging.getLogger(__name__)


@dataclass
class BatchEntry:
    url: str
    is_cover: bool = False


@dataclass
class GalleryMetadata:
    """Fields shared by every image committed from one batch."""
    title: str = ""
    description: str = ""
    category: str = ""
    published: bool = True

    def as_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "published": self.published,
        }


def _new_group_id() -> str:
    return str(uuid.uuid4())


@dataclass
class UploadBatch:
    entries: List[BatchEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def add_uploaded(self, upload: Union[str, UploadResult]) -> BatchEntry:
        url = upload.url if isinstance(upload, UploadResult) else upload
        entry = BatchEntry(url=url, is_cover=not self.entries)
        self.entries.append(entry)
        return entry

    def set_cover(self, index: int) -> None:
        if not 0 <= index < len(self.entries):
            raise IndexError(f"No batch entry at position {index}")
        for position, entry in enumerate(self.entries):
            entry.is_cover = position == index

    def remove(self, index: int) -> BatchEntry:
        if not 0 <= index < len(self.entries):
            raise IndexError(f"No batch entry at position {index}")
        removed = self.entries.pop(index)
        if removed.is_cover and self.entries:
            self.entries[0].is_cover = True
        return removed

    def clear(self) -> None:
        self.entries = []

    def validate(self) -> None:
        if not self.entries:
            raise ValidationError("Please upload at least one image")
        covers = sum(1 for entry in self.entries if entry.is_cover)
        if covers == 0:
            raise ValidationError("Please choose a cover image")
        if covers > 1:
            raise ValidationError("Only one image can be the cover", f"{covers} entries are marked as cover")

    def build_records(
        self,
        metadata: GalleryMetadata,
        base_order: int,
        group_id_factory: Callable[[], str] = _new_group_id,
    ) -> List[Dict[str, Any]]:
        """Expand the batch into gallery_images rows without writing anything."""
        self.validate()
        shared = metadata.as_dict()

        if len(self.entries) == 1:
            return [dict(shared, image_url=self.entries[0].url, order=base_order,
                         group_id=None, is_cover=False)]

        group_id = group_id_factory()
        return [
            dict(shared, image_url=entry.url, order=base_order + position,
                 group_id=group_id, is_cover=entry.is_cover)
            for position, entry in enumerate(self.entries)
        ]

    async def commit(self, store, metadata: GalleryMetadata) -> List[Any]:
        """
        Write the batch through the content store.

        Validation happens before any read or write. A StoreError leaves the
        batch exactly as it was so the admin can resubmit; success empties it.
        """
        self.validate()
        current_max = await store.max_value("gallery_images", "order")
        base_order = 0 if current_max is None else current_max + 1
        records = self.build_records(metadata, base_order)
        created = await store.insert("gallery_images", records)
        logger.info(
            f"Committed batch of {len(created)} image(s) "
            f"(group: {records[0]['group_id']}, base order: {base_order})"
        )
        self.clear()
        return created
