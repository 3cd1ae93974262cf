"""
Gallery reads and group-aware writes.

Group metadata (title, description, category, published) is kept identical
across every member; image_url, order and is_cover belong to each image.
"""
from typing import Any, Dict, List, Mapping, Optional
import logging

from sitecms.errors import ValidationError
from sitecms.gallery.grouping import group_members, insertion_key
from sitecms.store import ContentStore

logger = logging.getLogger(__name__)

COLLECTION = "gallery_images"
ORDERING = ["order", "created_at", "id"]
GROUP_FIELDS = ("title", "description", "category", "published")
MEMBER_FIELDS = ("image_url", "order")


class GalleryService:
    def __init__(self, store: ContentStore):
        self.store = store

    async def list_published(self, category: Optional[str] = None) -> List[Any]:
        filters: Dict[str, Any] = {"published": True}
        if category:
            filters["category"] = category
        return await self.store.list(COLLECTION, filters, ORDERING)

    async def list_all(self) -> List[Any]:
        return await self.store.list(COLLECTION, None, ORDERING)

    async def get_image(self, image_id: str):
        return await self.store.get(COLLECTION, {"id": image_id})

    async def get_group(self, group_id: str, published_only: bool = False) -> List[Any]:
        filters: Dict[str, Any] = {"group_id": group_id}
        if published_only:
            filters["published"] = True
        return group_members(await self.store.list(COLLECTION, filters), group_id)

    async def update_group(self, group_id: str, patch: Mapping[str, Any]) -> List[Any]:
        shared = {name: value for name, value in patch.items() if name in GROUP_FIELDS and value is not None}
        members = await self.get_group(group_id)
        if not members:
            return []
        if shared:
            await self.store.update(COLLECTION, {"group_id": group_id}, shared)
            logger.info(f"Updated {len(members)} member(s) of group {group_id}: {sorted(shared)}")
        return await self.get_group(group_id)

    async def update_image(self, image_id: str, patch: Mapping[str, Any]) -> List[Any]:
        """
        Apply an edit from the admin form.

        Returns every record the edit touched: the image alone when
        standalone, the whole group otherwise.
        """
        image = await self.get_image(image_id)
        if image is None:
            return []

        patch = {name: value for name, value in patch.items() if value is not None}
        shared = {name: value for name, value in patch.items() if name in GROUP_FIELDS}
        own = {name: value for name, value in patch.items() if name in MEMBER_FIELDS}

        if image.group_id is None:
            await self.store.update(COLLECTION, {"id": image_id}, dict(shared, **own))
            return [await self.get_image(image_id)]

        steps = []
        if shared:
            steps.append(("update", COLLECTION, {"group_id": image.group_id}, shared))
        if own:
            steps.append(("update", COLLECTION, {"id": image_id}, own))
        if steps:
            await self.store.run_in_transaction(steps)
        return await self.get_group(image.group_id)

    async def set_cover(self, group_id: str, image_id: str) -> List[Any]:
        members = await self.get_group(group_id)
        if not members:
            return []
        if image_id not in {member.id for member in members}:
            raise ValidationError("Cover must belong to the group", f"Image {image_id} is not in group {group_id}")
        await self.store.run_in_transaction([
            ("update", COLLECTION, {"group_id": group_id}, {"is_cover": False}),
            ("update", COLLECTION, {"id": image_id}, {"is_cover": True}),
        ])
        return await self.get_group(group_id)

    async def delete_image(self, image_id: str) -> List[Any]:
        """
        Delete one image. Removing a group's cover hands the cover to the next
        member in upload order; a group left with one image stays a group.
        """
        image = await self.get_image(image_id)
        if image is None:
            return []
        if image.group_id is None or not image.is_cover:
            await self.store.delete(COLLECTION, {"id": image_id})
            return [image]

        remaining = [member for member in await self.get_group(image.group_id) if member.id != image_id]
        steps = [("delete", COLLECTION, {"id": image_id})]
        if remaining:
            steps.append(("update", COLLECTION, {"id": remaining[0].id}, {"is_cover": True}))
        await self.store.run_in_transaction(steps)
        return [image]

    async def delete_group(self, group_id: str) -> List[Any]:
        """Delete every member of a group in one statement."""
        members = await self.get_group(group_id)
        if not members:
            return []
        await self.store.delete(COLLECTION, {"group_id": group_id})
        logger.info(f"Deleted group {group_id} with {len(members)} image(s)")
        return members

    async def repair_covers(self) -> List[str]:
        """Give every cover-less group a cover; returns the repaired group ids."""
        images = [image for image in await self.list_all() if image.group_id is not None]
        groups: Dict[str, List[Any]] = {}
        for image in images:
            groups.setdefault(image.group_id, []).append(image)

        steps = []
        repaired = []
        for group_id, members in groups.items():
            covers = [member for member in members if member.is_cover]
            if len(covers) == 1:
                continue
            first = sorted(covers or members, key=insertion_key)[0]
            steps.append(("update", COLLECTION, {"group_id": group_id}, {"is_cover": False}))
            steps.append(("update", COLLECTION, {"id": first.id}, {"is_cover": True}))
            repaired.append(group_id)
        if steps:
            await self.store.run_in_transaction(steps)
            logger.warning(f"Repaired cover images for groups: {repaired}")
        return repaired
