"""
Image grouping for the gallery grid.

Flat gallery records are folded into tiles: one tile per standalone image and
one tile per multi-photo group, the latter represented by its cover image.
Everything here is a pure function of the snapshot passed in.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created(image) -> datetime:
    created_at = getattr(image, "created_at", None)
    if created_at is None:
        return _EPOCH
    if created_at.tzinfo is None:
        # SQLite hands timestamps back naive
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


def insertion_key(image):
    """Sort key matching upload order: order, then creation time, then id."""
    return (image.order or 0, _created(image), str(image.id))


@dataclass
class Tile:
    """One grid entry: a standalone image or a whole group."""
    image: Any
    members: List[Any] = field(default_factory=list)

    @property
    def group_id(self) -> Optional[str]:
        return self.image.group_id

    @property
    def is_group(self) -> bool:
        return self.image.group_id is not None

    @property
    def photo_count(self) -> int:
        return len(self.members)


def select_cover(members: List[Any]):
    """
    Pick the representative image of a group.

    The flagged cover wins. Without one (a half-finished write can leave a
    group like that) the first member in upload order stands in.
    """
    ordered = sorted(members, key=insertion_key)
    covers = [image for image in ordered if image.is_cover]
    if len(covers) > 1:
        logger.warning(
            f"Group {ordered[0].group_id} has {len(covers)} cover images, using {covers[0].id}"
        )
    if covers:
        return covers[0]
    logger.warning(f"Group {ordered[0].group_id} has no cover image, using first member {ordered[0].id}")
    return ordered[0]


def group_members(images: Iterable[Any], group_id: str) -> List[Any]:
    return sorted((image for image in images if image.group_id == group_id), key=insertion_key)


def categories(images: Iterable[Any]) -> List[str]:
    seen: List[str] = []
    for image in images:
        if image.category and image.category not in seen:
            seen.append(image.category)
    return seen


def group_images(images: Iterable[Any], category: Optional[str] = None) -> List[Tile]:
    """
    Fold a snapshot into grid tiles ordered by the representative's order.

    `category` filters on the representative image, so a group appears under
    the category its cover carries.
    """
    groups: Dict[str, List[Any]] = {}
    tiles: List[Tile] = []

    for image in images:
        if image.group_id is None:
            tiles.append(Tile(image=image, members=[image]))
        else:
            groups.setdefault(image.group_id, []).append(image)

    for members in groups.values():
        ordered = sorted(members, key=insertion_key)
        tiles.append(Tile(image=select_cover(ordered), members=ordered))

    if category is not None:
        tiles = [tile for tile in tiles if tile.image.category == category]

    return sorted(tiles, key=lambda tile: insertion_key(tile.image))
