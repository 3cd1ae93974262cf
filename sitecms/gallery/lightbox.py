"""
Lightbox navigation over the members of an open tile.
Navigation never wraps and never raises: requests past either end are no-ops.
"""
from typing import Any, Callable, List, Optional, Sequence, Tuple


class Lightbox:
    """Current position inside an ordered member list."""

    def __init__(
        self,
        members: Sequence[Any],
        index: int = 0,
        on_close: Optional[Callable[[], None]] = None,
    ):
        if not members:
            raise ValueError("A lightbox needs at least one image")
        self._members: List[Any] = list(members)
        self._index = 0
        self._on_close = on_close
        self.closed = False
        self.jump_to(index)

    @property
    def members(self) -> List[Any]:
        return list(self._members)

    @property
    def count(self) -> int:
        return len(self._members)

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self):
        return self._members[self._index]

    @property
    def has_next(self) -> bool:
        return self._index + 1 < self.count

    @property
    def has_previous(self) -> bool:
        return self._index > 0

    def next(self) -> int:
        if not self.closed and self.has_next:
            self._index += 1
        return self._index

    def previous(self) -> int:
        if not self.closed and self.has_previous:
            self._index -= 1
        return self._index

    def jump_to(self, index: int) -> int:
        if not self.closed:
            self._index = min(max(int(index), 0), self.count - 1)
        return self._index

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._on_close is not None:
            callback, self._on_close = self._on_close, None
            callback()

    def thumbnails(self) -> List[Tuple[int, Any, bool]]:
        """(position, image, is_current) in navigation order."""
        return [(position, image, position == self._index) for position, image in enumerate(self._members)]
