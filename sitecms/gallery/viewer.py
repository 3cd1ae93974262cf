"""
Headless gallery view model.

Holds the fetched snapshot, the category filter and the open lightbox, and
owns the two resources an open lightbox needs: the page scroll lock and the
Escape key binding. Both are taken when a tile opens and handed back on every
way out (close button, backdrop, Escape, teardown).
"""
from contextlib import contextmanager
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from sitecms.gallery.grouping import Tile, categories, group_images
from sitecms.gallery.lightbox import Lightbox

logger = logging.getLogger(__name__)

ESCAPE = "Escape"


class FetchState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class ScrollLock:
    """
    Page scroll suppression.

    `overflow` mirrors the document body's overflow style. The value seen on
    the first acquire is restored by the matching last release.
    """

    LOCKED = "hidden"

    def __init__(self, overflow: str = ""):
        self.overflow = overflow
        self._saved: Optional[str] = None
        self._holders = 0

    @property
    def locked(self) -> bool:
        return self._holders > 0

    def acquire(self) -> None:
        if self._holders == 0:
            self._saved = self.overflow
            self.overflow = self.LOCKED
        self._holders += 1

    def release(self) -> None:
        if self._holders == 0:
            return
        self._holders -= 1
        if self._holders == 0:
            self.overflow = self._saved
            self._saved = None

    @contextmanager
    def hold(self):
        self.acquire()
        try:
            yield self
        finally:
            self.release()


class Binding:
    def __init__(self, registry: "KeyBindings", key: str, handler: Callable[[], Any]):
        self.key = key
        self.handler = handler
        self._registry = registry

    @property
    def active(self) -> bool:
        return self._registry is not None and self in self._registry._bindings.get(self.key, [])

    def remove(self) -> None:
        if self._registry is not None:
            self._registry._discard(self)
            self._registry = None


class KeyBindings:
    """Key handlers registered by name; removed handlers never fire again."""

    def __init__(self):
        self._bindings: Dict[str, List[Binding]] = {}

    def register(self, key: str, handler: Callable[[], Any]) -> Binding:
        binding = Binding(self, key, handler)
        self._bindings.setdefault(key, []).append(binding)
        return binding

    def _discard(self, binding: Binding) -> None:
        handlers = self._bindings.get(binding.key, [])
        if binding in handlers:
            handlers.remove(binding)
        if not handlers:
            self._bindings.pop(binding.key, None)

    def count(self, key: str) -> int:
        return len(self._bindings.get(key, []))

    def dispatch(self, key: str) -> bool:
        """Run the handlers for `key`; False when nothing is listening."""
        handlers = list(self._bindings.get(key, []))
        for binding in handlers:
            # A handler may remove a later binding
            if not binding.active:
                continue
            binding.handler()
        return bool(handlers)


Fetcher = Callable[[], Awaitable[List[Any]]]


class GalleryView:
    def __init__(
        self,
        fetch: Fetcher,
        scroll_lock: Optional[ScrollLock] = None,
        key_bindings: Optional[KeyBindings] = None,
    ):
        self._fetch = fetch
        self.scroll_lock = scroll_lock if scroll_lock is not None else ScrollLock()
        self.key_bindings = key_bindings if key_bindings is not None else KeyBindings()
        self.state = FetchState.LOADING
        self.snapshot: List[Any] = []
        self.category: Optional[str] = None
        self.selection: Optional[Lightbox] = None
        self.selected_tile: Optional[Tile] = None
        self._escape: Optional[Binding] = None
        self._request = 0

    async def load(self) -> FetchState:
        """
        Fetch a fresh snapshot.

        Only the most recently started load may change the view; an older
        request that finishes late is dropped.
        """
        self._request += 1
        request = self._request
        self.state = FetchState.LOADING
        try:
            images = await self._fetch()
        except Exception as e:
            if request != self._request:
                logger.debug(f"Ignoring failure of superseded gallery fetch #{request}")
                return self.state
            logger.error(f"Error fetching gallery images: {str(e)}", exc_info=True)
            self.close()
            self.snapshot = []
            self.state = FetchState.ERROR
            return self.state

        if request != self._request:
            logger.debug(f"Ignoring superseded gallery fetch #{request}")
            return self.state

        self.snapshot = list(images or [])
        self.state = FetchState.READY
        return self.state

    @property
    def categories(self) -> List[str]:
        return categories(self.snapshot)

    @property
    def tiles(self) -> List[Tile]:
        if self.state is not FetchState.READY:
            return []
        return group_images(self.snapshot, self.category)

    def set_category(self, category: Optional[str]) -> None:
        self.category = category or None

    @property
    def is_open(self) -> bool:
        return self.selection is not None

    def open(self, tile: Tile) -> Lightbox:
        """Open a tile at its first member."""
        if self.selection is not None:
            self.close()
        self.scroll_lock.acquire()
        try:
            self._escape = self.key_bindings.register(ESCAPE, self.close)
            self.selection = Lightbox(tile.members or [tile.image], on_close=self._release)
        except Exception:
            self._release()
            raise
        self.selected_tile = tile
        return self.selection

    def _release(self) -> None:
        if self._escape is not None:
            self._escape.remove()
            self._escape = None
        self.scroll_lock.release()
        self.selection = None
        self.selected_tile = None

    def close(self) -> None:
        if self.selection is not None:
            self.selection.close()

    def backdrop_click(self, inside_content: bool = False) -> None:
        if not inside_content:
            self.close()

    def handle_key(self, key: str) -> bool:
        return self.key_bindings.dispatch(key)

    def next(self) -> Optional[int]:
        return self.selection.next() if self.selection is not None else None

    def previous(self) -> Optional[int]:
        return self.selection.previous() if self.selection is not None else None

    def jump_to(self, index: int) -> Optional[int]:
        return self.selection.jump_to(index) if self.selection is not None else None

    def teardown(self) -> None:
        """Unmount: close anything open; safe to call repeatedly."""
        self.close()
