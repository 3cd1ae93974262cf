import asyncio

import pytest

from conftest import make_image
from sitecms.errors import FetchError
from sitecms.gallery.viewer import ESCAPE, FetchState, GalleryView, KeyBindings, ScrollLock


def _snapshot():
    return [
        make_image(1, order=0),
        make_image(2, group_id="g1", is_cover=True, order=1),
        make_image(3, group_id="g1", is_cover=False, order=2),
    ]


def _fetcher(images):
    async def fetch():
        return images
    return fetch


@pytest.fixture
async def view():
    v = GalleryView(_fetcher(_snapshot()), scroll_lock=ScrollLock(overflow="auto"))
    await v.load()
    return v


async def test_load_success_builds_tiles(view):
    assert view.state is FetchState.READY
    assert [tile.image.id for tile in view.tiles] == ["1", "2"]
    assert view.categories == ["Events"]


async def test_load_failure_shows_empty_grid():
    async def broken():
        raise FetchError("Failed to retrieve gallery_images")

    v = GalleryView(_fetcher(_snapshot()))
    await v.load()
    v._fetch = broken

    assert await v.load() is FetchState.ERROR
    assert v.tiles == []
    assert v.snapshot == []


async def test_superseded_fetch_is_discarded():
    release_slow = asyncio.Event()
    responses = iter([
        ("slow", [make_image("old")]),
        ("fast", [make_image("new")]),
    ])

    async def fetch():
        kind, images = next(responses)
        if kind == "slow":
            await release_slow.wait()
        return images

    v = GalleryView(fetch)
    slow = asyncio.create_task(v.load())
    await asyncio.sleep(0)
    await v.load()
    release_slow.set()
    await slow

    assert [image.id for image in v.snapshot] == ["new"]
    assert v.state is FetchState.READY


async def test_example_scenario_navigation(view):
    lightbox = view.open(view.tiles[1])

    assert lightbox.index == 0 and lightbox.current.id == "2"
    view.next()
    assert lightbox.current.id == "3"
    view.next()
    assert lightbox.index == 1


async def test_single_image_tile_opens_one_member_lightbox(view):
    lightbox = view.open(view.tiles[0])

    assert lightbox.count == 1
    view.next()
    view.previous()
    assert lightbox.index == 0


@pytest.mark.parametrize("exit_path", ["close", "backdrop", "escape", "teardown"])
async def test_scroll_lock_restored_on_every_exit(view, exit_path):
    view.open(view.tiles[1])
    assert view.scroll_lock.overflow == ScrollLock.LOCKED
    assert view.key_bindings.count(ESCAPE) == 1

    if exit_path == "close":
        view.close()
    elif exit_path == "backdrop":
        view.backdrop_click(inside_content=False)
    elif exit_path == "escape":
        assert view.handle_key(ESCAPE)
    else:
        view.teardown()

    assert view.scroll_lock.overflow == "auto"
    assert not view.scroll_lock.locked
    assert view.selection is None
    assert view.key_bindings.count(ESCAPE) == 0


async def test_click_inside_content_keeps_lightbox_open(view):
    view.open(view.tiles[1])

    view.backdrop_click(inside_content=True)

    assert view.is_open
    assert view.scroll_lock.locked


async def test_escape_listener_never_fires_after_close(view):
    view.open(view.tiles[1])
    view.close()

    assert view.handle_key(ESCAPE) is False
    assert view.selection is None


async def test_reopening_does_not_stack_resources(view):
    view.open(view.tiles[0])
    view.open(view.tiles[1])

    assert view.key_bindings.count(ESCAPE) == 1
    view.close()
    assert view.scroll_lock.overflow == "auto"


async def test_teardown_is_idempotent(view):
    view.teardown()
    view.open(view.tiles[0])
    view.teardown()
    view.teardown()

    assert view.scroll_lock.overflow == "auto"


async def test_navigation_without_selection_is_noop(view):
    assert view.next() is None
    assert view.previous() is None
    assert view.jump_to(3) is None


async def test_category_filter(view):
    view.set_category("Nope")
    assert view.tiles == []
    view.set_category(None)
    assert len(view.tiles) == 2


def test_scroll_lock_hold_releases_on_error():
    lock = ScrollLock(overflow="scroll")

    with pytest.raises(RuntimeError):
        with lock.hold():
            assert lock.overflow == ScrollLock.LOCKED
            raise RuntimeError("boom")

    assert lock.overflow == "scroll"


def test_scroll_lock_nested_holders():
    lock = ScrollLock()
    lock.acquire()
    lock.acquire()
    lock.release()
    assert lock.locked
    lock.release()
    lock.release()
    assert not lock.locked and lock.overflow == ""


def test_removed_binding_is_inactive():
    bindings = KeyBindings()
    fired = []
    binding = bindings.register("Escape", lambda: fired.append(1))

    binding.remove()
    binding.remove()

    assert not binding.active
    assert bindings.dispatch("Escape") is False
    assert fired == []


def test_binding_removed_mid_dispatch_does_not_fire():
    bindings = KeyBindings()
    fired = []
    later = []

    def first():
        fired.append("first")
        later[0].remove()

    bindings.register(ESCAPE, first)
    later.append(bindings.register(ESCAPE, lambda: fired.append("second")))

    assert bindings.dispatch(ESCAPE) is True
    assert fired == ["first"]


async def test_failed_reload_closes_open_lightbox(view):
    view.open(view.tiles[1])

    async def broken():
        raise FetchError("Failed to retrieve gallery_images")

    view._fetch = broken
    assert await view.load() is FetchState.ERROR

    assert view.tiles == []
    assert not view.is_open
    assert view.scroll_lock.overflow == "auto"
    assert view.key_bindings.count(ESCAPE) == 0
