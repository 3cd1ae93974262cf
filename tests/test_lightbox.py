import pytest

from conftest import make_image
from sitecms.gallery.lightbox import Lightbox


def _members(n):
    return [make_image(i, group_id="g", order=i) for i in range(n)]


@pytest.mark.parametrize("size", [1, 2, 5])
def test_next_clamps_at_last_member(size):
    lightbox = Lightbox(_members(size))

    for _ in range(size + 5):
        lightbox.next()

    assert lightbox.index == size - 1
    assert not lightbox.has_next


def test_previous_clamps_at_first_member():
    lightbox = Lightbox(_members(3), index=2)

    for _ in range(6):
        lightbox.previous()

    assert lightbox.index == 0
    assert not lightbox.has_previous


def test_jump_to_clamps_and_is_idempotent():
    lightbox = Lightbox(_members(4))

    assert lightbox.jump_to(99) == 3
    assert lightbox.jump_to(99) == 3
    assert lightbox.jump_to(-7) == 0
    assert lightbox.jump_to(2) == 2
    assert lightbox.current.id == "2"


def test_initial_index_is_clamped():
    assert Lightbox(_members(2), index=10).index == 1


def test_thumbnails_follow_navigation_order():
    lightbox = Lightbox(_members(3))
    lightbox.next()

    thumbs = lightbox.thumbnails()

    assert [image.id for _, image, _ in thumbs] == [image.id for image in lightbox.members]
    assert [current for _, _, current in thumbs] == [False, True, False]


def test_close_runs_callback_once_and_freezes_navigation():
    calls = []
    lightbox = Lightbox(_members(3), on_close=lambda: calls.append("closed"))

    lightbox.close()
    lightbox.close()
    lightbox.next()

    assert calls == ["closed"]
    assert lightbox.closed
    assert lightbox.index == 0


def test_empty_member_list_rejected():
    with pytest.raises(ValueError):
        Lightbox([])
