import random

from conftest import make_image
from sitecms.gallery.grouping import categories, group_images, group_members, select_cover


def test_example_scenario_tiles():
    images = [
        make_image(1),
        make_image(2, group_id="g1", is_cover=True, order=1),
        make_image(3, group_id="g1", is_cover=False, order=2),
    ]

    tiles = group_images(images)

    assert [tile.image.id for tile in tiles] == ["1", "2"]
    assert tiles[1].photo_count == 2
    assert [image.id for image in tiles[1].members] == ["2", "3"]
    assert not tiles[0].is_group and tiles[1].is_group


def test_tile_count_is_standalones_plus_distinct_groups():
    rng = random.Random(7)
    for _ in range(50):
        images = []
        group_ids = [f"g{n}" for n in range(rng.randint(0, 5))]
        for n in range(rng.randint(0, 25)):
            group_id = rng.choice(group_ids + [None, None]) if group_ids else None
            images.append(make_image(n, group_id=group_id, order=rng.randint(0, 10), seconds=n))
        for group_id in group_ids:
            members = [image for image in images if image.group_id == group_id]
            if members:
                rng.choice(members).is_cover = True

        tiles = group_images(images)

        standalone = sum(1 for image in images if image.group_id is None)
        groups = {image.group_id for image in images if image.group_id is not None}
        assert len(tiles) == standalone + len(groups)
        seen = [image.id for tile in tiles for image in tile.members]
        assert len(seen) == len(set(seen)) == len(images)


def test_tiles_sorted_by_representative_order():
    images = [
        make_image("a", order=5),
        make_image("b", group_id="g", is_cover=False, order=0),
        make_image("c", group_id="g", is_cover=True, order=3),
        make_image("d", order=1),
    ]

    assert [tile.image.id for tile in group_images(images)] == ["d", "c", "a"]


def test_order_ties_break_by_creation_time():
    images = [make_image("late", order=2, seconds=30), make_image("early", order=2, seconds=10)]

    assert [tile.image.id for tile in group_images(images)] == ["early", "late"]


def test_category_filter_uses_cover_category():
    images = [
        make_image(1, category="Events"),
        make_image(2, group_id="g", is_cover=True, category="Outreach", order=1),
        make_image(3, group_id="g", category="Events", order=2),
    ]

    assert [tile.image.id for tile in group_images(images, "Outreach")] == ["2"]
    assert [tile.image.id for tile in group_images(images, "Events")] == ["1"]
    assert group_images(images, "Nothing") == []


def test_group_without_cover_falls_back_to_first_member(caplog):
    images = [
        make_image(10, group_id="g", order=4),
        make_image(11, group_id="g", order=2),
    ]

    tiles = group_images(images)

    assert len(tiles) == 1
    assert tiles[0].image.id == "11"
    assert "no cover" in caplog.text


def test_select_cover_prefers_first_flagged():
    members = [
        make_image(1, group_id="g", order=0),
        make_image(2, group_id="g", is_cover=True, order=1),
        make_image(3, group_id="g", is_cover=True, order=2),
    ]

    assert select_cover(members).id == "2"


def test_group_members_in_upload_order():
    images = [
        make_image(3, group_id="g", order=12),
        make_image(1, group_id="g", order=10),
        make_image(9, group_id="other", order=0),
        make_image(2, group_id="g", order=11),
    ]

    assert [image.id for image in group_members(images, "g")] == ["1", "2", "3"]


def test_categories_first_seen_order():
    images = [make_image(1, category="B"), make_image(2, category="A"), make_image(3, category="B")]

    assert categories(images) == ["B", "A"]
