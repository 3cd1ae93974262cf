import random

import pytest

from sitecms.errors import StoreError, ValidationError
from sitecms.gallery.batch import GalleryMetadata, UploadBatch
from sitecms.gallery.uploads import UploadResult
from sitecms.store import ContentStore

META = GalleryMetadata(title="Food drive", description="Spring 2024", category="Events")


def _urls(n):
    return [f"https://cdn.example.org/{i}.webp" for i in range(n)]


def _batch(n):
    batch = UploadBatch()
    for url in _urls(n):
        batch.add_uploaded(url)
    return batch


def _covers(batch):
    return sum(1 for entry in batch.entries if entry.is_cover)


def test_first_upload_becomes_cover():
    batch = UploadBatch()
    batch.add_uploaded(UploadResult(url="https://cdn.example.org/a.webp"))
    batch.add_uploaded("https://cdn.example.org/b.webp")

    assert [entry.is_cover for entry in batch.entries] == [True, False]


def test_set_cover_is_exclusive():
    batch = _batch(3)
    batch.set_cover(2)

    assert [entry.is_cover for entry in batch.entries] == [False, False, True]
    with pytest.raises(IndexError):
        batch.set_cover(3)


def test_removing_cover_promotes_new_first_entry():
    batch = _batch(3)
    batch.set_cover(0)

    batch.remove(0)

    assert batch.entries[0].is_cover
    assert _covers(batch) == 1


def test_removing_last_entry_leaves_empty_batch():
    batch = _batch(1)
    batch.remove(0)
    assert len(batch) == 0


def test_exactly_one_cover_after_any_operation_sequence():
    rng = random.Random(3)
    for _ in range(200):
        batch = UploadBatch()
        for step in range(rng.randint(1, 30)):
            action = rng.choice(["add", "add", "cover", "remove"])
            if action == "add" or not batch.entries:
                batch.add_uploaded(f"https://cdn.example.org/{step}.webp")
            elif action == "cover":
                batch.set_cover(rng.randrange(len(batch)))
            else:
                batch.remove(rng.randrange(len(batch)))
            if batch.entries:
                assert _covers(batch) == 1


def test_build_single_entry_is_standalone():
    records = _batch(1).build_records(META, base_order=7)

    assert len(records) == 1
    assert records[0]["group_id"] is None
    assert records[0]["is_cover"] is False
    assert records[0]["order"] == 7
    assert records[0]["title"] == "Food drive"


def test_build_three_entries_share_group_and_offset_order():
    batch = _batch(3)
    batch.set_cover(1)

    records = batch.build_records(META, base_order=10, group_id_factory=lambda: "group-1")

    assert {record["group_id"] for record in records} == {"group-1"}
    assert [record["order"] for record in records] == [10, 11, 12]
    assert [record["image_url"] for record in records] == _urls(3)
    assert [record["is_cover"] for record in records] == [False, True, False]
    assert all(record["category"] == "Events" for record in records)


def test_build_rejects_empty_batch():
    with pytest.raises(ValidationError):
        UploadBatch().build_records(META, base_order=0)


def test_build_rejects_missing_cover():
    batch = _batch(2)
    for entry in batch.entries:
        entry.is_cover = False

    with pytest.raises(ValidationError):
        batch.build_records(META, base_order=0)


class _FailingStore:
    def __init__(self):
        self.calls = []

    async def max_value(self, collection, column):
        self.calls.append("max_value")
        return 4

    async def insert(self, collection, records):
        self.calls.append("insert")
        raise StoreError("Failed to save gallery_images", "connection reset")


async def test_commit_failure_leaves_batch_unchanged():
    batch = _batch(3)
    batch.set_cover(2)
    before = [(entry.url, entry.is_cover) for entry in batch.entries]

    with pytest.raises(StoreError):
        await batch.commit(_FailingStore(), META)

    assert [(entry.url, entry.is_cover) for entry in batch.entries] == before


async def test_commit_validates_before_any_store_call():
    store = _FailingStore()

    with pytest.raises(ValidationError):
        await UploadBatch().commit(store, META)

    assert store.calls == []


async def test_commit_fans_out_into_group(session):
    store = ContentStore(session)
    await store.insert("gallery_images", {"image_url": "https://cdn.example.org/old.webp", "order": 4})

    batch = _batch(3)
    created = await batch.commit(store, META)

    assert len(created) == 3
    assert len({image.group_id for image in created}) == 1
    assert created[0].group_id is not None
    assert [image.order for image in created] == [5, 6, 7]
    assert [image.image_url for image in created] == _urls(3)
    assert [image.is_cover for image in created] == [True, False, False]
    assert len(batch) == 0


async def test_commit_into_empty_collection_starts_at_zero(session):
    created = await _batch(1).commit(ContentStore(session), META)

    assert created[0].order == 0
    assert created[0].group_id is None
