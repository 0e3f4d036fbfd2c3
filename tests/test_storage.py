"""
Tests for storage backends

Both backends must assign sequential integer identifiers, round-trip typed
records and roll back every write of a failed atomic block.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from boapay.storage import InMemoryStorage, SQLiteStorage, StorageRecord, create_storage


class Colour(Enum):
    RED = "red"
    BLUE = "blue"


@dataclass
class SampleRecord(StorageRecord):
    name: str
    amount: Decimal
    colour: Colour
    due: Optional[datetime] = None
    tags: Optional[List[str]] = None


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "test.db")
    yield backend
    backend.close()


class TestStorageBackends:
    """Behaviour shared by every backend"""

    def test_insert_assigns_sequential_ids(self, storage):
        first = storage.insert("items", {"name": "a"})
        second = storage.insert("items", {"name": "b"})

        assert (first, second) == (1, 2)
        assert storage.load("items", 2) == {"name": "b", "id": 2}

    def test_ids_are_per_table(self, storage):
        storage.insert("items", {"name": "a"})
        assert storage.insert("other", {"name": "x"}) == 1

    def test_save_replaces_record(self, storage):
        record_id = storage.insert("items", {"name": "a"})
        storage.save("items", record_id, {"name": "changed"})

        assert storage.load("items", record_id)["name"] == "changed"
        assert storage.count("items") == 1

    def test_load_missing(self, storage):
        assert storage.load("items", 42) is None
        assert not storage.exists("items", 42)

    def test_find_and_load_all(self, storage):
        storage.insert("items", {"owner": 1, "name": "a"})
        storage.insert("items", {"owner": 2, "name": "b"})
        storage.insert("items", {"owner": 1, "name": "c"})

        assert [r["name"] for r in storage.find("items", {"owner": 1})] == ["a", "c"]
        assert [r["name"] for r in storage.load_all("items")] == ["a", "b", "c"]
        assert storage.find("items", {"missing": 1}) == []

    def test_delete(self, storage):
        record_id = storage.insert("items", {"name": "a"})

        assert storage.delete("items", record_id)
        assert not storage.delete("items", record_id)
        assert storage.count("items") == 0

    def test_clear_table(self, storage):
        storage.insert("items", {"name": "a"})
        storage.clear_table("items")
        assert storage.count("items") == 0

    def test_atomic_commits(self, storage):
        with storage.atomic():
            storage.insert("items", {"name": "a"})
            storage.insert("items", {"name": "b"})

        assert storage.count("items") == 2

    def test_atomic_rolls_back_on_error(self, storage):
        """A failed block leaves no writes behind"""
        existing = storage.insert("items", {"name": "kept"})

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("items", existing, {"name": "overwritten"})
                storage.insert("items", {"name": "partial"})
                raise RuntimeError("boom")

        assert storage.count("items") == 1
        assert storage.load("items", existing)["name"] == "kept"

    def test_nested_atomic_rolls_back_outer_block(self, storage):
        with pytest.raises(ValueError):
            with storage.atomic():
                storage.insert("items", {"name": "outer"})
                with storage.atomic():
                    storage.insert("items", {"name": "inner"})
                raise ValueError("outer failure")

        assert storage.count("items") == 0

    def test_table_created_inside_failed_block_is_usable(self, storage):
        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.insert("fresh", {"name": "a"})
                raise RuntimeError("boom")

        assert storage.insert("fresh", {"name": "b"}) == 1


class TestStorageRecord:
    """Test typed round-trips through storage"""

    def test_round_trip_restores_types(self, storage):
        now = datetime.now(timezone.utc)
        record = SampleRecord(
            id=0, created_at=now, updated_at=now,
            name="invoice", amount=Decimal("12.50"), colour=Colour.BLUE,
            due=now, tags=["a", "b"]
        )
        record.id = storage.insert("samples", record.to_dict())

        loaded = SampleRecord.from_dict(storage.load("samples", record.id))

        assert loaded == record
        assert isinstance(loaded.amount, Decimal)
        assert loaded.colour is Colour.BLUE

    def test_decimal_stored_as_string(self):
        now = datetime.now(timezone.utc)
        record = SampleRecord(id=1, created_at=now, updated_at=now,
                              name="x", amount=Decimal("0.10"), colour=Colour.RED)
        data = record.to_dict()

        assert data["amount"] == "0.10"
        assert data["colour"] == "red"
        assert data["due"] is None


class TestCreateStorage:
    """Test database URL parsing"""

    def test_memory_url(self):
        assert isinstance(create_storage("memory://"), InMemoryStorage)

    def test_sqlite_urls(self, tmp_path):
        file_backed = create_storage(f"sqlite:///{tmp_path / 'bank.db'}")
        in_memory = create_storage("sqlite://")
        try:
            assert isinstance(file_backed, SQLiteStorage)
            assert in_memory.db_path == ":memory:"
        finally:
            file_backed.close()
            in_memory.close()

    def test_unsupported_url(self):
        with pytest.raises(ValueError):
            create_storage("postgresql://localhost/bank")
