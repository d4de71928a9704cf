"""Tests for configuration storage backends."""

from pathlib import Path

import pytest

from oktaauth.config.path import load_config, write_config
from oktaauth.config.storage import InMemoryStorage, SQLiteStorage, Storage, StorageEntry


def test_storage_entry_json_helpers() -> None:
    """Entries hold UTF-8 JSON and decode back to Python values."""
    entry = StorageEntry.from_json("config", '{"organization": "zürich"}')
    assert entry.value == '{"organization": "zürich"}'.encode("utf-8")
    assert entry.decode_json() == {"organization": "zürich"}


@pytest.mark.parametrize("factory", [InMemoryStorage, lambda: SQLiteStorage(":memory:")])
def test_backends_implement_protocol(factory) -> None:
    """Both shipped backends satisfy the Storage protocol."""
    assert isinstance(factory(), Storage)


async def test_in_memory_get_put() -> None:
    """Put replaces; get returns None for unknown keys."""
    storage = InMemoryStorage()
    assert await storage.get("config") is None

    await storage.put(StorageEntry(key="config", value=b"1"))
    await storage.put(StorageEntry(key="config", value=b"2"))

    entry = await storage.get("config")
    assert entry is not None and entry.value == b"2"


async def test_sqlite_persists_across_instances(tmp_path: Path) -> None:
    """A second SQLiteStorage on the same file sees earlier writes."""
    db = tmp_path / "oktaauth.db"
    await SQLiteStorage(db).put(StorageEntry(key="config", value=b'{"a": 1}'))

    entry = await SQLiteStorage(db).get("config")

    assert entry is not None
    assert entry.decode_json() == {"a": 1}


async def test_sqlite_missing_key(tmp_path: Path) -> None:
    """Unknown keys read as None, even on a fresh file."""
    assert await SQLiteStorage(tmp_path / "empty.db").get("config") is None


async def test_sqlite_put_replaces(tmp_path: Path) -> None:
    """Writing an existing key replaces its value."""
    storage = SQLiteStorage(tmp_path / "oktaauth.db")
    await storage.put(StorageEntry(key="config", value=b"old"))
    await storage.put(StorageEntry(key="config", value=b"new"))

    entry = await storage.get("config")
    assert entry is not None and entry.value == b"new"


async def test_config_round_trip_through_sqlite(tmp_path: Path) -> None:
    """The config path works unchanged on the SQLite backend."""
    storage = SQLiteStorage(tmp_path / "oktaauth.db")
    await write_config(
        storage, {"org_name": "acme", "api_token": "tok", "base_url": "example.com"}, create=True
    )

    cfg = await load_config(SQLiteStorage(tmp_path / "oktaauth.db"))

    assert cfg is not None
    assert cfg.org_url == "https://acme.example.com"
    assert cfg.token == "tok"
