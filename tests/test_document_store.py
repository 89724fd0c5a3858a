from __future__ import annotations

import gc
import json
import os
from pathlib import Path

import pytest

from bulb.store.config import BulbConfig
from bulb.store.documents import DocumentStore
from bulb.store.errors import DocumentWriteError, PathEscapeError
from bulb.store.models import parse_timestamp, sanitize_title


def _store(tmp_path: Path) -> DocumentStore:
    return DocumentStore(config=BulbConfig(data_dir=str(tmp_path)))


def _read_raw(store: DocumentStore, rel_path: str) -> dict:
    return json.loads((store.root / rel_path).read_text(encoding="utf-8"))


@pytest.mark.asyncio
async def test_create_writes_envelope_named_by_id(tmp_path):
    store = _store(tmp_path)
    summary = await store.create("Roadmap")

    assert summary.path == f"{summary.id}.canvas.json"
    assert summary.title == "Roadmap"
    assert summary.type == "canvas"
    assert summary.created_at == summary.updated_at

    data = _read_raw(store, summary.path)
    assert list(data) == ["id", "title", "type", "createdAt", "updatedAt", "content"]
    assert data["id"] == summary.id
    assert json.loads(data["content"]) == {"store": {}, "createdAt": summary.created_at}


@pytest.mark.asyncio
async def test_create_ids_are_unique(tmp_path):
    store = _store(tmp_path)
    first = await store.create("Same")
    second = await store.create("Same")
    assert first.id != second.id
    assert first.path != second.path


@pytest.mark.asyncio
async def test_create_failure_raises_write_error(tmp_path, monkeypatch):
    store = _store(tmp_path)

    def _boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("bulb.store.documents.atomic_write_json", _boom)
    with pytest.raises(DocumentWriteError):
        await store.create("Nope")
    assert list(store.root.iterdir()) == []


@pytest.mark.asyncio
async def test_update_then_read_round_trips_structured_content(tmp_path):
    store = _store(tmp_path)
    summary = await store.create("Board")
    snapshot = {"store": {"shape:1": {"x": 10, "y": 20}}, "schema": {"v": 2}}

    result = await store.update(summary.path, snapshot)
    assert result.success
    assert result.path == summary.path

    document = await store.read(summary.path)
    assert document is not None
    assert document.content == snapshot
    assert document.id == summary.id
    assert document.title == "Board"
    assert document.created_at == summary.created_at
    assert document.updated_at == result.updated_at


@pytest.mark.asyncio
async def test_update_keeps_string_content_verbatim(tmp_path):
    store = _store(tmp_path)
    summary = await store.create("Notes")

    result = await store.update(summary.path, "just some text")
    assert result.success
    assert _read_raw(store, summary.path)["content"] == "just some text"

    document = await store.read(summary.path)
    assert document.content == "just some text"


@pytest.mark.asyncio
async def test_update_timestamp_never_precedes_created(tmp_path):
    store = _store(tmp_path)
    summary = await store.create("Future")
    path = store.root / summary.path
    data = json.loads(path.read_text(encoding="utf-8"))
    data["createdAt"] = "2999-01-01T00:00:00.000Z"
    path.write_text(json.dumps(data), encoding="utf-8")

    result = await store.update(summary.path, {"store": {}})
    assert result.success
    assert parse_timestamp(result.updated_at) >= parse_timestamp("2999-01-01T00:00:00.000Z")


@pytest.mark.asyncio
async def test_update_missing_document_fails_without_creating_it(tmp_path):
    store = _store(tmp_path)
    result = await store.update("ghost.canvas.json", {"store": {}})
    assert not result.success
    assert result.error
    assert not (store.root / "ghost.canvas.json").exists()


@pytest.mark.asyncio
async def test_failed_replace_leaves_previous_file_intact(tmp_path, monkeypatch):
    store = _store(tmp_path)
    summary = await store.create("Safe")
    await store.update(summary.path, {"store": {"a": 1}})
    before = (store.root / summary.path).read_bytes()

    def _fail_replace(src, dst):
        raise OSError("replace failed")

    monkeypatch.setattr(os, "replace", _fail_replace)
    result = await store.update(summary.path, {"store": {"b": 2}})

    assert not result.success
    assert (store.root / summary.path).read_bytes() == before
    leftovers = [p for p in store.root.iterdir() if p.name != summary.path]
    assert leftovers == []


@pytest.mark.asyncio
async def test_read_corrupt_or_missing_returns_none(tmp_path):
    store = _store(tmp_path)
    await store.ensure_root()
    (store.root / "broken.canvas.json").write_text("{not json", encoding="utf-8")
    (store.root / "list.canvas.json").write_text("[1, 2]", encoding="utf-8")

    assert await store.read("broken.canvas.json") is None
    assert await store.read("list.canvas.json") is None
    assert await store.read("missing.canvas.json") is None


@pytest.mark.asyncio
async def test_read_falls_back_to_embedded_created_at(tmp_path):
    store = _store(tmp_path)
    await store.ensure_root()
    content = json.dumps({"store": {}, "createdAt": "2024-05-01T10:00:00.000Z"})
    (store.root / "old.canvas.json").write_text(
        json.dumps({"id": "old", "title": "Old", "content": content}),
        encoding="utf-8",
    )

    document = await store.read("old.canvas.json")
    assert document.created_at == "2024-05-01T10:00:00.000Z"
    assert document.type == "canvas"


def test_sanitize_title():
    assert sanitize_title("My <Notes>!! 01", "New Project") == "My Notes 01"
    assert sanitize_title("   ", "New Project") == "New Project"
    assert sanitize_title("@@@", "Untitled Project") == "Untitled Project"
    assert sanitize_title(None, "New Project") == "New Project"
    assert sanitize_title("plan_v2-final.txt", "x") == "plan_v2-final.txt"


@pytest.mark.asyncio
async def test_create_sanitizes_title(tmp_path):
    store = _store(tmp_path)
    assert (await store.create("My <Notes>!! 01")).title == "My Notes 01"
    assert (await store.create("   ")).title == "New Project"


@pytest.mark.asyncio
async def test_rename_sanitizes_and_keeps_content(tmp_path):
    store = _store(tmp_path)
    summary = await store.create("Before")
    await store.update(summary.path, {"store": {"k": "v"}})

    assert await store.rename(summary.path, "After #1")
    document = await store.read(summary.path)
    assert document.title == "After 1"
    assert document.content == {"store": {"k": "v"}}

    assert await store.rename(summary.path, "***")
    assert (await store.read(summary.path)).title == "Untitled Project"


@pytest.mark.asyncio
async def test_rename_missing_document_returns_false(tmp_path):
    store = _store(tmp_path)
    assert await store.rename("ghost.canvas.json", "Title") is False


@pytest.mark.asyncio
async def test_delete_is_idempotent(tmp_path):
    store = _store(tmp_path)
    summary = await store.create("Doomed")

    assert await store.delete(summary.path)
    assert not (store.root / summary.path).exists()
    assert await store.delete(summary.path)


@pytest.mark.asyncio
async def test_paths_outside_root_are_rejected(tmp_path):
    store = _store(tmp_path)
    await store.ensure_root()
    outside = tmp_path / "x"
    outside.write_text("{}", encoding="utf-8")

    with pytest.raises(PathEscapeError):
        store.resolve("../x")
    with pytest.raises(PathEscapeError):
        store.resolve(str(outside))
    with pytest.raises(PathEscapeError):
        store.resolve("")

    assert await store.read("../x") is None
    assert not (await store.update("../x", {"store": {}})).success
    assert await store.rename("../x", "t") is False
    assert await store.delete("../x") is False
    assert outside.read_text(encoding="utf-8") == "{}"


@pytest.mark.asyncio
async def test_path_locks_are_released_after_use(tmp_path):
    store = _store(tmp_path)
    summary = await store.create("Locked")
    await store.update(summary.path, {"store": {}})
    await store.rename(summary.path, "Still locked")
    await store.delete(summary.path)

    gc.collect()
    assert len(store._locks) == 0
