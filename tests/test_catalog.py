from __future__ import annotations

import json

import pytest

from bulb.store.catalog import CatalogScanner
from bulb.store.config import BulbConfig
from bulb.store.documents import DocumentStore


def _pair(tmp_path):
    config = BulbConfig(data_dir=str(tmp_path))
    return DocumentStore(config=config), CatalogScanner(config=config)


@pytest.mark.asyncio
async def test_scan_creates_missing_directory(tmp_path):
    _, catalog = _pair(tmp_path)
    assert not catalog.root.exists()
    assert await catalog.list_projects() == []
    assert catalog.root.is_dir()


@pytest.mark.asyncio
async def test_corrupt_files_are_skipped(tmp_path):
    store, catalog = _pair(tmp_path)
    created = [await store.create(f"Space {i}") for i in range(3)]
    (catalog.root / "bad1.canvas.json").write_text("{oops", encoding="utf-8")
    (catalog.root / "bad2.canvas.json").write_text("", encoding="utf-8")

    projects = await catalog.list_projects()
    assert len(projects) == 3
    assert {p.id for p in projects} == {s.id for s in created}


@pytest.mark.asyncio
async def test_titles_sorted_descending_ignoring_case(tmp_path):
    store, catalog = _pair(tmp_path)
    for title in ("Bravo", "alpha", "Charlie"):
        await store.create(title)

    projects = await catalog.list_projects()
    assert [p.title for p in projects] == ["Charlie", "Bravo", "alpha"]


@pytest.mark.asyncio
async def test_hidden_foreign_and_directory_entries_ignored(tmp_path):
    store, catalog = _pair(tmp_path)
    kept = await store.create("Kept")
    envelope = json.dumps({"id": "x", "title": "Hidden"})
    (catalog.root / ".hidden.canvas.json").write_text(envelope, encoding="utf-8")
    (catalog.root / "notes.txt").write_text(envelope, encoding="utf-8")
    (catalog.root / "folder.canvas.json").mkdir()

    projects = await catalog.list_projects()
    assert [p.id for p in projects] == [kept.id]


@pytest.mark.asyncio
async def test_summary_fields_come_from_envelope(tmp_path):
    store, catalog = _pair(tmp_path)
    summary = await store.create("Fields")
    result = await store.update(summary.path, {"store": {}})

    (project,) = await catalog.list_projects()
    assert project.id == summary.id
    assert project.path == summary.path
    assert project.type == "canvas"
    assert project.created_at == summary.created_at
    assert project.updated_at == result.updated_at


@pytest.mark.asyncio
async def test_deleted_project_drops_out(tmp_path):
    store, catalog = _pair(tmp_path)
    a = await store.create("A")
    await store.create("B")
    await store.delete(a.path)

    assert [p.title for p in await catalog.list_projects()] == ["B"]


@pytest.mark.asyncio
async def test_accented_titles_sort_with_their_base_letter(tmp_path):
    _, catalog = _pair(tmp_path)
    catalog.root.mkdir(parents=True)
    for i, title in enumerate(("Zebra", "Éclair", "apple", "eagle")):
        envelope = {"id": f"id-{i}", "title": title, "type": "canvas", "content": ""}
        (catalog.root / f"id-{i}.canvas.json").write_text(
            json.dumps(envelope, ensure_ascii=False), encoding="utf-8",
        )

    projects = await catalog.list_projects()
    assert [p.title for p in projects] == ["Zebra", "Éclair", "eagle", "apple"]
