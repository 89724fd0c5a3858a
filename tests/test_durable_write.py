from __future__ import annotations

import json

import pytest

from bulb.store.durable_write import atomic_write_json


def test_writes_indented_utf8_json(tmp_path):
    target = tmp_path / "nested" / "doc.canvas.json"
    atomic_write_json(target, {"title": "Café", "n": 1})

    text = target.read_text(encoding="utf-8")
    assert "Café" in text
    assert text.startswith('{\n  "title"')
    assert json.loads(text) == {"title": "Café", "n": 1}


def test_unserializable_data_leaves_previous_file_and_no_temp(tmp_path):
    target = tmp_path / "doc.canvas.json"
    atomic_write_json(target, {"v": 1})

    with pytest.raises(TypeError):
        atomic_write_json(target, {"v": object()})

    assert json.loads(target.read_text(encoding="utf-8")) == {"v": 1}
    assert [p.name for p in tmp_path.iterdir()] == ["doc.canvas.json"]
