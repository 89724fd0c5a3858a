from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from bulb.store.config import BulbConfig, fire_event
from bulb.store.yaml_config import load_yaml_config


def test_defaults_match_storage_layout(tmp_path):
    config = BulbConfig(data_dir=str(tmp_path))
    assert config.projects_dir == tmp_path / "ProjectSpaces"
    assert config.reminders_path == tmp_path / "reminders.json"
    assert config.propagate_interval_seconds == 0.5
    assert config.idle_save_seconds == 10.0
    assert config.stream_saves is True


def test_from_env_overrides():
    env = {
        "BULB_DATA_DIR": "/srv/bulb",
        "BULB_IDLE_SAVE_SECONDS": "2.5",
        "BULB_STREAM_SAVES": "off",
        "BULB_PORT": "8765",
    }
    with patch.dict(os.environ, env, clear=False):
        config = BulbConfig.from_env()
    assert config.data_dir == "/srv/bulb"
    assert config.idle_save_seconds == 2.5
    assert config.stream_saves is False
    assert config.port == 8765
    assert config.projects_dir == Path("/srv/bulb") / "ProjectSpaces"


def test_yaml_layers_over_base(tmp_path):
    path = tmp_path / "bulb.yaml"
    path.write_text(
        "storage:\n"
        f"  data_dir: {tmp_path}\n"
        "autosave:\n"
        "  idle_save_seconds: 3\n"
        "  stream_saves: false\n"
        "titles:\n"
        "  new_project: Blank Space\n"
        "server:\n"
        "  port: '9001'\n"
        "logging:\n"
        "  level: DEBUG\n"
        "extras:\n"
        "  ignored: true\n",
        encoding="utf-8",
    )
    base = BulbConfig(host="0.0.0.0")
    config = load_yaml_config(path, base=base)

    assert config is base
    assert config.data_dir == str(tmp_path)
    assert config.idle_save_seconds == 3.0
    assert config.stream_saves is False
    assert config.new_project_title == "Blank Space"
    assert config.port == 9001
    assert config.log_level == "DEBUG"
    assert config.host == "0.0.0.0"


def test_yaml_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_yaml_config(tmp_path / "missing.yaml", base=BulbConfig())

    bad = tmp_path / "bad.yaml"
    bad.write_text("storage: [unclosed\n", encoding="utf-8")
    with pytest.raises(yaml.YAMLError):
        load_yaml_config(bad, base=BulbConfig())

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("just a string\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_yaml_config(scalar, base=BulbConfig())

    wrong_section = tmp_path / "section.yaml"
    wrong_section.write_text("autosave: 5\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_yaml_config(wrong_section, base=BulbConfig())


@pytest.mark.asyncio
async def test_fire_event_swallows_callback_errors():
    seen = []

    async def _ok(event):
        seen.append(event["event"])

    async def _broken(event):
        raise RuntimeError("listener crashed")

    await fire_event(None, {"event": "x"})
    await fire_event(_ok, {"event": "saved"})
    await fire_event(_broken, {"event": "saved"})
    assert seen == ["saved"]
