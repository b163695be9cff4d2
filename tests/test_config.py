import json

import pytest

from press import config as config_mod
from press.config import PressConfig, load_config, resolve_api_key, save_config, update_config
from press.errors import ConfigError


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_config(tmp_path / "nope.json")
    assert cfg == PressConfig()
    assert cfg.chunk_size == 50
    assert cfg.retries == 3
    assert cfg.temperature == 0.0
    assert cfg.output_directory == "./"
    assert cfg.system_prompt == "You are a helpful assistant"
    assert cfg.log_level == "info"


def test_save_then_load(tmp_path):
    path = tmp_path / "cfg" / "config.json"
    save_config(PressConfig(api_key="sk-1", chunk_size=10), path)
    assert json.loads(path.read_text(encoding="utf-8"))["api_key"] == "sk-1"
    assert load_config(path).chunk_size == 10


@pytest.mark.parametrize("temp", [-0.1, 1.01, 2.0])
def test_temperature_out_of_range_is_rejected(temp):
    with pytest.raises(ConfigError) as exc:
        update_config(PressConfig(), temperature=temp)
    assert "temperature" in str(exc.value)


@pytest.mark.parametrize("field,value", [("chunk_size", 0), ("retries", -1), ("log_level", "loud")])
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(ConfigError):
        update_config(PressConfig(), **{field: value})


def test_update_ignores_none():
    cfg = update_config(PressConfig(retries=7), retries=None, chunk_size=5)
    assert (cfg.retries, cfg.chunk_size) == (7, 5)


def test_broken_file_is_a_config_error(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_api_key_priority(monkeypatch):
    cfg = PressConfig(api_key="from-file")
    monkeypatch.setattr(config_mod.settings, "PRESS_API_KEY", None)
    assert resolve_api_key(None, cfg) == "from-file"
    monkeypatch.setattr(config_mod.settings, "PRESS_API_KEY", "from-env")
    assert resolve_api_key(None, cfg) == "from-env"
    assert resolve_api_key("from-flag", cfg) == "from-flag"
