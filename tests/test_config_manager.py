import json
from pathlib import Path

import pytest

from discverify import config
from discverify.common.exceptions import ConfigurationError
from discverify.core.config_manager import ConfigManager


def test_defaults_without_file():
    cfg = ConfigManager(config_file=None)
    assert cfg.chunk_size == config.CHUNK_SIZE_DEFAULT
    assert cfg.get("redump_base_url") == config.REDUMP_BASE_URL
    assert cfg.get("request_timeout") == config.REQUEST_TIMEOUT_DEFAULT
    assert cfg.cache_dir == Path(config.CACHE_DIR_DEFAULT).expanduser()
    assert cfg.save() is False


def test_missing_file_uses_defaults(tmp_path):
    cfg = ConfigManager(tmp_path / "settings.json")
    assert cfg.chunk_size == config.CHUNK_SIZE_DEFAULT


def test_load_merges_with_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"chunk_size": 65536, "cache_dir": str(tmp_path / "c")}))

    cfg = ConfigManager(path)

    assert cfg.chunk_size == 65536
    assert cfg.cache_dir == tmp_path / "c"
    assert cfg.get("log_format") == "auto"


def test_save_and_reload(tmp_path):
    path = tmp_path / "settings.json"
    cfg = ConfigManager(path)
    cfg.set("request_timeout", 5)
    assert cfg.save() is True

    assert ConfigManager(path).get("request_timeout") == 5


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[1, 2, 3]",
        json.dumps({"chunk_size": 0}),
        json.dumps({"chunk_size": "big"}),
        json.dumps({"chunk_size": True}),
        json.dumps({"request_timeout": -1}),
    ],
)
def test_invalid_settings(tmp_path, content):
    path = tmp_path / "settings.json"
    path.write_text(content)
    with pytest.raises(ConfigurationError):
        ConfigManager(path)
