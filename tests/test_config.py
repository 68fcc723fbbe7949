import pytest
from pydantic import ValidationError

from mmdb_cli.exceptions import ConfigurationError
from mmdb_cli.models.config import DEFAULT_FILES, FeedConfig
from mmdb_cli.storage.config_manager import ConfigManager


def test_defaults_match_the_public_feed():
    config = FeedConfig()

    assert config.repo_url == "https://github.com/P3TERX/GeoLite.mmdb"
    assert config.files == DEFAULT_FILES
    assert config.latest_url.endswith("/releases/latest")
    assert config.download_url("v1", "GeoLite2-ASN.mmdb") == (
        "https://github.com/P3TERX/GeoLite.mmdb/releases/download/v1/GeoLite2-ASN.mmdb"
    )


@pytest.mark.parametrize(
    "overrides",
    [
        {"files": []},
        {"files": ["a.db", "a.db"]},
        {"files": ["dir/a.db"]},
        {"files": ["latest"]},
        {"repo_url": "ftp://example.com/r"},
        {"timeout": 0},
        {"chunk_size": 10},
        {"deadline": 1, "connect_timeout": 5},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    with pytest.raises(ValidationError):
        FeedConfig(**overrides)


def test_files_are_frozen_as_a_tuple():
    config = FeedConfig(files=["a.db", "b.db"], repo_url="https://example.com/r/")

    assert config.files == ("a.db", "b.db")
    assert config.repo_url == "https://example.com/r"


def test_missing_config_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("MMDB_CACHE_DIR", raising=False)

    config = ConfigManager(tmp_path / "config.ini").load_config()

    assert config == FeedConfig()


def test_saved_config_round_trips_with_overrides(tmp_path, monkeypatch):
    monkeypatch.delenv("MMDB_CACHE_DIR", raising=False)
    path = tmp_path / "cfg" / "config.ini"
    manager = ConfigManager(path)
    manager.save_new_config({"cache_dir": str(tmp_path / "c"), "files": ["x.mmdb"]})

    config = ConfigManager(path).load_config({"timeout": 42.0, "repo_url": None})

    assert config.cache_dir == str(tmp_path / "c")
    assert config.files == ("x.mmdb",)
    assert config.timeout == 42.0
    assert config.deadline is None


def test_environment_sets_cache_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("MMDB_CACHE_DIR", str(tmp_path / "env"))

    config = ConfigManager(tmp_path / "missing.ini").load_config()

    assert config.cache_dir == str(tmp_path / "env")


def test_missing_keys_are_migrated(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text("[DEFAULT]\ntimeout = 12\n")

    config = ConfigManager(path).load_config()

    assert config.timeout == 12
    assert "repo_url" in path.read_text()


@pytest.mark.parametrize(
    "content",
    ["[DEFAULT]\ntimeout = soon\n", "[DEFAULT]\nfiles = a/b\n", "not an ini file"],
)
def test_bad_config_file_is_a_configuration_error(tmp_path, content):
    path = tmp_path / "config.ini"
    path.write_text(content)

    with pytest.raises(ConfigurationError):
        ConfigManager(path).load_config()
