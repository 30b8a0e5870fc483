"""Tests for configuration loading."""

import pytest
from pathlib import Path

from stepnote.config import load_config

_ENV_KEYS = ["STEPNOTE_DATA_DIR", "STEPNOTE_HISTORY_LIMIT", "STEPNOTE_AUTOSAVE_DELAY", "STEPNOTE_LOG_LEVEL"]


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestConfig:
    def test_defaults(self):
        config = load_config()
        assert config.history.limit == 50
        assert config.autosave.delay == 1.0
        assert config.log_level == "INFO"
        assert config.data_dir.name == "data"
        assert config.last_opened_file.name == "last_opened.json"

    def test_env_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("STEPNOTE_HISTORY_LIMIT", "10")
        monkeypatch.setenv("STEPNOTE_AUTOSAVE_DELAY", "0.25")
        monkeypatch.setenv("STEPNOTE_DATA_DIR", str(tmp_path / "store"))

        config = load_config()
        assert config.history.limit == 10
        assert config.autosave.delay == 0.25
        assert config.data_dir == tmp_path / "store"

    def test_toml_file(self, tmp_path: Path):
        toml_path = tmp_path / "custom.toml"
        toml_path.write_text("""
data_dir = "~/notes"
log_level = "DEBUG"

[history]
limit = 20

[autosave]
delay = 2.5
""")
        config = load_config(toml_path)
        assert config.history.limit == 20
        assert config.autosave.delay == 2.5
        assert config.log_level == "DEBUG"
        assert config.data_dir == Path.home() / "notes"

    def test_toml_found_in_cwd(self, tmp_path: Path):
        (tmp_path / "stepnote.toml").write_text("[history]\nlimit = 7\n")
        config = load_config()
        assert config.history.limit == 7

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("STEPNOTE_HISTORY_LIMIT", "5")

        toml_path = tmp_path / "stepnote.toml"
        toml_path.write_text("""
[history]
limit = 30
""")
        config = load_config(toml_path)
        assert config.history.limit == 5  # env wins
