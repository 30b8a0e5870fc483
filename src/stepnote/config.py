"""Configuration loading from environment variables and stepnote.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

from stepnote.autosave import DEFAULT_AUTOSAVE_DELAY
from stepnote.history.stack import DEFAULT_HISTORY_LIMIT
from stepnote.store.last_opened import LAST_OPENED_FILE

_DEFAULT_DATA_DIR = Path.home() / ".stepnote" / "data"
_CONFIG_FILENAME = "stepnote.toml"


@dataclass
class HistoryConfig:
    """Undo/redo history settings."""

    limit: int = DEFAULT_HISTORY_LIMIT


@dataclass
class AutosaveConfig:
    """Draft autosave settings."""

    delay: float = DEFAULT_AUTOSAVE_DELAY


@dataclass
class StepnoteConfig:
    """Top-level stepnote configuration."""

    history: HistoryConfig = field(default_factory=HistoryConfig)
    autosave: AutosaveConfig = field(default_factory=AutosaveConfig)
    data_dir: Path = _DEFAULT_DATA_DIR
    log_level: str = "INFO"

    @property
    def last_opened_file(self) -> Path:
        return self.data_dir / LAST_OPENED_FILE


def load_config(config_path: Path | None = None) -> StepnoteConfig:
    """Load configuration from environment variables and optional stepnote.toml.

    Priority: environment variables > stepnote.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.stepnote/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".stepnote" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    history_data = file_data.get("history", {})
    autosave_data = file_data.get("autosave", {})

    config = StepnoteConfig(
        history=HistoryConfig(
            limit=int(os.getenv("STEPNOTE_HISTORY_LIMIT", history_data.get("limit", DEFAULT_HISTORY_LIMIT))),
        ),
        autosave=AutosaveConfig(
            delay=float(os.getenv("STEPNOTE_AUTOSAVE_DELAY", autosave_data.get("delay", DEFAULT_AUTOSAVE_DELAY))),
        ),
        data_dir=Path(
            os.getenv("STEPNOTE_DATA_DIR", file_data.get("data_dir", str(_DEFAULT_DATA_DIR)))
        ).expanduser(),
        log_level=os.getenv("STEPNOTE_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
