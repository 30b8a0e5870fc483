"""Last-opened side store: ``project_id -> step_id`` in a JSON file.

Written immediately on every ``set``; never validated against the step
collection, so a pointer may outlive the step it names.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

LAST_OPENED_FILE = "last_opened.json"


class LastOpenedStore:
    """Per-project pointer to the most recently opened step."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable last-opened store %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if v}

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(f".{self.path.name}.tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    def get(self, project_id: str) -> str | None:
        return self._load().get(project_id)

    def set(self, project_id: str, step_id: str | None) -> None:
        data = self._load()
        if step_id:
            data[project_id] = step_id
        else:
            data.pop(project_id, None)
        self._save(data)
        logger.debug("Last opened for %s -> %s", project_id, step_id)

    def forget(self, project_id: str) -> None:
        self.set(project_id, None)
