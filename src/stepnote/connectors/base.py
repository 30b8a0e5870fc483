"""UI event types, key bindings and the notifier protocol."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClickEvent:
    """Click on a step; ``modifier`` is Cmd on macOS, Ctrl elsewhere."""

    step_id: str
    modifier: bool = False


@dataclass(frozen=True)
class DragEndEvent:
    """Drag finished; ``destination`` is None when dropped outside the list."""

    source: int
    destination: int | None


@dataclass(frozen=True)
class SwipeEvent:
    step_id: str
    direction: Literal["left", "right"]


@dataclass(frozen=True)
class KeyComboEvent:
    key: str
    modifier: bool = False
    shift: bool = False

    @property
    def combo(self) -> str:
        parts = []
        if self.modifier:
            parts.append("mod")
        if self.shift:
            parts.append("shift")
        parts.append(self.key.lower())
        return "+".join(parts)


UIEvent = Union[ClickEvent, DragEndEvent, SwipeEvent, KeyComboEvent]

Action = Literal["undo", "redo", "add_step"]

DEFAULT_KEYMAP: dict[str, Action] = {
    "mod+z": "undo",
    "mod+shift+z": "redo",
    "mod+y": "redo",
    "mod+n": "add_step",
}


@runtime_checkable
class Notifier(Protocol):
    """Where failures of user actions are shown."""

    def notify(self, message: str) -> None: ...


class LogNotifier:
    """Default notifier: failures go to the log at WARNING."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)
        logger.warning("%s", message)
