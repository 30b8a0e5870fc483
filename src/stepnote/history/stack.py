"""Bounded two-stack command history."""

from __future__ import annotations

import logging
from collections import deque

from stepnote.history.commands import Command

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class CommandHistory:
    """Undo/redo sequencer that owns command execution.

    Executing a new command empties the redo stack (no branching history).
    When the undo stack grows past ``limit`` the oldest command is dropped.
    One instance per board session; share it by reference.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._undo: deque[Command] = deque(maxlen=limit)
        self._redo: list[Command] = []

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_stack(self) -> list[Command]:
        """Undoable commands, oldest first."""
        return list(self._undo)

    @property
    def redo_stack(self) -> list[Command]:
        """Redoable commands, oldest undo first (the next redo is last)."""
        return list(self._redo)

    def peek_undo(self) -> Command | None:
        return self._undo[-1] if self._undo else None

    def peek_redo(self) -> Command | None:
        return self._redo[-1] if self._redo else None

    async def execute(self, command: Command) -> None:
        """Apply ``command`` and record it. Nothing is recorded if ``apply`` raises."""
        await command.apply()
        if len(self._undo) == self.limit:
            logger.debug("History full, dropping %r", self._undo[0])
        self._undo.append(command)
        self._redo.clear()
        logger.info("Executed: %s", command.label)

    async def undo(self) -> bool:
        if not self._undo:
            logger.debug("Nothing to undo")
            return False
        command = self._undo.pop()
        try:
            await command.revert()
        except BaseException:
            self._undo.append(command)
            raise
        self._redo.append(command)
        logger.info("Undone: %s", command.label)
        return True

    async def redo(self) -> bool:
        if not self._redo:
            logger.debug("Nothing to redo")
            return False
        command = self._redo.pop()
        try:
            await command.apply()
        except BaseException:
            self._redo.append(command)
            raise
        self._undo.append(command)
        logger.info("Redone: %s", command.label)
        return True

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
        logger.info("History cleared")

    def __len__(self) -> int:
        return len(self._undo)
