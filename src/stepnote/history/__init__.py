"""Command-based undo/redo."""

from stepnote.history.commands import Command, DeleteStepCommand
from stepnote.history.stack import DEFAULT_HISTORY_LIMIT, CommandHistory

__all__ = ["Command", "CommandHistory", "DeleteStepCommand", "DEFAULT_HISTORY_LIMIT"]
