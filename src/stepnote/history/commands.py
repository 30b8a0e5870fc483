"""Reversible commands.

A command captures by value the record it removes. Neighbouring records are
read from the store each time it runs, never from the in-memory collections.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from stepnote.models import Step
from stepnote.steps.ordering import changed, remove, renumber, sort_by_order
from stepnote.store.base import PersistenceError

if TYPE_CHECKING:
    from stepnote.store.base import PersistenceService

logger = logging.getLogger(__name__)


@runtime_checkable
class Command(Protocol):
    """A forward action paired with its exact inverse."""

    @property
    def label(self) -> str: ...

    @property
    def project_id(self) -> str: ...

    async def apply(self) -> None: ...

    async def revert(self) -> None: ...


class DeleteStepCommand:
    """Delete a step and close the order gap; revert puts it back at its old position.

    Both directions renumber from the project's durable state at the time they
    run, so edits, adds and reorders made between undo and redo are kept. Only
    the ``order`` of the other records is rewritten.
    """

    def __init__(self, step: Step, persistence: PersistenceService) -> None:
        self.step = step
        self._persistence = persistence
        self._before: list[Step] = []
        self._after: list[Step] = []

    @property
    def label(self) -> str:
        return f"Delete step '{self.step.title}'"

    @property
    def project_id(self) -> str:
        return self.step.project_id

    @property
    def steps_before(self) -> list[Step]:
        """The project's steps before the last ``apply``/``revert`` ran."""
        return list(self._before)

    @property
    def steps_after(self) -> list[Step]:
        """The project's steps as the last ``apply``/``revert`` left them."""
        return list(self._after)

    async def _siblings(self) -> list[Step]:
        steps = await self._persistence.load_all_steps()
        return sort_by_order(s for s in steps if s.project_id == self.step.project_id)

    async def apply(self) -> None:
        before = await self._siblings()
        current = next((s for s in before if s.id == self.step.id), None)
        if current is None:
            raise PersistenceError(f"Step {self.step.id} does not exist")
        after = remove(before, current.id)
        await self._persistence.delete_step(current.id)
        try:
            await self._persistence.update_steps(changed(before, after))
        except PersistenceError:
            logger.warning("Renumber after deleting %s failed; restoring the step", current.id)
            await self._persistence.create_step(current)
            raise
        # Latest durable record, so a later revert brings back edits made since.
        self.step = current
        self._before, self._after = before, after

    async def revert(self) -> None:
        before = [s for s in await self._siblings() if s.id != self.step.id]
        position = min(self.step.order, len(before))
        restored = self.step.with_order(position)
        after = renumber([*before[:position], restored, *before[position:]])
        await self._persistence.create_step(restored)
        try:
            await self._persistence.update_steps([s for s in changed(before, after) if s.id != restored.id])
        except PersistenceError:
            logger.warning("Renumber after restoring %s failed; removing the step again", restored.id)
            await self._persistence.delete_step(restored.id)
            raise
        self._before, self._after = before, after

    def __repr__(self) -> str:
        return f"<DeleteStepCommand step={self.step.id} project={self.project_id}>"
