"""Debounced persistence of in-progress step edits.

Every ``schedule`` restarts the timer; only the latest draft per step is
kept. ``flush`` (and ``close``) cancel the timer and persist whatever is
pending before returning, so closing an editor never loses the last edit.
A save that already started is awaited, never cancelled.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from stepnote.models import Step

logger = logging.getLogger(__name__)

SaveCallback = Callable[[Step], Awaitable[object]]

DEFAULT_AUTOSAVE_DELAY = 1.0  # seconds


class DraftAutosaver:
    """Debounce timer in front of a save coroutine (normally ``StepBoard.update_step``)."""

    def __init__(self, save: SaveCallback, delay: float = DEFAULT_AUTOSAVE_DELAY) -> None:
        self._save = save
        self.delay = delay
        self._pending: dict[str, Step] = {}
        self._timer: asyncio.Task | None = None
        self._saving: asyncio.Task | None = None
        self._closed = False

    @property
    def pending(self) -> list[Step]:
        return list(self._pending.values())

    def schedule(self, draft: Step) -> None:
        """Queue ``draft`` and restart the debounce timer."""
        if self._closed:
            raise RuntimeError("Autosaver is closed")
        self._pending[draft.id] = draft
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._fire())

    async def _fire(self) -> None:
        await asyncio.sleep(self.delay)
        # Past this point the timer is a save in flight, queued behind any earlier one.
        task = asyncio.current_task()
        previous, self._saving, self._timer = self._saving, task, None
        try:
            if previous is not None:
                await previous
            await self._save_pending()
        finally:
            if self._saving is task:
                self._saving = None

    async def _save_pending(self) -> None:
        while self._pending:
            step_id = next(iter(self._pending))
            draft = self._pending.pop(step_id)
            logger.debug("Autosaving draft of step %s", step_id)
            await self._save(draft)

    async def flush(self) -> None:
        """Cancel the timer and persist pending drafts now."""
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await timer
        if self._saving is not None:
            await self._saving
        await self._save_pending()

    async def close(self) -> None:
        await self.flush()
        self._closed = True
