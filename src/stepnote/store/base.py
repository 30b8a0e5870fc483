"""Persistence protocol consumed by the board and the commands."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from stepnote.models import Note, Project, Step


class PersistenceError(RuntimeError):
    """A durable-store call failed; nothing of the record was written."""


@runtime_checkable
class PersistenceService(Protocol):
    """Asynchronous, record-atomic store for projects, steps and notes."""

    # ── Steps ────────────────────────────────────────────────

    async def load_all_steps(self) -> list[Step]: ...

    async def create_step(self, step: Step) -> None: ...

    async def update_step(self, step: Step) -> None: ...

    async def update_steps(self, steps: Sequence[Step]) -> None:
        """Write every record or none of them."""
        ...

    async def delete_step(self, step_id: str) -> None: ...

    # ── Projects ─────────────────────────────────────────────

    async def load_projects(self) -> list[Project]: ...

    async def create_project(self, project: Project) -> None: ...

    async def update_project(self, project: Project) -> None: ...

    async def update_project_current_step(self, project_id: str, step_id: str | None) -> None: ...

    async def delete_project(self, project_id: str) -> None:
        """Delete the project together with its steps and notes."""
        ...

    # ── Notes ────────────────────────────────────────────────

    async def load_notes(self, project_id: str) -> list[Note]: ...

    async def create_note(self, note: Note) -> None: ...

    async def update_note(self, note: Note) -> None: ...

    async def delete_note(self, note_id: str) -> None: ...
