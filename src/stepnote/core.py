"""Step board: the orchestrator every UI action goes through.

Responsibilities:
1. Hold the in-memory state: projects and the per-project step partition
2. Lane Queue: serialize mutations per project_id so partition/recombine never races
3. Run reversible deletes through the command history
4. Reconcile from durable storage after undo/redo
5. Track last-opened steps in the side store
6. Catch every failure at the action boundary and surface it via the notifier
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from stepnote.autosave import DEFAULT_AUTOSAVE_DELAY, DraftAutosaver
from stepnote.connectors.base import (
    DEFAULT_KEYMAP,
    ClickEvent,
    DragEndEvent,
    KeyComboEvent,
    LogNotifier,
    SwipeEvent,
)
from stepnote.history import CommandHistory, DeleteStepCommand
from stepnote.models import Note, Project, Step, plain_text_of, utc_now_iso
from stepnote.steps.ordering import append, changed, is_dense, move, renumber
from stepnote.steps.partition import StepPartition
from stepnote.store.base import PersistenceError

if TYPE_CHECKING:
    from stepnote.config import StepnoteConfig
    from stepnote.connectors.base import Notifier, UIEvent
    from stepnote.store.base import PersistenceService
    from stepnote.store.last_opened import LastOpenedStore

logger = logging.getLogger(__name__)

DEFAULT_STEP_DESCRIPTION = "Click to edit this step"


@dataclass
class ActionResult:
    """Outcome of one user action. ``error`` is the message already shown to the user."""

    ok: bool
    value: Any = None
    error: str | None = None


@dataclass
class ProjectView:
    """What a project screen shows right after switching to it."""

    project: Project
    steps: list[Step]
    highlighted_step_id: str | None
    last_opened_step_id: str | None


class StepBoard:
    """Core orchestrator: in-memory collections, history and persistence in one place."""

    def __init__(
        self,
        persistence: PersistenceService,
        last_opened: LastOpenedStore,
        *,
        history: CommandHistory | None = None,
        notifier: Notifier | None = None,
        keymap: dict[str, str] | None = None,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
    ) -> None:
        self.persistence = persistence
        self.last_opened = last_opened
        self.history = history or CommandHistory()
        self.notifier = notifier or LogNotifier()
        self.keymap = dict(keymap or DEFAULT_KEYMAP)
        self.drafts = DraftAutosaver(self.update_step, delay=autosave_delay)
        self.projects: dict[str, Project] = {}
        self.steps = StepPartition()
        self.current_project_id: str | None = None
        self._lane_locks: dict[str, asyncio.Lock] = {}  # per-project serialization

    @classmethod
    def from_config(cls, config: StepnoteConfig, **kwargs: Any) -> StepBoard:
        from stepnote.store.files import FileStore
        from stepnote.store.last_opened import LastOpenedStore

        return cls(
            FileStore(config.data_dir),
            LastOpenedStore(config.last_opened_file),
            history=CommandHistory(limit=config.history.limit),
            autosave_delay=config.autosave.delay,
            **kwargs,
        )

    # ── Lane Queue (per-project serialization) ───────────────

    def _get_lane_lock(self, project_id: str) -> asyncio.Lock:
        if project_id not in self._lane_locks:
            self._lane_locks[project_id] = asyncio.Lock()
        return self._lane_locks[project_id]

    def is_busy(self, project_id: str) -> bool:
        lock = self._lane_locks.get(project_id)
        return bool(lock and lock.locked())

    # ── Failure reporting ────────────────────────────────────

    def _fail(self, action: str, error: Exception) -> ActionResult:
        message = f"Failed to {action}: {error}"
        self.notifier.notify(message)
        return ActionResult(ok=False, error=message)

    # ── Lookups ──────────────────────────────────────────────

    def _require_project(self, project_id: str | None) -> Project:
        if project_id is None:
            raise ValueError("No project is open")
        project = self.projects.get(project_id)
        if project is None:
            raise ValueError(f"Unknown project {project_id}")
        return project

    def _require_step(self, step_id: str) -> Step:
        step = self.steps.find(step_id)
        if step is None:
            raise ValueError(f"Unknown step {step_id}")
        return step

    def project_steps(self, project_id: str) -> list[Step]:
        return self.steps.get(project_id)

    def highlighted_step(self, project_id: str) -> Step | None:
        """The project's current step, or None when unset or dangling."""
        project = self.projects.get(project_id)
        if project is None or not project.current_step_id:
            return None
        return self._live_step(project_id, project.current_step_id)

    def last_opened_step(self, project_id: str) -> Step | None:
        """The last-opened step if it still exists; a dangling pointer reads as None."""
        return self._live_step(project_id, self.last_opened.get(project_id))

    def _live_step(self, project_id: str, step_id: str | None) -> Step | None:
        if not step_id:
            return None
        step = self.steps.find(step_id)
        if step is None or step.project_id != project_id:
            return None
        return step

    # ── Loading ──────────────────────────────────────────────

    async def load(self) -> ActionResult:
        """Load projects and all steps; state is only replaced when both reads succeed."""
        try:
            projects = await self.persistence.load_projects()
            steps = await self.persistence.load_all_steps()
        except PersistenceError as e:
            return self._fail("load data", e)
        self.projects = {p.id: p for p in projects}
        self._install_steps(steps)
        await self._normalize_orders()
        logger.info("Loaded %d projects, %d steps", len(self.projects), len(self.steps))
        return ActionResult(ok=True)

    def _install_steps(self, steps: list[Step]) -> None:
        self.steps = StepPartition(steps)

    async def _normalize_orders(self) -> None:
        """Renumber any project whose stored orders are not exactly 0..n-1."""
        for project_id in self.steps.project_ids():
            local = self.steps.get(project_id)
            if is_dense(local):
                continue
            fixed = renumber(local)
            try:
                await self.persistence.update_steps(changed(local, fixed))
            except PersistenceError as e:
                logger.warning("Could not renumber project %s: %s", project_id, e)
                continue
            self.steps.replace(project_id, fixed)
            logger.info("Renumbered %d steps of project %s", len(fixed), project_id)

    async def _reconcile(self, project_id: str, action: str) -> ActionResult:
        """Reload from storage after undo/redo, called under ``project_id``'s lane.

        Only that project's partition is replaced; the others belong to lanes
        this call does not hold.
        """
        try:
            steps = await self.persistence.load_all_steps()
        except PersistenceError as e:
            return self._fail(f"reload after {action}", e)
        self.steps.replace(project_id, (s for s in steps if s.project_id == project_id))
        return ActionResult(ok=True)

    # ── Projects ─────────────────────────────────────────────

    async def create_project(self, name: str, description: str = "") -> ActionResult:
        project = Project.new(name, description)
        try:
            await self.persistence.create_project(project)
        except PersistenceError as e:
            return self._fail("create project", e)
        self.projects[project.id] = project
        return ActionResult(ok=True, value=project)

    async def rename_project(self, project_id: str, name: str) -> ActionResult:
        try:
            name = name.strip()
            if not name:
                raise ValueError("Project name cannot be empty")
            self._require_project(project_id)
            async with self._get_lane_lock(project_id):
                project = self._require_project(project_id)
                renamed = replace(project, name=name, updated_at=utc_now_iso())
                await self.persistence.update_project(renamed)
                self.projects[project_id] = renamed
        except (PersistenceError, ValueError) as e:
            return self._fail("rename project", e)
        return ActionResult(ok=True, value=renamed)

    async def delete_project(self, project_id: str) -> ActionResult:
        try:
            self._require_project(project_id)
            async with self._get_lane_lock(project_id):
                await self.persistence.delete_project(project_id)
                self.projects.pop(project_id, None)
                self.steps.drop(project_id)
        except (PersistenceError, ValueError) as e:
            return self._fail("delete project", e)
        self._lane_locks.pop(project_id, None)
        self._forget_last_opened(project_id)
        if self.current_project_id == project_id:
            self.current_project_id = None
        return ActionResult(ok=True)

    def open_project(self, project_id: str) -> ActionResult:
        """Switch to a project and read back its highlight and last-opened pointer."""
        try:
            project = self._require_project(project_id)
        except ValueError as e:
            return self._fail("open project", e)
        self.current_project_id = project_id
        highlighted = self.highlighted_step(project_id)
        last = self.last_opened_step(project_id)
        view = ProjectView(
            project=project,
            steps=self.project_steps(project_id),
            highlighted_step_id=highlighted.id if highlighted else None,
            last_opened_step_id=last.id if last else None,
        )
        return ActionResult(ok=True, value=view)

    async def _clear_stale_current(self, project_id: str) -> None:
        project = self.projects.get(project_id)
        if project is None or not project.current_step_id:
            return
        if project.current_step_id in self.steps.ids(project_id):
            return
        try:
            await self.persistence.update_project_current_step(project_id, None)
        except PersistenceError as e:
            self.notifier.notify(f"Failed to clear current step: {e}")
            return
        self.projects[project_id] = replace(project, current_step_id=None)
        logger.info("Cleared stale current step of project %s", project_id)

    async def toggle_current_step(self, step_id: str) -> ActionResult:
        """Modifier-click: mark the step as the project's current one, or unmark it."""
        try:
            project_id = self._require_step(step_id).project_id
            async with self._get_lane_lock(project_id):
                project = self._require_project(project_id)
                new_current = None if project.current_step_id == step_id else step_id
                await self.persistence.update_project_current_step(project_id, new_current)
                self.projects[project_id] = replace(project, current_step_id=new_current)
        except (PersistenceError, ValueError) as e:
            return self._fail("update current step", e)
        return ActionResult(ok=True, value=new_current)

    # ── Steps ────────────────────────────────────────────────

    def open_step(self, step_id: str) -> ActionResult:
        """Open a step for editing; records the last-opened pointer right away."""
        try:
            step = self._require_step(step_id)
        except ValueError as e:
            return self._fail("open step", e)
        try:
            self.last_opened.set(step.project_id, step.id)
        except OSError as e:
            logger.warning("Could not record last-opened step %s: %s", step.id, e)
        return ActionResult(ok=True, value=step)

    def _forget_last_opened(self, project_id: str) -> None:
        try:
            self.last_opened.forget(project_id)
        except OSError as e:
            logger.warning("Could not clear last-opened pointer of %s: %s", project_id, e)

    async def add_step(
        self,
        project_id: str | None = None,
        title: str | None = None,
        description: str = DEFAULT_STEP_DESCRIPTION,
    ) -> ActionResult:
        project_id = project_id or self.current_project_id
        try:
            self._require_project(project_id)
            async with self._get_lane_lock(project_id):
                local = self.steps.get(project_id)
                step = Step.new(project_id, title or f"Step {len(local) + 1}", description, len(local))
                await self.persistence.create_step(step)
                self.steps.replace(project_id, append(local, step))
        except (PersistenceError, ValueError) as e:
            return self._fail("create step", e)
        return ActionResult(ok=True, value=step)

    async def update_step(self, step: Step) -> ActionResult:
        """Persist an edited step and swap it into its project's partition.

        ``order`` and ``project_id`` are owned by the board; the stored order
        is kept whatever the incoming record says.
        """
        try:
            current = self._require_step(step.id)
            if current.project_id != step.project_id:
                raise ValueError(f"Step {step.id} cannot move to project {step.project_id}")
            async with self._get_lane_lock(step.project_id):
                local = self.steps.get(step.project_id)
                current = self._require_step(step.id)
                step = replace(step, order=current.order)
                await self.persistence.update_step(step)
                self.steps.replace(step.project_id, [step if s.id == step.id else s for s in local])
        except (PersistenceError, ValueError) as e:
            return self._fail("update step", e)
        return ActionResult(ok=True, value=step)

    async def edit_step(self, step_id: str, **changes: Any) -> ActionResult:
        try:
            step = self._require_step(step_id).edited(**changes)
        except (TypeError, ValueError) as e:
            return self._fail("update step", e)
        return await self.update_step(step)

    def edit_draft(self, step_id: str, **changes: Any) -> ActionResult:
        """Queue an in-progress edit for the debounced autosave."""
        try:
            base = next((d for d in self.drafts.pending if d.id == step_id), None)
            draft = (base or self._require_step(step_id)).edited(**changes)
            self.drafts.schedule(draft)
        except (RuntimeError, TypeError, ValueError) as e:
            return self._fail("edit step", e)
        return ActionResult(ok=True, value=draft)

    async def set_completed(self, step_id: str, completed: bool) -> ActionResult:
        return await self.edit_step(step_id, completed=completed)

    async def reorder(self, project_id: str | None, source: int, destination: int | None) -> ActionResult:
        """Drag-and-drop commit: move one step and renumber the whole project."""
        project_id = project_id or self.current_project_id
        if destination is None or source == destination:
            logger.debug("Reorder no-op (%s -> %s)", source, destination)
            return ActionResult(ok=True, value=self.steps.get(project_id) if project_id else [])
        try:
            self._require_project(project_id)
            async with self._get_lane_lock(project_id):
                local = self.steps.get(project_id)
                moved = move(local, source, destination)
                await self.persistence.update_steps(changed(local, moved))
                self.steps.replace(project_id, moved)
        except (PersistenceError, ValueError) as e:
            return self._fail("reorder steps", e)
        return ActionResult(ok=True, value=moved)

    async def delete_step(self, step_id: str) -> ActionResult:
        """Reversible delete through the command history."""
        try:
            project_id = self._require_step(step_id).project_id
            async with self._get_lane_lock(project_id):
                step = self._require_step(step_id)
                command = DeleteStepCommand(step, self.persistence)
                await self.history.execute(command)
                self.steps.replace(project_id, command.steps_after)
                await self._clear_stale_current(project_id)
        except (PersistenceError, ValueError) as e:
            return self._fail("delete step", e)
        return ActionResult(ok=True, value=step)

    # ── Undo / redo ──────────────────────────────────────────

    async def undo(self) -> ActionResult:
        """Undo the latest command, then reload. ``value`` is False when there was nothing to undo."""
        command = self.history.peek_undo()
        if command is None:
            return ActionResult(ok=True, value=False)
        async with self._get_lane_lock(command.project_id):
            try:
                done = await self.history.undo()
            except PersistenceError as e:
                return self._fail("undo", e)
            if not done:
                return ActionResult(ok=True, value=False)
            result = await self._reconcile(command.project_id, "undo")
        return replace(result, value=True) if result.ok else result

    async def redo(self) -> ActionResult:
        command = self.history.peek_redo()
        if command is None:
            return ActionResult(ok=True, value=False)
        async with self._get_lane_lock(command.project_id):
            try:
                done = await self.history.redo()
            except PersistenceError as e:
                return self._fail("redo", e)
            if not done:
                return ActionResult(ok=True, value=False)
            result = await self._reconcile(command.project_id, "redo")
            if result.ok:
                await self._clear_stale_current(command.project_id)
        return replace(result, value=True) if result.ok else result

    # ── Notes ────────────────────────────────────────────────

    async def list_notes(self, project_id: str | None = None) -> ActionResult:
        project_id = project_id or self.current_project_id
        try:
            self._require_project(project_id)
            notes = await self.persistence.load_notes(project_id)
        except (PersistenceError, ValueError) as e:
            return self._fail("load notes", e)
        return ActionResult(ok=True, value=notes)

    async def add_note(self, title: str, content: str = "", project_id: str | None = None) -> ActionResult:
        project_id = project_id or self.current_project_id
        try:
            self._require_project(project_id)
            note = Note.new(project_id, title, content)
            await self.persistence.create_note(note)
        except (PersistenceError, ValueError) as e:
            return self._fail("create note", e)
        return ActionResult(ok=True, value=note)

    async def update_note(self, note: Note) -> ActionResult:
        note = replace(note, plain_text=plain_text_of(note.content), updated_at=utc_now_iso())
        try:
            await self.persistence.update_note(note)
        except PersistenceError as e:
            return self._fail("update note", e)
        return ActionResult(ok=True, value=note)

    async def delete_note(self, note_id: str) -> ActionResult:
        try:
            await self.persistence.delete_note(note_id)
        except PersistenceError as e:
            return self._fail("delete note", e)
        return ActionResult(ok=True)

    # ── UI events ────────────────────────────────────────────

    async def handle_event(self, event: UIEvent) -> ActionResult:
        """Route one UI event to its board operation."""
        if isinstance(event, ClickEvent):
            if event.modifier:
                return await self.toggle_current_step(event.step_id)
            return self.open_step(event.step_id)
        if isinstance(event, DragEndEvent):
            return await self.reorder(None, event.source, event.destination)
        if isinstance(event, SwipeEvent):
            return await self.set_completed(event.step_id, event.direction == "right")
        if isinstance(event, KeyComboEvent):
            action = self.keymap.get(event.combo)
            if action == "undo":
                return await self.undo()
            if action == "redo":
                return await self.redo()
            if action == "add_step":
                return await self.add_step()
            logger.debug("Unbound key combo %s", event.combo)
            return ActionResult(ok=True)
        raise TypeError(f"Unsupported event: {event!r}")

    # ── Lifecycle ────────────────────────────────────────────

    async def close(self) -> None:
        """Flush pending drafts. History is kept; call ``history.clear()`` to reset it."""
        await self.drafts.close()
