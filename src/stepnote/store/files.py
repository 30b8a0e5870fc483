"""File-backed persistence: one markdown file with YAML frontmatter per record.

Each write goes to a temporary sibling first and is moved into place with
``os.replace``, so a reader sees either the old record or the new one. An
in-memory index (built once at startup, updated on writes) maps record ids to
their files, avoiding directory scans on update/delete.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
import shutil
from collections.abc import Callable, Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Any, TypeVar

import frontmatter
import yaml

from stepnote.models import Note, Project, Step, utc_now_iso
from stepnote.store.base import PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_BODY_FIELD = {"step": "description", "project": "description", "note": "content"}


def _plain(value: Any) -> Any:
    # YAML may resolve unquoted timestamps into datetime objects.
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class FileStore:
    """Markdown/frontmatter implementation of :class:`PersistenceService`."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._steps: dict[str, Path] = {}
        self._notes: dict[str, Path] = {}
        self._ensure_initialized()
        self._build_index()

    # ── Initialization ────────────────────────────────────────

    def _ensure_initialized(self) -> None:
        """Ensure base directories exist. Idempotent."""
        for d in ["projects", "steps", "notes"]:
            (self.root / d).mkdir(parents=True, exist_ok=True)

    def _build_index(self) -> None:
        """Scan steps/ and notes/ once, map record ids to paths."""
        self._steps.clear()
        self._notes.clear()
        for path in (self.root / "steps").glob("*/*.md"):
            self._steps[path.stem] = path
        for path in (self.root / "notes").glob("*/*.md"):
            self._notes[path.stem] = path

    # ── Paths ─────────────────────────────────────────────────

    @staticmethod
    def _check_id(record_id: str) -> str:
        if not record_id or any(c in record_id for c in "/\\") or ".." in record_id:
            raise PersistenceError(f"Invalid record id: {record_id!r}")
        return record_id

    def _project_path(self, project_id: str) -> Path:
        return self.root / "projects" / f"{self._check_id(project_id)}.md"

    def _step_path(self, step: Step) -> Path:
        return (self.root / "steps" / self._check_id(step.project_id)
                / f"{self._check_id(step.id)}.md")

    def _note_path(self, note: Note) -> Path:
        return (self.root / "notes" / self._check_id(note.project_id)
                / f"{self._check_id(note.id)}.md")

    # ── Encoding ──────────────────────────────────────────────

    @staticmethod
    def _render(kind: str, data: dict) -> str:
        meta = dict(data)
        body = meta.pop(_BODY_FIELD[kind], "") or ""
        if kind == "project":
            meta["current_step_id"] = meta.get("current_step_id") or ""
        return frontmatter.dumps(frontmatter.Post(body, **meta)) + "\n"

    @staticmethod
    def _parse(kind: str, path: Path) -> dict:
        post = frontmatter.load(str(path))
        data = {k: _plain(v) for k, v in post.metadata.items()}
        data[_BODY_FIELD[kind]] = post.content
        return data

    def _read(self, kind: str, path: Path, factory: Callable[[dict], T]) -> T | None:
        try:
            return factory(self._parse(kind, path))
        except (OSError, yaml.YAMLError, KeyError, ValueError, TypeError) as e:
            logger.warning("Skipping unreadable %s file %s: %s", kind, path, e)
            return None

    # ── Atomic file primitives ────────────────────────────────

    @staticmethod
    def _stage(path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.tmp")
        tmp.write_text(text, encoding="utf-8")
        return tmp

    def _write(self, path: Path, text: str) -> None:
        try:
            os.replace(self._stage(path, text), path)
        except OSError as e:
            raise PersistenceError(f"Failed to write {path.name}: {e}") from e

    @staticmethod
    def _unlink(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise PersistenceError(f"Record file {path.name} does not exist") from e
        except OSError as e:
            raise PersistenceError(f"Failed to delete {path.name}: {e}") from e

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args))

    # ── Steps ─────────────────────────────────────────────────

    def _load_all_steps(self) -> list[Step]:
        steps = []
        for path in self._steps.values():
            step = self._read("step", path, Step.from_dict)
            if step is not None:
                steps.append(step)
        return sorted(steps, key=lambda s: (s.project_id, s.order))

    def _create_step(self, step: Step) -> None:
        if step.id in self._steps:
            raise PersistenceError(f"Step {step.id} already exists")
        if not self._project_path(step.project_id).exists():
            raise PersistenceError(f"Project {step.project_id} does not exist")
        path = self._step_path(step)
        self._write(path, self._render("step", step.to_dict()))
        self._steps[step.id] = path
        logger.info("Created step %s in project %s (order=%d)", step.id, step.project_id, step.order)

    def _existing_step_path(self, step: Step) -> Path:
        path = self._steps.get(step.id)
        if path is None:
            raise PersistenceError(f"Step {step.id} does not exist")
        if path != self._step_path(step):
            raise PersistenceError(f"Step {step.id} cannot change project")
        return path

    def _update_step(self, step: Step) -> None:
        path = self._existing_step_path(step)
        self._write(path, self._render("step", step.to_dict()))
        logger.info("Updated step %s", step.id)

    def _update_steps(self, steps: Sequence[Step]) -> None:
        targets = [(self._existing_step_path(s), s) for s in steps]
        staged: list[tuple[Path, Path]] = []
        try:
            for path, step in targets:
                staged.append((self._stage(path, self._render("step", step.to_dict())), path))
        except OSError as e:
            for tmp, _ in staged:
                tmp.unlink(missing_ok=True)
            raise PersistenceError(f"Failed to stage step batch: {e}") from e
        try:
            for tmp, path in staged:
                os.replace(tmp, path)
        except OSError as e:
            raise PersistenceError(f"Failed to commit step batch: {e}") from e
        logger.info("Updated %d steps in batch", len(staged))

    def _delete_step(self, step_id: str) -> None:
        path = self._steps.get(step_id)
        if path is None:
            raise PersistenceError(f"Step {step_id} does not exist")
        self._unlink(path)
        self._steps.pop(step_id, None)
        logger.info("Deleted step %s", step_id)

    async def load_all_steps(self) -> list[Step]:
        return await self._run(self._load_all_steps)

    async def create_step(self, step: Step) -> None:
        await self._run(self._create_step, step)

    async def update_step(self, step: Step) -> None:
        await self._run(self._update_step, step)

    async def update_steps(self, steps: Sequence[Step]) -> None:
        if steps:
            await self._run(self._update_steps, list(steps))

    async def delete_step(self, step_id: str) -> None:
        await self._run(self._delete_step, step_id)

    # ── Projects ──────────────────────────────────────────────

    def _load_projects(self) -> list[Project]:
        projects = []
        for path in (self.root / "projects").glob("*.md"):
            project = self._read("project", path, Project.from_dict)
            if project is not None:
                projects.append(project)
        return sorted(projects, key=lambda p: p.created_at, reverse=True)

    def _load_project(self, project_id: str) -> Project:
        path = self._project_path(project_id)
        if not path.exists():
            raise PersistenceError(f"Project {project_id} does not exist")
        project = self._read("project", path, Project.from_dict)
        if project is None:
            raise PersistenceError(f"Project {project_id} is unreadable")
        return project

    def _create_project(self, project: Project) -> None:
        path = self._project_path(project.id)
        if path.exists():
            raise PersistenceError(f"Project {project.id} already exists")
        self._write(path, self._render("project", project.to_dict()))
        logger.info("Created project %s (%s)", project.id, project.name)

    def _update_project(self, project: Project) -> None:
        self._load_project(project.id)
        self._write(self._project_path(project.id), self._render("project", project.to_dict()))
        logger.info("Updated project %s", project.id)

    def _update_project_current_step(self, project_id: str, step_id: str | None) -> None:
        project = self._load_project(project_id)
        project.current_step_id = step_id
        project.updated_at = utc_now_iso()
        self._write(self._project_path(project_id), self._render("project", project.to_dict()))
        logger.info("Project %s current step -> %s", project_id, step_id)

    def _delete_project(self, project_id: str) -> None:
        path = self._project_path(project_id)
        if not path.exists():
            raise PersistenceError(f"Project {project_id} does not exist")
        for sub in ("steps", "notes"):
            target = self.root / sub / project_id
            try:
                if target.exists():
                    shutil.rmtree(target)
            except OSError as e:
                raise PersistenceError(f"Failed to delete {sub} of {project_id}: {e}") from e
        self._unlink(path)
        self._build_index()
        logger.info("Deleted project %s", project_id)

    async def load_projects(self) -> list[Project]:
        return await self._run(self._load_projects)

    async def create_project(self, project: Project) -> None:
        await self._run(self._create_project, project)

    async def update_project(self, project: Project) -> None:
        await self._run(self._update_project, project)

    async def update_project_current_step(self, project_id: str, step_id: str | None) -> None:
        await self._run(self._update_project_current_step, project_id, step_id)

    async def delete_project(self, project_id: str) -> None:
        await self._run(self._delete_project, project_id)

    # ── Notes ─────────────────────────────────────────────────

    def _load_notes(self, project_id: str) -> list[Note]:
        notes = []
        for path in (self.root / "notes" / self._check_id(project_id)).glob("*.md"):
            note = self._read("note", path, Note.from_dict)
            if note is not None:
                notes.append(note)
        return sorted(notes, key=lambda n: n.created_at, reverse=True)

    def _create_note(self, note: Note) -> None:
        if note.id in self._notes:
            raise PersistenceError(f"Note {note.id} already exists")
        if not self._project_path(note.project_id).exists():
            raise PersistenceError(f"Project {note.project_id} does not exist")
        path = self._note_path(note)
        self._write(path, self._render("note", note.to_dict()))
        self._notes[note.id] = path
        logger.info("Created note %s in project %s", note.id, note.project_id)

    def _update_note(self, note: Note) -> None:
        path = self._notes.get(note.id)
        if path is None or path != self._note_path(note):
            raise PersistenceError(f"Note {note.id} does not exist")
        self._write(path, self._render("note", note.to_dict()))

    def _delete_note(self, note_id: str) -> None:
        path = self._notes.get(note_id)
        if path is None:
            raise PersistenceError(f"Note {note_id} does not exist")
        self._unlink(path)
        self._notes.pop(note_id, None)
        logger.info("Deleted note %s", note_id)

    async def load_notes(self, project_id: str) -> list[Note]:
        return await self._run(self._load_notes, project_id)

    async def create_note(self, note: Note) -> None:
        await self._run(self._create_note, note)

    async def update_note(self, note: Note) -> None:
        await self._run(self._update_note, note)

    async def delete_note(self, note_id: str) -> None:
        await self._run(self._delete_note, note_id)
