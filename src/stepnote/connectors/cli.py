"""Local CLI REPL: typed commands become UI events and board operations."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from stepnote.connectors.base import ClickEvent, DragEndEvent, KeyComboEvent, SwipeEvent

if TYPE_CHECKING:
    from stepnote.core import ActionResult, StepBoard
    from stepnote.models import Project, Step

logger = logging.getLogger(__name__)

HELP = """\
projects            list projects
new <name>          create a project
use <n>             switch to project n
rename <n> <name>   rename project n
ls                  list steps of the current project
add [title]         add a step
open <n>            open step n
edit <n> <title>    rename step n
mark <n>            toggle step n as the current step
done <n> / undone <n>
mv <from> <to>      move a step
rm <n>              delete a step
undo / redo
notes               list notes
note <title>        add a note
exit"""


class CLIConnector:
    """Interactive REPL connector: reads from stdin, writes to stdout."""

    def __init__(self, board: StepBoard) -> None:
        self.board = board
        self._running = False

    @property
    def name(self) -> str:
        return "cli"

    async def start(self) -> None:
        self._running = True
        loop = asyncio.get_event_loop()

        print("stepnote (type 'help', 'exit' or Ctrl+C to quit)")
        print("-" * 48)

        while self._running:
            try:
                line = await loop.run_in_executor(None, self._read_input)
            except (EOFError, KeyboardInterrupt):
                print("\nBye!")
                break

            if line is None or line.strip().lower() in ("exit", "quit"):
                print("Bye!")
                break

            if not line.strip():
                continue
            print(await self.handle_line(line))

    def _read_input(self) -> str | None:
        try:
            sys.stdout.write("\n> ")
            sys.stdout.flush()
            raw = sys.stdin.buffer.readline()
            if not raw:
                return None
            return raw.decode("utf-8", errors="replace").rstrip("\n")
        except EOFError:
            return None

    async def stop(self) -> None:
        self._running = False

    # ── Commands ─────────────────────────────────────────────

    def _step_at(self, arg: str) -> Step:
        """Resolve a 1-based position in the current project's list."""
        if self.board.current_project_id is None:
            raise ValueError("no project selected, try 'use <n>'")
        steps = self.board.project_steps(self.board.current_project_id)
        index = self._index(arg)
        if not 0 <= index < len(steps):
            raise ValueError(f"no step {arg}")
        return steps[index]

    def _project_at(self, arg: str) -> Project:
        projects = list(self.board.projects.values())
        index = self._index(arg)
        if not 0 <= index < len(projects):
            raise ValueError(f"no project {arg}")
        return projects[index]

    @staticmethod
    def _index(arg: str) -> int:
        try:
            return int(arg) - 1
        except ValueError:
            raise ValueError(f"not a number: {arg!r}") from None

    async def handle_line(self, line: str) -> str:
        """Run one command line and return the text to show."""
        cmd, _, rest = line.strip().partition(" ")
        cmd, rest = cmd.lower(), rest.strip()
        try:
            return await self._dispatch(cmd, rest)
        except ValueError as e:
            return f"Error: {e}"

    async def _dispatch(self, cmd: str, rest: str) -> str:
        board = self.board

        if cmd == "help":
            return HELP
        if cmd == "projects":
            return self._format_projects()
        if cmd == "new":
            if not rest:
                raise ValueError("usage: new <name>")
            result = await board.create_project(rest)
            if result.ok:
                board.open_project(result.value.id)
            return self._outcome(result, f"Created project {rest}")
        if cmd == "use":
            result = board.open_project(self._project_at(rest).id)
            return self._outcome(result, self._format_steps() if result.ok else "")
        if cmd == "rename":
            arg, _, name = rest.partition(" ")
            if not name.strip():
                raise ValueError("usage: rename <n> <name>")
            result = await board.rename_project(self._project_at(arg).id, name)
            return self._outcome(result, self._format_projects())
        if cmd == "ls":
            return self._format_steps()
        if cmd == "add":
            result = await board.add_step(title=rest or None)
            return self._outcome(result, self._format_steps() if result.ok else "")
        if cmd == "open":
            result = await board.handle_event(ClickEvent(self._step_at(rest).id))
            if not result.ok:
                return self._outcome(result, "")
            step = result.value
            return f"{step.title}\n{step.plain_text or '(empty)'}"
        if cmd == "edit":
            arg, _, title = rest.partition(" ")
            if not title.strip():
                raise ValueError("usage: edit <n> <title>")
            result = await board.edit_step(self._step_at(arg).id, title=title.strip())
            return self._outcome(result, self._format_steps() if result.ok else "")
        if cmd == "mark":
            event = ClickEvent(self._step_at(rest).id, modifier=True)
        elif cmd in ("done", "undone"):
            event = SwipeEvent(self._step_at(rest).id, "right" if cmd == "done" else "left")
        elif cmd == "mv":
            parts = rest.split()
            if len(parts) != 2:
                raise ValueError("usage: mv <from> <to>")
            if board.current_project_id is None:
                raise ValueError("no project selected, try 'use <n>'")
            event = DragEndEvent(self._index(parts[0]), self._index(parts[1]))
        elif cmd == "rm":
            result = await board.delete_step(self._step_at(rest).id)
            return self._outcome(result, self._format_steps() if result.ok else "")
        elif cmd in ("undo", "redo"):
            event = KeyComboEvent("z", modifier=True, shift=cmd == "redo")
            result = await board.handle_event(event)
            if result.ok and not result.value:
                return f"Nothing to {cmd}"
            return self._outcome(result, self._format_steps() if result.ok else "")
        elif cmd == "notes":
            result = await board.list_notes()
            if not result.ok:
                return self._outcome(result, "")
            return "\n".join(f"- {n.title}" for n in result.value) or "No notes"
        elif cmd == "note":
            if not rest:
                raise ValueError("usage: note <title>")
            result = await board.add_note(rest)
            return self._outcome(result, f"Added note {rest}")
        else:
            raise ValueError(f"unknown command {cmd!r}, try 'help'")

        result = await board.handle_event(event)
        return self._outcome(result, self._format_steps() if result.ok else "")

    # ── Output ───────────────────────────────────────────────

    @staticmethod
    def _outcome(result: ActionResult, text: str) -> str:
        return text if result.ok else f"Error: {result.error}"

    def _format_projects(self) -> str:
        if not self.board.projects:
            return "No projects, try 'new <name>'"
        lines = []
        for i, project in enumerate(self.board.projects.values(), 1):
            marker = "*" if project.id == self.board.current_project_id else " "
            lines.append(f"{marker} {i}. {project.name}")
        return "\n".join(lines)

    def _format_steps(self) -> str:
        project_id = self.board.current_project_id
        if project_id is None:
            return "No project selected"
        steps = self.board.project_steps(project_id)
        if not steps:
            return "No steps, try 'add'"
        highlighted = self.board.highlighted_step(project_id)
        last = self.board.last_opened_step(project_id)
        lines = []
        for i, step in enumerate(steps, 1):
            check = "x" if step.completed else " "
            flags = ""
            if highlighted and step.id == highlighted.id:
                flags += " <- current"
            if last and step.id == last.id:
                flags += " (last opened)"
            lines.append(f"{i}. [{check}] {step.title}{flags}")
        return "\n".join(lines)
