"""Record types shared by the store, the merge protocol and the board."""

from __future__ import annotations

import html
import re
import uuid
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone

_TAG_RE = re.compile(r"<[^>]+>")
_BLOCK_RE = re.compile(r"</(p|div|h[1-6]|li)>|<br\s*/?>", re.IGNORECASE)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def new_id() -> str:
    return uuid.uuid4().hex


def plain_text_of(description: str) -> str:
    """Derive the plain-text cache of a rich-text (HTML) description."""
    text = _BLOCK_RE.sub("\n", description or "")
    text = html.unescape(_TAG_RE.sub("", text))
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


@dataclass(frozen=True)
class Step:
    """One step of a project. Immutable: mutations produce new records."""

    id: str
    project_id: str
    title: str
    description: str = ""
    plain_text: str = ""
    order: int = 0
    completed: bool = False
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def new(cls, project_id: str, title: str, description: str, order: int) -> Step:
        ts = utc_now_iso()
        return cls(
            id=new_id(),
            project_id=project_id,
            title=title,
            description=description,
            plain_text=plain_text_of(description),
            order=order,
            completed=False,
            created_at=ts,
            updated_at=ts,
        )

    def edited(self, **changes) -> Step:
        """Return a copy with user-visible changes applied and ``updated_at`` bumped."""
        step = replace(self, **changes, updated_at=utc_now_iso())
        if "description" in changes and "plain_text" not in changes:
            step = replace(step, plain_text=plain_text_of(step.description))
        return step

    def with_order(self, order: int) -> Step:
        return self if self.order == order else replace(self, order=order)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Step:
        return cls(
            id=str(data["id"]),
            project_id=str(data["project_id"]),
            title=str(data.get("title", "")),
            description=str(data.get("description") or ""),
            plain_text=str(data.get("plain_text") or ""),
            order=int(data.get("order", 0)),
            completed=bool(data.get("completed", False)),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
        )


@dataclass
class Project:
    """A project; ``current_step_id`` is a highlight marker, not ownership."""

    id: str
    name: str
    description: str = ""
    gradient: str = ""
    current_step_id: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def new(cls, name: str, description: str = "", gradient: str = "") -> Project:
        ts = utc_now_iso()
        return cls(id=new_id(), name=name, description=description,
                   gradient=gradient, created_at=ts, updated_at=ts)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Project:
        # Stored as "" when cleared.
        current = data.get("current_step_id") or None
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            description=str(data.get("description") or ""),
            gradient=str(data.get("gradient") or ""),
            current_step_id=str(current) if current else None,
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
        )


@dataclass
class Note:
    """Free-form project note. Not ordered, not undoable."""

    id: str
    project_id: str
    title: str
    content: str = ""
    plain_text: str = ""
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def new(cls, project_id: str, title: str, content: str = "") -> Note:
        ts = utc_now_iso()
        return cls(id=new_id(), project_id=project_id, title=title, content=content,
                   plain_text=plain_text_of(content), created_at=ts, updated_at=ts)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Note:
        return cls(
            id=str(data["id"]),
            project_id=str(data["project_id"]),
            title=str(data.get("title", "")),
            content=str(data.get("content") or ""),
            plain_text=str(data.get("plain_text") or ""),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
        )
