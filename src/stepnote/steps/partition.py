"""Per-project partition of the cross-project step collection.

The UI layer holds every step of every project. A project-scoped mutation
must never touch the other projects' records, so the collection is kept as a
mapping ``project_id -> ordered steps`` and a mutation replaces exactly one
entry. Flattening yields the other projects' steps followed by the replaced
project's steps, the same shape as ``others + updated``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from stepnote.models import Step
from stepnote.steps.ordering import sort_by_order


class StepPartition:
    """Steps keyed by project, each partition an ordered list."""

    def __init__(self, steps: Iterable[Step] = ()) -> None:
        self._parts: dict[str, list[Step]] = {}
        for step in steps:
            self._parts.setdefault(step.project_id, []).append(step)

    def __len__(self) -> int:
        return sum(len(part) for part in self._parts.values())

    def __iter__(self) -> Iterator[Step]:
        return iter(self.all_steps())

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._parts

    def project_ids(self) -> list[str]:
        return list(self._parts)

    def get(self, project_id: str) -> list[Step]:
        """The project's steps sorted by ``order`` (a copy)."""
        return sort_by_order(self._parts.get(project_id, []))

    def replace(self, project_id: str, steps: Iterable[Step]) -> None:
        """Swap one project's partition for ``steps``; every other partition is left as is."""
        items = list(steps)
        strays = [s.id for s in items if s.project_id != project_id]
        if strays:
            raise ValueError(f"Steps {strays} do not belong to project {project_id}")
        self._parts.pop(project_id, None)
        if items:
            self._parts[project_id] = items

    def drop(self, project_id: str) -> list[Step]:
        return self._parts.pop(project_id, [])

    def all_steps(self) -> list[Step]:
        return [step for part in self._parts.values() for step in part]

    def find(self, step_id: str) -> Step | None:
        for part in self._parts.values():
            for step in part:
                if step.id == step_id:
                    return step
        return None

    def ids(self, project_id: str) -> set[str]:
        return {s.id for s in self._parts.get(project_id, [])}
