"""Dense zero-based ordering of a project's steps.

Every reorder, append or removal renumbers the whole sequence so that the
orders of a project's steps are exactly ``0..n-1``. Lists are small (tens of
steps), so rewriting each ``order`` is cheaper than reasoning about gaps.
"""

from __future__ import annotations

from collections.abc import Iterable

from stepnote.models import Step


def sort_by_order(steps: Iterable[Step]) -> list[Step]:
    return sorted(steps, key=lambda s: (s.order, s.created_at, s.id))


def renumber(steps: Iterable[Step]) -> list[Step]:
    """Assign ``order = index`` over the sequence as given."""
    return [step.with_order(i) for i, step in enumerate(steps)]


def move(steps: list[Step], source: int, destination: int) -> list[Step]:
    """Move the step at ``source`` to ``destination`` and renumber."""
    n = len(steps)
    if not 0 <= source < n:
        raise ValueError(f"Source index {source} out of range (0..{n - 1})")
    if not 0 <= destination < n:
        raise ValueError(f"Destination index {destination} out of range (0..{n - 1})")
    items = list(steps)
    item = items.pop(source)
    items.insert(destination, item)
    return renumber(items)


def append(steps: list[Step], step: Step) -> list[Step]:
    return renumber([*steps, step])


def remove(steps: list[Step], step_id: str) -> list[Step]:
    """Drop ``step_id`` and close the gap it leaves."""
    return renumber(s for s in steps if s.id != step_id)


def is_dense(steps: Iterable[Step]) -> bool:
    orders = sorted(s.order for s in steps)
    return orders == list(range(len(orders)))


def changed(before: Iterable[Step], after: Iterable[Step]) -> list[Step]:
    """Records of ``after`` that differ from their counterpart in ``before``."""
    previous = {s.id: s for s in before}
    return [s for s in after if previous.get(s.id) != s]
