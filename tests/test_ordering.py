"""Tests for dense step ordering."""

import pytest

from stepnote.models import Step
from stepnote.steps.ordering import append, changed, is_dense, move, remove, renumber, sort_by_order


def _steps(*ids: str, project_id: str = "p1") -> list[Step]:
    return [Step(id=i, project_id=project_id, title=f"Step {i}", order=n,
                 created_at="2026-01-01T00:00:00+00:00") for n, i in enumerate(ids)]


def _ids(steps: list[Step]) -> list[str]:
    return [s.id for s in steps]


class TestMove:
    def test_move_last_to_front(self):
        moved = move(_steps("1", "2", "3"), 2, 0)
        assert _ids(moved) == ["3", "1", "2"]
        assert [s.order for s in moved] == [0, 1, 2]

    def test_move_front_to_back(self):
        moved = move(_steps("a", "b", "c", "d"), 0, 3)
        assert _ids(moved) == ["b", "c", "d", "a"]
        assert is_dense(moved)

    def test_out_of_range_rejected(self):
        steps = _steps("1", "2")
        with pytest.raises(ValueError):
            move(steps, 0, 2)
        with pytest.raises(ValueError):
            move(steps, -1, 0)

    def test_renumber_keeps_updated_at(self):
        steps = [Step(id=i, project_id="p1", title=i, order=n, updated_at="2026-01-01")
                 for n, i in enumerate("abc")]
        moved = move(steps, 0, 2)
        assert all(s.updated_at == "2026-01-01" for s in moved)


class TestRenumber:
    def test_append_gets_next_order(self):
        new = Step(id="x", project_id="p1", title="x", order=99)
        result = append(_steps("1", "2"), new)
        assert result[-1].id == "x"
        assert result[-1].order == 2

    def test_remove_closes_gap(self):
        result = remove(_steps("1", "2", "3"), "2")
        assert _ids(result) == ["1", "3"]
        assert [s.order for s in result] == [0, 1]

    def test_renumber_overwrites_sparse_orders(self):
        sparse = [Step(id=i, project_id="p1", title=i, order=o) for i, o in [("a", 4), ("b", 9)]]
        assert not is_dense(sparse)
        assert is_dense(renumber(sparse))

    def test_sort_breaks_ties_by_creation(self):
        a = Step(id="a", project_id="p1", title="a", order=0, created_at="2026-01-02")
        b = Step(id="b", project_id="p1", title="b", order=0, created_at="2026-01-01")
        assert _ids(sort_by_order([a, b])) == ["b", "a"]

    def test_invariant_after_mixed_sequence(self):
        steps = _steps("1", "2", "3", "4")
        steps = move(steps, 3, 1)
        steps = remove(steps, "1")
        steps = append(steps, Step(id="5", project_id="p1", title="5"))
        steps = move(steps, 0, 3)
        assert is_dense(steps)
        assert len(steps) == 4


class TestChanged:
    def test_only_shifted_records(self):
        before = _steps("1", "2", "3")
        after = remove(before, "1")
        assert _ids(changed(before, after)) == ["2", "3"]

    def test_removing_last_changes_nothing(self):
        before = _steps("1", "2", "3")
        assert changed(before, remove(before, "3")) == []
