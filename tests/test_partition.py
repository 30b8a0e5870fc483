"""Tests for the per-project step partition."""

import pytest

from stepnote.models import Step
from stepnote.steps.ordering import move
from stepnote.steps.partition import StepPartition


def _step(step_id: str, project_id: str, order: int) -> Step:
    return Step(id=step_id, project_id=project_id, title=step_id, order=order)


@pytest.fixture
def collection() -> list[Step]:
    return [
        _step("a1", "A", 0), _step("b1", "B", 0), _step("a2", "A", 1),
        _step("b2", "B", 1), _step("a3", "A", 2),
    ]


class TestStepPartition:
    def test_get_is_sorted_copy(self, collection):
        partition = StepPartition(reversed(collection))
        steps = partition.get("A")
        assert [s.id for s in steps] == ["a1", "a2", "a3"]
        steps.clear()
        assert len(partition.get("A")) == 3

    def test_replace_leaves_other_projects_alone(self, collection):
        partition = StepPartition(collection)
        other_before = partition.get("B")
        partition.replace("A", move(partition.get("A"), 2, 0))

        assert partition.get("B") == other_before
        assert [s.id for s in partition.get("A")] == ["a3", "a1", "a2"]
        assert len(partition) == 5

    def test_flattened_is_others_then_updated(self, collection):
        updated = move([s for s in collection if s.project_id == "A"], 0, 1)
        partition = StepPartition(collection)
        partition.replace("A", updated)
        flat = partition.all_steps()
        assert [s.id for s in flat] == ["b1", "b2"] + [s.id for s in updated]

    def test_replace_rejects_foreign_steps(self, collection):
        partition = StepPartition(collection)
        with pytest.raises(ValueError):
            partition.replace("A", [_step("b1", "B", 0)])

    def test_replace_with_empty_removes_project(self, collection):
        partition = StepPartition(collection)
        partition.replace("B", [])
        assert "B" not in partition
        assert partition.get("B") == []

    def test_find_and_ids(self, collection):
        partition = StepPartition(collection)
        assert partition.find("b2").project_id == "B"
        assert partition.find("missing") is None
        assert partition.ids("A") == {"a1", "a2", "a3"}

    def test_drop(self, collection):
        partition = StepPartition(collection)
        dropped = partition.drop("A")
        assert len(dropped) == 3
        assert partition.project_ids() == ["B"]
