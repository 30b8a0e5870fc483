"""Tests for the frontmatter file store."""

import pytest
from pathlib import Path

import frontmatter

from stepnote.models import Note, Project, Step
from stepnote.store.base import PersistenceError, PersistenceService
from stepnote.store.files import FileStore


@pytest.fixture
def store(tmp_path: Path) -> FileStore:
    return FileStore(tmp_path / "data")


@pytest.fixture
def project() -> Project:
    return Project.new("Thesis", "Write it")


def _step(project: Project, n: int, **kwargs) -> Step:
    return Step.new(project.id, f"Step {n}", kwargs.pop("description", f"<p>Body {n}</p>"), n)


class TestFileStoreSteps:
    def test_is_persistence_service(self, store: FileStore):
        assert isinstance(store, PersistenceService)

    def test_directories_created(self, store: FileStore):
        for sub in ("projects", "steps", "notes"):
            assert (store.root / sub).is_dir()

    @pytest.mark.asyncio
    async def test_create_and_load_roundtrip(self, store: FileStore, project: Project):
        await store.create_project(project)
        step = _step(project, 0)
        await store.create_step(step)

        loaded = await store.load_all_steps()
        assert loaded == [step]
        assert loaded[0].plain_text == "Body 0"

    @pytest.mark.asyncio
    async def test_step_file_format(self, store: FileStore, project: Project):
        await store.create_project(project)
        step = _step(project, 0)
        await store.create_step(step)

        post = frontmatter.load(str(store.root / "steps" / project.id / f"{step.id}.md"))
        assert post["title"] == "Step 0"
        assert post["order"] == 0
        assert post.content == "<p>Body 0</p>"

    @pytest.mark.asyncio
    async def test_index_rebuilt_on_restart(self, store: FileStore, project: Project):
        await store.create_project(project)
        step = _step(project, 0)
        await store.create_step(step)

        reopened = FileStore(store.root)
        await reopened.delete_step(step.id)
        assert await reopened.load_all_steps() == []

    @pytest.mark.asyncio
    async def test_create_requires_project(self, store: FileStore, project: Project):
        with pytest.raises(PersistenceError):
            await store.create_step(_step(project, 0))

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, store: FileStore, project: Project):
        await store.create_project(project)
        step = _step(project, 0)
        await store.create_step(step)
        with pytest.raises(PersistenceError):
            await store.create_step(step)

    @pytest.mark.asyncio
    async def test_update_missing_step(self, store: FileStore, project: Project):
        await store.create_project(project)
        with pytest.raises(PersistenceError):
            await store.update_step(_step(project, 0))

    @pytest.mark.asyncio
    async def test_delete_missing_step(self, store: FileStore):
        with pytest.raises(PersistenceError):
            await store.delete_step("nope")

    @pytest.mark.asyncio
    async def test_batch_update_is_all_or_nothing(self, store: FileStore, project: Project):
        await store.create_project(project)
        a, b = _step(project, 0), _step(project, 1)
        await store.create_step(a)
        await store.create_step(b)

        ghost = _step(project, 2)
        with pytest.raises(PersistenceError):
            await store.update_steps([a.with_order(1), ghost])
        assert await store.load_all_steps() == [a, b]

        await store.update_steps([a.with_order(1), b.with_order(0)])
        assert [s.id for s in await store.load_all_steps()] == [b.id, a.id]

    @pytest.mark.asyncio
    async def test_invalid_id_rejected(self, store: FileStore, project: Project):
        await store.create_project(project)
        bad = Step(id="../escape", project_id=project.id, title="x")
        with pytest.raises(PersistenceError):
            await store.create_step(bad)

    @pytest.mark.asyncio
    async def test_unreadable_file_skipped(self, store: FileStore, project: Project):
        await store.create_project(project)
        step = _step(project, 0)
        await store.create_step(step)
        broken = store.root / "steps" / project.id / "broken.md"
        broken.write_text("---\ntitle: [unclosed\n---\n")

        reopened = FileStore(store.root)
        assert await reopened.load_all_steps() == [step]


class TestFileStoreProjects:
    @pytest.mark.asyncio
    async def test_projects_newest_first(self, store: FileStore):
        old = Project(id="old", name="Old", created_at="2026-01-01T00:00:00+00:00")
        new = Project(id="new", name="New", created_at="2026-02-01T00:00:00+00:00")
        await store.create_project(old)
        await store.create_project(new)
        assert [p.id for p in await store.load_projects()] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_current_step_roundtrip(self, store: FileStore, project: Project):
        await store.create_project(project)
        await store.update_project_current_step(project.id, "s1")
        assert (await store.load_projects())[0].current_step_id == "s1"

        await store.update_project_current_step(project.id, None)
        assert (await store.load_projects())[0].current_step_id is None

    @pytest.mark.asyncio
    async def test_update_project(self, store: FileStore, project: Project):
        await store.create_project(project)
        project.name = "Renamed"
        await store.update_project(project)
        assert (await store.load_projects())[0].name == "Renamed"

    @pytest.mark.asyncio
    async def test_delete_cascades(self, store: FileStore, project: Project):
        other = Project.new("Other")
        await store.create_project(project)
        await store.create_project(other)
        await store.create_step(_step(project, 0))
        kept = _step(other, 0)
        await store.create_step(kept)
        await store.create_note(Note.new(project.id, "gone"))

        await store.delete_project(project.id)

        assert [p.id for p in await store.load_projects()] == [other.id]
        assert await store.load_all_steps() == [kept]
        assert await store.load_notes(project.id) == []

    @pytest.mark.asyncio
    async def test_delete_missing_project(self, store: FileStore):
        with pytest.raises(PersistenceError):
            await store.delete_project("nope")


class TestFileStoreNotes:
    @pytest.mark.asyncio
    async def test_notes_crud(self, store: FileStore, project: Project):
        await store.create_project(project)
        first = Note(id="n1", project_id=project.id, title="First", content="one",
                     created_at="2026-01-01T00:00:00+00:00")
        second = Note(id="n2", project_id=project.id, title="Second", content="two",
                      created_at="2026-01-02T00:00:00+00:00")
        await store.create_note(first)
        await store.create_note(second)
        assert [n.id for n in await store.load_notes(project.id)] == ["n2", "n1"]

        first.title = "First, edited"
        await store.update_note(first)
        await store.delete_note("n2")
        notes = await store.load_notes(project.id)
        assert [n.title for n in notes] == ["First, edited"]

    @pytest.mark.asyncio
    async def test_note_requires_project(self, store: FileStore):
        with pytest.raises(PersistenceError):
            await store.create_note(Note.new("nope", "orphan"))
