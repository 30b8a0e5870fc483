"""Durable storage for stepnote.

Layout:
    ~/.stepnote/data/
    ├── projects/
    │   └── <project_id>.md            # YAML frontmatter + description body
    ├── steps/
    │   └── <project_id>/<step_id>.md  # YAML frontmatter + description body
    ├── notes/
    │   └── <project_id>/<note_id>.md
    └── last_opened.json               # side store: project_id -> step_id

The step/project files are the source of truth. ``last_opened.json`` is not
validated against them.
"""
