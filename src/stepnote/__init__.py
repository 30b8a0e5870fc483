"""stepnote: projects as ordered steps, with undoable deletes."""

__version__ = "0.1.0"
