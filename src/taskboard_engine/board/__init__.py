"""Kanban board engine: task model, validation, ordering, dependencies and progress.

The coordinator in :mod:`.coordinator` is the entry point; the other modules
operate on a :class:`~.model.Board` working copy handed to them by it.
"""
