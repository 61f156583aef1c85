"""Kanban board backend with sparse-position task ordering."""

__version__ = "1.0.0"
