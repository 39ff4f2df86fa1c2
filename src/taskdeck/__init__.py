"""taskdeck: console client for a task/team REST backend with optimistic board sync."""

__version__ = "0.1.0"
