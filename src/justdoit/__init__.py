"""Single-user task tracker with local persistence."""

__version__ = "0.1.0"
