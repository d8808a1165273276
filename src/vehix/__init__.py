"""Vehix fleet maintenance tasks: lifecycle, recurrence, assignment and storage."""

__version__ = "0.1.0"
