# src/taskdeck/errors.py

"""Exception types shared across the package."""

from __future__ import annotations


class TaskdeckError(Exception):
    """Base class for errors raised by taskdeck."""


class ValidationError(TaskdeckError, ValueError):
    """
    A user input was rejected before any state changed.

    The message is meant to be shown to the user as-is.
    """


class StorageError(TaskdeckError, RuntimeError):
    """The key-value backend failed to read or write."""
