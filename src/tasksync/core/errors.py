# src/tasksync/core/errors.py

from __future__ import annotations

"""
Error taxonomy shared by backends, the auth session and the task store.

"No signed-in user" is deliberately not an exception: operations that need a
user simply do nothing when the identity gate returns None.
"""


class TaskSyncError(Exception):
    """Base class for all tasksync errors."""


class BackendError(TaskSyncError):
    """
    Failure reported by the document store or auth provider
    (network, permission, quota, missing document, ...).

    `code` is a short machine-readable tag (e.g. "NOT_FOUND", "UNAVAILABLE").
    """

    def __init__(self, message: str, *, code: str = "UNKNOWN") -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message or self.code


class AuthError(BackendError):
    """Sign-in / sign-up rejected by the auth provider."""


class ValidationError(TaskSyncError):
    """Input rejected before reaching the backend (e.g. empty credentials)."""
