from __future__ import annotations


class StoreError(RuntimeError):
    """Raised by store backends when the underlying storage fails.

    The message of the original error is kept so the API can pass it through.
    """


class InvalidTaskError(ValueError):
    """Raised when a request would violate a task invariant."""


__all__ = ["StoreError", "InvalidTaskError"]
