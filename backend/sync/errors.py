"""
Client-side error taxonomy.

Every store operation failure is one of these. The synchronizer catches them
at the call site and turns them into a toast; none of them ever reach a view.
"""


class StoreError(Exception):
    """A store operation did not complete."""


class PolicyDeniedError(StoreError):
    """The owner predicate rejected the read or write. Carries no row detail."""

    def __init__(self, message: str = "permission denied"):
        super().__init__(message)


class TransientNetworkError(StoreError):
    """The request could not complete; the user may retry."""


class RecordNotFoundError(StoreError):
    """An update or delete matched no row (e.g. deleted concurrently)."""


class ValidationFailedError(StoreError):
    """A required field is missing. Raised before any request is issued."""
