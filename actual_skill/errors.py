"""Error types raised by tools and the ledger client."""

from __future__ import annotations


class SkillError(Exception):
    """Base class for every failure surfaced to the caller."""


class ValidationError(SkillError, ValueError):
    """Tool arguments do not match the declared input contract."""


class ResolutionError(SkillError, LookupError):
    """An id-or-name reference matched no known entity."""

    def __init__(self, kind: str, token: str) -> None:
        self.kind = kind
        self.token = token
        super().__init__(f"{kind} not found: {token}")


class DataAccessError(SkillError, RuntimeError):
    """The ledger backend failed a read or write."""

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class PostMutationSyncError(DataAccessError):
    """The mutation was applied but the follow-up sync failed.

    Ledger state has already changed; retrying the mutation may duplicate it.
    """

    def __init__(self, operation: str, cause: Exception) -> None:
        self.operation = operation
        status = getattr(cause, "status", None)
        super().__init__(
            f"{operation} was applied but sync failed: {cause}", status=status,
        )
