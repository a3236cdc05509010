"""Error taxonomy shared by the authorization engine and account lifecycle."""

from __future__ import annotations

from uuid import UUID


class OpsgateError(Exception):
    """Base class for opsgate domain errors."""

    error_type: str = "opsgate_error"
    retryable: bool = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.__class__.__doc__ or self.error_type)
        self.message = str(self.args[0])


class AccountNotFoundError(OpsgateError, LookupError):
    """Account not found."""

    error_type = "not_found"

    def __init__(self, message: str | None = None, *, account_id: UUID | str | None = None) -> None:
        self.account_id = account_id
        if message is None and account_id is not None:
            message = f"Account {account_id} not found."
        super().__init__(message)


class InfrastructureError(OpsgateError, RuntimeError):
    """Storage unavailable or timed out."""

    error_type = "infrastructure_error"
    retryable = True


class IllegalTransitionError(OpsgateError):
    """Status change not permitted from the current state."""

    error_type = "illegal_transition"


class InvalidConstraintError(OpsgateError, ValueError):
    """Mutation arguments violate a lifecycle constraint."""

    error_type = "invalid_constraint"


class PermissionDeniedError(OpsgateError):
    """Actor is not allowed to perform this administrative action."""

    error_type = "permission_denied"


class SelfModificationError(PermissionDeniedError):
    """Actors cannot change their own status or role."""

    error_type = "self_modification"


class AccessCatalogError(OpsgateError, ValueError):
    """Access-point group does not belong to the dashboard."""

    error_type = "access_catalog_error"


__all__ = [
    "AccessCatalogError",
    "AccountNotFoundError",
    "IllegalTransitionError",
    "InfrastructureError",
    "InvalidConstraintError",
    "OpsgateError",
    "PermissionDeniedError",
    "SelfModificationError",
]
