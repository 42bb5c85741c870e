"""
Error taxonomy for the identity layer.

Lookups never raise for "not found" (they return None) and token checks
collapse to a boolean, so only genuine faults live here.
"""


class AuthError(Exception):
    """Base class for identity-layer errors."""


class IdentityConflictError(AuthError, ValueError):
    """Username or email already taken (registration or unique constraint)."""


class StorageError(AuthError, RuntimeError):
    """The backing store failed to read, parse or write. Not retried."""


class AccessDeniedError(AuthError, PermissionError):
    """Caller lacks the role required for the action."""

    def __init__(self, role: str, username: str = "anonymous"):
        self.role = role
        self.username = username
        super().__init__(f"Access denied: '{username}' requires role {role}")


class SyncConflictError(IdentityConflictError):
    """
    The XML user could not be mirrored to the database because another row
    there holds the username or email. The XML record itself was stored.
    """
