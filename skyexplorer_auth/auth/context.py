"""
Per-request security context.

Holds the authenticated Principal of the current request (or None for
anonymous callers). Backed by a ContextVar, so each request task or
worker thread sees only its own principal.
"""

import contextlib
from contextvars import ContextVar, Token
from typing import Iterator, Optional

from skyexplorer_auth.auth.models import Principal

_current_principal: ContextVar[Optional[Principal]] = ContextVar(
    "skyexplorer_auth_principal", default=None
)


def get_current_principal() -> Optional[Principal]:
    return _current_principal.get()


def set_principal(principal: Optional[Principal]) -> Token:
    """Binds a principal; keep the returned token to reset it later."""
    return _current_principal.set(principal)


def reset_principal(token: Token) -> None:
    _current_principal.reset(token)


@contextlib.contextmanager
def security_context(principal: Optional[Principal]) -> Iterator[Optional[Principal]]:
    """
    Runs a block as the given principal.

    Example:
        >>> with security_context(Principal("alice", frozenset({"ROLE_ADMIN"}))):
        ...     service.has_role("ADMIN")
        True
    """
    token = set_principal(principal)
    try:
        yield principal
    finally:
        reset_principal(token)
