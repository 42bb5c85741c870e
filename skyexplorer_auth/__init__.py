"""
skyexplorer-auth

Pluggable identity layer for SkyExplorer: relational and XML user
providers, XML -> database synchronization, JWT bearer tokens and
remember-me logins.
"""

__version__ = "1.0.0"

from .auth.errors import AccessDeniedError, AuthError, IdentityConflictError, StorageError
from .auth.models import Identity, Principal
from .auth.providers.base import UserProvider
from .auth.service import AuthService
from .core.factory import build_components
from .core.registry import get_provider, list_available_providers
from .utils.config import config

__all__ = [
    "__version__",
    "AccessDeniedError",
    "AuthError",
    "AuthService",
    "Identity",
    "IdentityConflictError",
    "Principal",
    "StorageError",
    "UserProvider",
    "build_components",
    "config",
    "get_provider",
    "list_available_providers",
]
