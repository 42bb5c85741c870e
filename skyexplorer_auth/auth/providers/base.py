"""
Base User Provider

Abstract base class that every credential store must implement.
The active provider is chosen from configuration at start-up
(see core.registry), never by inspecting types at runtime.
"""

import contextlib
from abc import ABC, abstractmethod
from typing import Any, ContextManager, Dict, List, Optional

from skyexplorer_auth.auth.models import Identity


class UserProvider(ABC):
    """
    Abstract base class for credential stores.

    Lookup methods return None when nothing matches and never raise for
    absence. Storage faults surface as StorageError; uniqueness violations
    surface as IdentityConflictError.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initializes provider with configuration.

        Args:
            config: Dict with settings (usually config.as_dict())
        """
        self.config = config

    @abstractmethod
    def get_name(self) -> str:
        """
        Returns provider identifier.

        Returns:
            str: Provider name (e.g., 'database', 'xml')
        """

    @abstractmethod
    def find_by_username(self, username: str) -> Optional[Identity]:
        """
        Finds a user by username (exact, case-sensitive match).

        Args:
            username: Username to search for

        Returns:
            Identity or None if no matching user exists
        """

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[Identity]:
        """
        Finds a user by email address.

        Args:
            email: Email address (e.g., "user@example.com")

        Returns:
            Identity or None if no matching user exists
        """

    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[Identity]:
        """
        Finds a user by numeric id.

        Returns:
            Identity or None if no user has that id
        """

    @abstractmethod
    def find_all(self) -> List[Identity]:
        """
        Retrieves every user. O(n); intended for admin screens and small stores.

        Returns:
            List of Identity (possibly empty, never None)
        """

    @abstractmethod
    def save(self, identity: Identity) -> Identity:
        """
        Inserts or updates a user.

        - id None or 0: a fresh unique id is assigned and the user inserted
        - id present and found: the stored record is updated
        - id present but unknown: the user is inserted under that id

        Args:
            identity: User to persist

        Returns:
            The persisted Identity with its id populated
        """

    @abstractmethod
    def delete_by_id(self, user_id: int) -> None:
        """
        Removes a user. Silently does nothing when the id is unknown.
        """

    # ========================================
    # DERIVED METHODS
    # ========================================

    def exists_by_username(self, username: str) -> bool:
        return self.find_by_username(username) is not None

    def exists_by_email(self, email: str) -> bool:
        return self.find_by_email(email) is not None

    def transaction(self) -> ContextManager:
        """
        Transaction boundary for multi-step operations (check + insert).

        Providers without transactional storage return a no-op context;
        the relational provider overrides this with a real transaction.
        """
        return contextlib.nullcontext()
