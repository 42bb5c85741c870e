"""
XML -> database user synchronization.

When the XML file is the identity source of truth, every authenticated
user must still have a row in the relational store so that bookings,
saved flights and search history keep valid foreign keys. Mirroring is
strictly one-way: the XML document is never written from here.

Two concurrent first-time syncs of the same username can both miss the
database row and both insert; the unique constraint on users.username
makes the second insert fail with SyncConflictError.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from skyexplorer_auth.auth.errors import IdentityConflictError, SyncConflictError
from skyexplorer_auth.auth.models import Identity, utcnow
from skyexplorer_auth.auth.providers.base import UserProvider
from skyexplorer_auth.utils.audit import log_user_synchronized

logger = logging.getLogger(__name__)


class XmlToDbUserSynchronizer:
    """
    Mirrors XML identities into the relational store.

    Args:
        db_provider: Relational credential store (written to)
        xml_provider: File-backed credential store (read only)
        enabled: True when the active auth provider is "xml"
        clock: Returns the current naive UTC time (injectable for tests)
    """

    def __init__(
        self,
        db_provider: UserProvider,
        xml_provider: Optional[UserProvider],
        enabled: bool,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db_provider = db_provider
        self.xml_provider = xml_provider
        self.enabled = enabled and xml_provider is not None
        self.clock = clock

    def synchronize_user(self, username: str) -> Optional[Identity]:
        """
        Ensures the XML user exists (and is current) in the database.

        Args:
            username: Username of the authenticated user

        Returns:
            The database Identity, or None when sync is disabled or the
            user is not in the XML store
        """
        if not self.enabled:
            return None

        xml_user = self.xml_provider.find_by_username(username)
        if xml_user is None:
            return None

        db_user = self.db_provider.find_by_username(username)

        if db_user is None:
            now = self.clock()
            mirrored = Identity(
                username=xml_user.username,
                email=xml_user.email,
                password_hash=xml_user.password_hash,
                roles=set(xml_user.roles),
                created_at=now,
                updated_at=now,
            )
            saved = self._mirror(mirrored)
            logger.info(f"Sync: created database user '{username}' from XML")
            log_user_synchronized(username, "CREATED")
            return saved

        needs_update = False

        if db_user.email != xml_user.email:
            db_user.email = xml_user.email
            needs_update = True

        if db_user.roles != xml_user.roles:
            db_user.roles = set(xml_user.roles)
            needs_update = True

        if not needs_update:
            return db_user

        db_user.updated_at = self.clock()
        saved = self._mirror(db_user)
        logger.info(f"Sync: updated database user '{username}' from XML")
        log_user_synchronized(username, "UPDATED")
        return saved

    def synchronize_new_user(self, username: str) -> Optional[Identity]:
        """Called right after registration in XML mode."""
        return self.synchronize_user(username)

    def _mirror(self, identity: Identity) -> Identity:
        try:
            return self.db_provider.save(identity)
        except IdentityConflictError as e:
            logger.error(f"Sync: cannot mirror '{identity.username}' to the database: {e}")
            raise SyncConflictError(
                f"Cannot mirror '{identity.username}' to the database: {e}"
            ) from e


class AuthenticationSuccessListener:
    """
    Observer registered on AuthService; fires after every successful login.
    """

    def __init__(self, synchronizer: XmlToDbUserSynchronizer):
        self.synchronizer = synchronizer

    def on_authentication_success(self, username: str) -> None:
        self.synchronizer.synchronize_user(username)

    __call__ = on_authentication_success
