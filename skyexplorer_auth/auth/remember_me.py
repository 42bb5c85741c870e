"""
Remember-Me Token Store

Opaque random token -> (username, expiry), held in process memory.

Known limitation: the table is not persisted, so every remember-me
login is lost when the process restarts. Expiry is fixed at issuance
(no sliding window).
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from skyexplorer_auth.auth.models import Identity, utcnow
from skyexplorer_auth.auth.providers.base import UserProvider
from skyexplorer_auth.utils.audit import log_remember_me_issued

logger = logging.getLogger(__name__)

DEFAULT_LIFETIME_SECONDS = 14 * 24 * 60 * 60


@dataclass(frozen=True)
class RememberMeEntry:
    username: str
    expires_at: datetime


class RememberMeTokenStore:
    """
    Thread-safe in-memory remember-me table.

    Args:
        provider: Credential store used to resolve usernames back to identities
        lifetime_seconds: Token lifetime (default 14 days)
        clock: Returns the current naive UTC time (injectable for tests)
    """

    def __init__(
        self,
        provider: UserProvider,
        lifetime_seconds: int = DEFAULT_LIFETIME_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.provider = provider
        self.lifetime = timedelta(seconds=lifetime_seconds)
        self.clock = clock
        self._tokens: Dict[str, RememberMeEntry] = {}
        self._lock = threading.Lock()

    def issue(self, identity: Identity) -> str:
        """
        Creates a new token for the identity and returns it.

        Expired entries are swept first, so tokens that are never presented
        again do not accumulate.
        """
        self.purge_expired()

        token = str(uuid.uuid4())
        entry = RememberMeEntry(identity.username, self.clock() + self.lifetime)

        with self._lock:
            self._tokens[token] = entry

        log_remember_me_issued(identity.username, token[:8])
        return token

    def validate(self, token: Optional[str]) -> Optional[Identity]:
        """
        Resolves a token to its identity.

        Expired entries are removed on this first access after expiry.
        The expiry is not extended on use.
        """
        if not token:
            return None

        with self._lock:
            entry = self._tokens.get(token)
            if entry is None:
                return None

            if entry.expires_at <= self.clock():
                self._tokens.pop(token, None)
                logger.info(f"Remember-me token for '{entry.username}' expired and was removed")
                return None

        return self.provider.find_by_username(entry.username)

    def revoke(self, token: Optional[str]) -> bool:
        """Deletes a token (logout). Returns True if it existed."""
        if not token:
            return False
        with self._lock:
            return self._tokens.pop(token, None) is not None

    def purge_expired(self) -> int:
        """
        Drops every expired entry at once.

        Returns:
            int: Number of entries removed
        """
        now = self.clock()
        with self._lock:
            expired = [t for t, e in self._tokens.items() if e.expires_at <= now]
            for token in expired:
                del self._tokens[token]

        if expired:
            logger.info(f"Purged {len(expired)} expired remember-me tokens")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def __contains__(self, token: str) -> bool:
        with self._lock:
            return token in self._tokens
