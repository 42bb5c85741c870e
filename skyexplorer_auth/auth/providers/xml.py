"""
XML file user provider.

Stores the whole user collection in one XML document:

    <users>
      <user id="1" username="alice" email="alice@example.com"
            password="$2b$10$..." roles="ADMIN,USER"/>
    </users>

Simplicity over performance: every lookup parses the file, every write
rewrites it. Only suitable for small user counts.
"""

import logging
import threading
import xml.etree.ElementTree as ET
from typing import Any, Callable, Dict, List, Optional

from skyexplorer_auth.auth.errors import IdentityConflictError, StorageError
from skyexplorer_auth.auth.models import Identity, join_roles, parse_roles
from skyexplorer_auth.auth.providers.base import UserProvider
from skyexplorer_auth.auth.providers.document import DocumentStore, XmlDocumentSerializer

logger = logging.getLogger(__name__)

ROOT_TAG = "users"
USER_TAG = "user"


class AtomicCounter:
    """Thread-safe monotonically increasing id sequence."""

    def __init__(self, start: int = 1):
        self._value = start
        self._lock = threading.Lock()

    def get_and_increment(self) -> int:
        with self._lock:
            value = self._value
            self._value += 1
            return value

    def advance_past(self, value: int) -> None:
        """Ensures the next id handed out is greater than value."""
        with self._lock:
            if value >= self._value:
                self._value = value + 1

    @property
    def value(self) -> int:
        return self._value


class XmlUserProvider(UserProvider):
    """
    File-backed credential store.

    Configuration:
    - XML_FILE: Path to the users document (default: ./data/users.xml)

    The file (and its directory) is created on first use. On start-up the
    existing records are scanned once to seed the id sequence at max(id) + 1.
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.xml_file = config.get("XML_FILE") or "./data/users.xml"
        self.store = DocumentStore(self.xml_file, XmlDocumentSerializer(ROOT_TAG))
        self._next_id = AtomicCounter(1)

        if not self.store.ensure_exists():
            self._update_next_id()

        logger.info(f"XmlUserProvider: Using {self.xml_file} (next id {self._next_id.value})")

    def get_name(self) -> str:
        return "xml"

    # ========================================
    # Lookups (lock-free, parse per call)
    # ========================================

    def find_by_username(self, username: str) -> Optional[Identity]:
        return self._find_first(lambda el: el.get("username") == username)

    def find_by_email(self, email: str) -> Optional[Identity]:
        return self._find_first(lambda el: el.get("email") == email)

    def find_by_id(self, user_id: int) -> Optional[Identity]:
        return self._find_first(lambda el: self._element_id(el) == user_id)

    def find_all(self) -> List[Identity]:
        root = self.store.read()
        return [self._element_to_identity(el) for el in root.iter(USER_TAG)]

    # ========================================
    # Writes (serialized under the file lock)
    # ========================================

    def save(self, identity: Identity) -> Identity:
        """
        Inserts or updates under the file lock.

        Username and email uniqueness is checked against the document read
        inside the lock, so concurrent writers cannot both insert the same name.

        Raises:
            IdentityConflictError: Another user already has the username or email
        """
        user_id = identity.id

        with self.store.mutate() as root:
            self._check_unique(root, identity)

            if identity.is_new:
                user_id = self._next_id.get_and_increment()
                root.append(self._identity_to_element(identity, user_id))
            else:
                element = self._find_element(root, user_id)
                if element is not None:
                    self._write_attributes(element, identity)
                else:
                    # Unknown id: insert under the caller's id
                    self._next_id.advance_past(user_id)
                    root.append(self._identity_to_element(identity, user_id))

        # Only once the document is on disk
        identity.id = user_id
        return identity

    def delete_by_id(self, user_id: int) -> None:
        with self.store.mutate() as root:
            element = self._find_element(root, user_id)
            if element is not None:
                root.remove(element)

    # ========================================
    # Internal Helpers
    # ========================================

    def _update_next_id(self) -> None:
        users = self.find_all()
        if users:
            self._next_id.advance_past(max(u.id for u in users))

    def _find_first(self, predicate: Callable[[ET.Element], bool]) -> Optional[Identity]:
        root = self.store.read()
        for element in root.iter(USER_TAG):
            if predicate(element):
                return self._element_to_identity(element)
        return None

    def _find_element(self, root: ET.Element, user_id: int) -> Optional[ET.Element]:
        for element in root.iter(USER_TAG):
            if self._element_id(element) == user_id:
                return element
        return None

    @staticmethod
    def _element_id(element: ET.Element) -> int:
        raw = element.get("id", "")
        try:
            return int(raw)
        except ValueError as e:
            raise StorageError(f"Corrupt user element: invalid id '{raw}'") from e

    def _element_to_identity(self, element: ET.Element) -> Identity:
        return Identity(
            id=self._element_id(element),
            username=element.get("username", ""),
            email=element.get("email", ""),
            password_hash=element.get("password", ""),
            roles=parse_roles(element.get("roles")),
        )

    def _check_unique(self, root: ET.Element, identity: Identity) -> None:
        for element in root.iter(USER_TAG):
            if not identity.is_new and self._element_id(element) == identity.id:
                continue

            if element.get("username") == identity.username:
                logger.warning(f"Rejected duplicate username '{identity.username}'")
                raise IdentityConflictError(f"Username already exists: {identity.username}")

            if identity.email and element.get("email") == identity.email:
                logger.warning(f"Rejected duplicate email for '{identity.username}'")
                raise IdentityConflictError(f"Email already exists: {identity.email}")

    def _identity_to_element(self, identity: Identity, user_id: int) -> ET.Element:
        element = ET.Element(USER_TAG)
        element.set("id", str(user_id))
        self._write_attributes(element, identity)
        return element

    @staticmethod
    def _write_attributes(element: ET.Element, identity: Identity) -> None:
        element.set("username", identity.username)
        element.set("email", identity.email or "")
        element.set("password", identity.password_hash)
        element.set("roles", join_roles(identity.roles))
