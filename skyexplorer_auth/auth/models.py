"""
Identity model shared by every user provider.

Includes the Identity dataclass (one user account), the Principal
(the authenticated caller bound to a request) and the ROLE_ authority
convention used by the authorization layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, Optional, Set

# Authorities are role labels carrying this prefix (ROLE_USER, ROLE_ADMIN).
AUTHORITY_PREFIX = "ROLE_"

DEFAULT_ROLE = "USER"
ADMIN_ROLE = "ADMIN"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored by every provider."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_authority(role: str) -> str:
    """USER -> ROLE_USER (already-prefixed values pass through)."""
    role = role.strip()
    if role.startswith(AUTHORITY_PREFIX):
        return role
    return f"{AUTHORITY_PREFIX}{role}"


def to_role(authority: str) -> str:
    """ROLE_USER -> USER."""
    authority = authority.strip()
    if authority.startswith(AUTHORITY_PREFIX):
        return authority[len(AUTHORITY_PREFIX):]
    return authority


def parse_roles(raw: Optional[str], delimiter: str = ",") -> Set[str]:
    """Split a delimited role string, trimming and dropping empty segments."""
    if not raw:
        return set()
    return {part.strip() for part in raw.split(delimiter) if part.strip()}


def join_roles(roles: Iterable[str], delimiter: str = ",") -> str:
    # Sorted so the persisted form is stable across rewrites
    return delimiter.join(sorted(roles))


# ========================================
# IDENTITY (Universal Representation)
# ========================================


@dataclass
class Identity:
    """
    Universal user representation (provider-agnostic).

    Both the relational and the XML provider read and write this format.

    Attributes:
        username: Unique, case-sensitive login name
        email: Unique email address
        password_hash: Opaque bcrypt hash (never plaintext)
        id: Numeric id; None (or 0) means "not persisted yet"
        first_name / last_name: Display name parts
        roles: Set of role labels (USER, ADMIN, ...)
        created_at / updated_at: Naive UTC timestamps
    """

    username: str
    email: str
    password_hash: str
    id: Optional[int] = None
    first_name: str = ""
    last_name: str = ""
    roles: Set[str] = field(default_factory=set)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_new(self) -> bool:
        return not self.id

    def add_role(self, role: str) -> None:
        self.roles.add(role)

    def remove_role(self, role: str) -> None:
        self.roles.discard(role)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @property
    def authorities(self) -> FrozenSet[str]:
        return frozenset(to_authority(r) for r in self.roles)

    @property
    def display_name(self) -> str:
        """Friendly name for UI (fallback to username)."""
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.username

    def to_dict(self) -> Dict[str, Any]:
        """
        Public profile (password hash is never included).

        Returns:
            Dict with id, username, email, names and sorted roles
        """
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "roles": sorted(self.roles),
        }


# ========================================
# PRINCIPAL (Authenticated Caller)
# ========================================


@dataclass(frozen=True)
class Principal:
    """
    The authenticated caller of the current request.

    Built from a bearer token or a remember-me cookie; carries the
    username and its ROLE_-prefixed authorities.
    """

    username: str
    authorities: FrozenSet[str] = frozenset()

    @property
    def roles(self) -> FrozenSet[str]:
        return frozenset(to_role(a) for a in self.authorities)

    def has_authority(self, authority: str) -> bool:
        return authority in self.authorities

    def has_role(self, role: str) -> bool:
        return self.has_authority(to_authority(role))

    @classmethod
    def for_identity(cls, identity: Identity) -> "Principal":
        # An identity without roles is still a regular user
        authorities = identity.authorities or frozenset({to_authority(DEFAULT_ROLE)})
        return cls(username=identity.username, authorities=authorities)
