"""
Authentication Service

Registration, password verification, role management and "who is
calling" resolution on top of the active UserProvider.
"""

import logging
from typing import Callable, List, Optional, Tuple

from skyexplorer_auth.auth.context import get_current_principal
from skyexplorer_auth.auth.errors import AccessDeniedError, IdentityConflictError
from skyexplorer_auth.auth.models import ADMIN_ROLE, DEFAULT_ROLE, Identity, utcnow
from skyexplorer_auth.auth.providers.base import UserProvider
from skyexplorer_auth.auth.providers.sync import XmlToDbUserSynchronizer
from skyexplorer_auth.auth.security import PasswordEncoder, SecurityHardening
from skyexplorer_auth.utils.audit import (
    log_access_control,
    log_login_attempt,
    log_role_changed,
    log_user_created,
    log_user_deleted,
)

logger = logging.getLogger(__name__)

AuthenticationListener = Callable[[str], None]


class AuthService:
    """
    Authentication orchestrator.

    Args:
        provider: Active credential store
        password_encoder: Hashing scheme for stored passwords
        synchronizer: XML -> database mirror (only acts in XML mode)
        listeners: Callables notified with the username after each
            successful authenticate()
    """

    def __init__(
        self,
        provider: UserProvider,
        password_encoder: PasswordEncoder,
        synchronizer: Optional[XmlToDbUserSynchronizer] = None,
        listeners: Optional[List[AuthenticationListener]] = None,
    ):
        self.provider = provider
        self.password_encoder = password_encoder
        self.synchronizer = synchronizer
        self.listeners: List[AuthenticationListener] = list(listeners or [])
        self._dummy_hash: Optional[str] = None

    def add_listener(self, listener: AuthenticationListener) -> None:
        self.listeners.append(listener)

    def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self.password_encoder.encode(
                SecurityHardening.generate_random_password()
            )
        return self._dummy_hash

    # ========================================
    # Registration / Login
    # ========================================

    def register(
        self,
        username: str,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        performed_by: str = "self",
    ) -> Identity:
        """
        Creates a new user with the default USER role.

        The existence checks and the insert share one transaction; the
        relational unique constraints remain the final guard.

        Raises:
            IdentityConflictError: Username or email already taken
        """
        with self.provider.transaction():
            if self.provider.exists_by_username(username):
                raise IdentityConflictError("Username already exists")

            if self.provider.exists_by_email(email):
                raise IdentityConflictError("Email already exists")

            identity = Identity(
                username=username,
                email=email,
                password_hash=self.password_encoder.encode(password),
                first_name=first_name or "",
                last_name=last_name or "",
                roles={DEFAULT_ROLE},
            )
            saved = self.provider.save(identity)

        logger.info(f"Registered user '{username}' via {self.provider.get_name()} provider")
        log_user_created(saved.username, saved.roles, performed_by)

        if self.synchronizer is not None and self.synchronizer.enabled:
            self.synchronizer.synchronize_new_user(saved.username)

        return saved

    def authenticate(
        self, username_or_email: str, password: str, ip_address: Optional[str] = None
    ) -> Optional[Identity]:
        """
        Verifies credentials.

        Looks the login up by username first, then by email. The result
        does not say whether the user or the password was wrong.

        Returns:
            The Identity on success, None otherwise
        """
        identity = self.provider.find_by_username(username_or_email)
        if identity is None:
            identity = self.provider.find_by_email(username_or_email)

        if identity is None:
            # Unknown logins still pay for one hash check
            self.password_encoder.matches(password, self._get_dummy_hash())
            log_login_attempt(username_or_email, False, ip_address, "INVALID_CREDENTIALS")
            return None

        if not self.password_encoder.matches(password, identity.password_hash):
            log_login_attempt(username_or_email, False, ip_address, "INVALID_CREDENTIALS")
            return None

        log_login_attempt(identity.username, True, ip_address)

        for listener in self.listeners:
            listener(identity.username)

        return identity

    # ========================================
    # Current Caller
    # ========================================

    def get_current_identity(self) -> Optional[Identity]:
        principal = get_current_principal()
        if principal is None:
            return None
        return self.provider.find_by_username(principal.username)

    def has_role(self, role: str) -> bool:
        """True if the current principal carries ROLE_<role>."""
        principal = get_current_principal()
        return principal is not None and principal.has_role(role)

    def require_role(self, role: str, action: str = "CALL", resource: str = "") -> None:
        """
        Raises:
            AccessDeniedError: Caller is anonymous or lacks the role
        """
        principal = get_current_principal()
        username = principal.username if principal else "anonymous"

        if principal is None or not principal.has_role(role):
            log_access_control(
                username,
                action,
                resource,
                False,
                roles=principal.roles if principal else None,
                reason=f"{role}_REQUIRED",
            )
            raise AccessDeniedError(role, username)

        log_access_control(username, action, resource, True, roles=principal.roles)

    # ========================================
    # Role Management
    # ========================================

    def add_role(self, identity: Identity, role: str, performed_by: str = "system") -> Identity:
        """Grants a role. Granting a role the user already has changes nothing."""
        if identity.has_role(role):
            return identity

        identity.add_role(role)
        identity.updated_at = utcnow()
        saved = self.provider.save(identity)
        log_role_changed(saved.username, role, True, performed_by)
        return saved

    def remove_role(self, identity: Identity, role: str, performed_by: str = "system") -> Identity:
        """Revokes a role. Revoking a role the user lacks changes nothing."""
        if not identity.has_role(role):
            return identity

        identity.remove_role(role)
        identity.updated_at = utcnow()
        saved = self.provider.save(identity)
        log_role_changed(saved.username, role, False, performed_by)
        return saved

    # ========================================
    # Administration
    # ========================================

    def get_user(self, user_id: int) -> Optional[Identity]:
        return self.provider.find_by_id(user_id)

    def get_user_by_username(self, username: str) -> Optional[Identity]:
        return self.provider.find_by_username(username)

    def list_users(self) -> List[Identity]:
        return self.provider.find_all()

    def delete_user(self, username: str, performed_by: str = "system") -> bool:
        identity = self.provider.find_by_username(username)
        if identity is None:
            return False

        self.provider.delete_by_id(identity.id)
        log_user_deleted(username, performed_by)
        return True

    def ensure_admin(self, username: str, email: str, password: str) -> Tuple[Identity, bool]:
        """
        Creates the admin account, or repairs its roles if it already exists.

        The admin always ends up with both ADMIN and USER. An existing
        admin keeps its password.

        Returns:
            (identity, created)
        """
        existing = self.provider.find_by_username(username)

        if existing is not None:
            missing = {ADMIN_ROLE, DEFAULT_ROLE} - existing.roles
            if missing:
                existing.roles |= missing
                existing.updated_at = utcnow()
                existing = self.provider.save(existing)
                logger.info(f"Admin user '{username}' repaired (added {sorted(missing)})")
            return existing, False

        admin = Identity(
            username=username,
            email=email,
            password_hash=self.password_encoder.encode(password),
            first_name="Admin",
            last_name="User",
            roles={ADMIN_ROLE, DEFAULT_ROLE},
        )
        saved = self.provider.save(admin)
        logger.info(f"Admin user '{username}' created")
        log_user_created(saved.username, saved.roles, "bootstrap")

        if self.synchronizer is not None and self.synchronizer.enabled:
            self.synchronizer.synchronize_new_user(saved.username)

        return saved, True
