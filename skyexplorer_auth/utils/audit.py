"""
Audit Logging System

Structured JSON logging for security events.
Compatible with Datadog, Splunk, CloudWatch, ELK, etc.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)


class AuditLogger:
    """
    Audit logger that emits structured JSON lines.

    Tracked events:
    - LOGIN_ATTEMPT (success/failure)
    - LOGOUT
    - ACCESS_CONTROL (allowed/denied)
    - USER_CREATED/DELETED
    - ROLE_CHANGED
    - REMEMBER_ME_ISSUED
    - USER_SYNCHRONIZED
    """

    def __init__(self, enabled: bool = True):
        """
        Args:
            enabled: If False, audit logs are silenced
        """
        self.enabled = enabled

    def _emit(self, event: Dict[str, Any]) -> None:
        if not self.enabled:
            return

        if "timestamp" not in event:
            event["timestamp"] = datetime.now(timezone.utc).isoformat()

        # Single-line JSON (parseable)
        logger.info(json.dumps(event, ensure_ascii=False))

    def login_attempt(
        self,
        username: str,
        success: bool,
        ip_address: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        """
        Log login attempt.

        Args:
            username: Username or email used to log in
            success: True if login successful
            ip_address: Client IP (optional)
            reason: Failure reason (optional)
        """
        event: Dict[str, Union[str, bool]] = {
            "event_type": "LOGIN_ATTEMPT",
            "username": username,
            "status": "SUCCESS" if success else "FAILURE",
        }

        if ip_address:
            event["ip"] = ip_address

        if not success and reason:
            event["reason"] = reason

        self._emit(event)

    def logout(self, username: str, ip_address: Optional[str] = None) -> None:
        event: Dict[str, str] = {
            "event_type": "LOGOUT",
            "username": username,
        }

        if ip_address:
            event["ip"] = ip_address

        self._emit(event)

    def access_control(
        self,
        username: str,
        action: str,
        resource: str,
        allowed: bool,
        roles: Optional[Iterable[str]] = None,
        reason: Optional[str] = None,
    ) -> None:
        """
        Log access control decision (RBAC).

        Args:
            username: Username
            action: Attempted action (GET, POST, etc.)
            resource: Accessed resource (/api/admin/users/1/promote, etc.)
            allowed: True if access allowed
            roles: Caller roles (optional)
            reason: Denial reason (optional)
        """
        event: Dict[str, Union[str, bool, List[str]]] = {
            "event_type": "ACCESS_CONTROL",
            "username": username,
            "action": action,
            "resource": resource,
            "status": "ALLOWED" if allowed else "DENIED",
        }

        if roles:
            event["roles"] = sorted(roles)

        if not allowed and reason:
            event["reason"] = reason

        self._emit(event)

    def user_created(self, username: str, roles: Iterable[str], performed_by: str) -> None:
        self._emit(
            {
                "event_type": "USER_CREATED",
                "username": username,
                "roles": sorted(roles),
                "performed_by": performed_by,
            }
        )

    def user_deleted(self, username: str, performed_by: str) -> None:
        self._emit(
            {
                "event_type": "USER_DELETED",
                "username": username,
                "performed_by": performed_by,
            }
        )

    def role_changed(self, username: str, role: str, added: bool, performed_by: str) -> None:
        """
        Log a role grant or revocation.

        Args:
            username: User whose role set changed
            role: Role label
            added: True for a grant, False for a revocation
            performed_by: Who changed it
        """
        self._emit(
            {
                "event_type": "ROLE_CHANGED",
                "username": username,
                "role": role,
                "change": "ADDED" if added else "REMOVED",
                "performed_by": performed_by,
            }
        )

    def remember_me_issued(self, username: str, token_id: str) -> None:
        """
        Log remember-me token issuance.

        Args:
            username: Token owner
            token_id: Truncated token prefix (never the full token)
        """
        self._emit(
            {
                "event_type": "REMEMBER_ME_ISSUED",
                "username": username,
                "token_id": token_id,
            }
        )

    def user_synchronized(self, username: str, action: str) -> None:
        """
        Log an XML -> database identity mirror.

        Args:
            username: Synchronized user
            action: CREATED or UPDATED
        """
        self._emit(
            {
                "event_type": "USER_SYNCHRONIZED",
                "username": username,
                "action": action,
            }
        )


# ========================================
# Global Singleton Instance
# ========================================

_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """
    Returns audit logger singleton.

    Returns:
        Global AuditLogger instance
    """
    global _audit_logger

    if _audit_logger is None:
        from .config import config

        _audit_logger = AuditLogger(enabled=config.AUDIT_LOG_ENABLED)

    return _audit_logger


# ========================================
# Convenience Functions
# ========================================


def log_login_attempt(
    username: str, success: bool, ip: Optional[str] = None, reason: Optional[str] = None
) -> None:
    """Convenience function for login attempt."""
    get_audit_logger().login_attempt(username, success, ip, reason)


def log_logout(username: str, ip: Optional[str] = None) -> None:
    """Convenience function for logout."""
    get_audit_logger().logout(username, ip)


def log_access_control(
    username: str,
    action: str,
    resource: str,
    allowed: bool,
    roles: Optional[Iterable[str]] = None,
    reason: Optional[str] = None,
) -> None:
    """Convenience function for access control."""
    get_audit_logger().access_control(username, action, resource, allowed, roles, reason)


def log_user_created(username: str, roles: Iterable[str], performed_by: str) -> None:
    """Convenience function for user creation."""
    get_audit_logger().user_created(username, roles, performed_by)


def log_user_deleted(username: str, performed_by: str) -> None:
    """Convenience function for user deletion."""
    get_audit_logger().user_deleted(username, performed_by)


def log_role_changed(username: str, role: str, added: bool, performed_by: str) -> None:
    """Convenience function for role grant/revocation."""
    get_audit_logger().role_changed(username, role, added, performed_by)


def log_remember_me_issued(username: str, token_id: str) -> None:
    get_audit_logger().remember_me_issued(username, token_id)


def log_user_synchronized(username: str, action: str) -> None:
    get_audit_logger().user_synchronized(username, action)
