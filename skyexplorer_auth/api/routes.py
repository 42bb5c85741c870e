"""
Authentication and Admin Routes

JSON endpoints for registration, login (JWT + remember-me cookie),
logout, current user and admin role management.

Components (service, token services, config) are read from
request.app.state.auth, set by create_app().
"""

import json
import logging
from typing import Any, Dict, Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route, Router

from skyexplorer_auth.auth.errors import (
    AccessDeniedError,
    IdentityConflictError,
    SyncConflictError,
)
from skyexplorer_auth.auth.models import ADMIN_ROLE, DEFAULT_ROLE
from skyexplorer_auth.auth.security import SecurityHardening
from skyexplorer_auth.utils.audit import log_logout

logger = logging.getLogger(__name__)


def _get_client_ip(request: Request) -> str:
    """Real client IP behind a reverse proxy (X-Forwarded-For)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


# ========================================
# /api/auth
# ========================================


async def register(request: Request) -> Response:
    """POST /api/auth/register"""
    auth = request.app.state.auth
    data = await _json_body(request)

    username = str(data.get("username") or "").strip()
    email = str(data.get("email") or "").strip()
    password = str(data.get("password") or "")

    if not username or not email or not password:
        return _error("username, email and password are required", 400)

    if SecurityHardening.sanitize_username(username) != username:
        return _error("Username contains invalid characters", 400)

    try:
        identity = auth.service.register(
            username,
            email,
            password,
            first_name=str(data.get("firstName") or ""),
            last_name=str(data.get("lastName") or ""),
        )
    except SyncConflictError:
        # The account exists in the XML store; only the database mirror failed
        return _error(
            f"Account '{username}' was created but could not be mirrored to the database", 409
        )
    except IdentityConflictError as e:
        return _error(str(e), 400)

    return JSONResponse({"message": "User registered successfully", "username": identity.username})


async def login(request: Request) -> Response:
    """POST /api/auth/login"""
    auth = request.app.state.auth
    cfg = auth.config
    data = await _json_body(request)

    login_name = SecurityHardening.sanitize_username(str(data.get("username") or "").strip())
    password = str(data.get("password") or "")
    remember = bool(data.get("rememberMe"))

    try:
        identity = auth.service.authenticate(login_name, password, _get_client_ip(request))
    except SyncConflictError:
        return _error(f"Account '{login_name}' could not be mirrored to the database", 409)

    if identity is None:
        return _error("Invalid username or password", 401)

    roles = identity.roles or {DEFAULT_ROLE}
    token = auth.tokens.issue(identity.username, roles)

    response = JSONResponse(
        {
            "token": token,
            "type": cfg.JWT_PREFIX.strip(),
            "username": identity.username,
            "roles": sorted(roles),
        }
    )

    if remember:
        response.set_cookie(
            key=cfg.REMEMBER_ME_COOKIE_NAME,
            value=auth.remember_me.issue(identity),
            max_age=cfg.REMEMBER_ME_MAX_AGE,
            path="/",
            httponly=cfg.REMEMBER_ME_COOKIE_HTTPONLY,
            secure=cfg.REMEMBER_ME_COOKIE_SECURE,
            samesite="lax",
        )

    return response


async def logout(request: Request) -> Response:
    """POST /api/auth/logout - Revokes the remember-me token and clears the cookie."""
    auth = request.app.state.auth
    cfg = auth.config

    auth.remember_me.revoke(request.cookies.get(cfg.REMEMBER_ME_COOKIE_NAME))

    principal = request.state.principal
    log_logout(principal.username if principal else "anonymous", _get_client_ip(request))

    response = JSONResponse({"message": "Logged out successfully"})
    response.delete_cookie(
        key=cfg.REMEMBER_ME_COOKIE_NAME,
        path="/",
        httponly=cfg.REMEMBER_ME_COOKIE_HTTPONLY,
        secure=cfg.REMEMBER_ME_COOKIE_SECURE,
        samesite="lax",
    )
    return response


async def me(request: Request) -> Response:
    """GET /api/auth/me"""
    if request.state.principal is None:
        return _error("Not authenticated", 401)

    identity = request.app.state.auth.service.get_current_identity()
    if identity is None:
        return _error("Not authenticated", 401)

    return JSONResponse(identity.to_dict())


async def has_role(request: Request) -> Response:
    """GET /api/auth/has-role/{role}"""
    role = request.path_params["role"]
    return JSONResponse({"hasRole": request.app.state.auth.service.has_role(role)})


# ========================================
# /api/admin (ADMIN only)
# ========================================


def _require_admin(request: Request) -> Optional[Response]:
    """Returns an error response when the caller is not an admin, else None."""
    principal = request.state.principal
    if principal is None:
        return _error("Not authenticated", 401)

    try:
        request.app.state.auth.service.require_role(ADMIN_ROLE, request.method, request.url.path)
    except AccessDeniedError:
        return _error("Access denied", 403)

    return None


async def list_users(request: Request) -> Response:
    """GET /api/admin/users"""
    denied = _require_admin(request)
    if denied:
        return denied

    users = request.app.state.auth.service.list_users()
    return JSONResponse([u.to_dict() for u in users])


async def _change_role(request: Request, role: str, grant: bool) -> Response:
    denied = _require_admin(request)
    if denied:
        return denied

    service = request.app.state.auth.service
    user = service.get_user(request.path_params["user_id"])
    if user is None:
        return _error("User not found", 404)

    if grant and user.has_role(role):
        return JSONResponse({"message": f"User already has role {role}", "user": user.to_dict()})
    if not grant and not user.has_role(role):
        return JSONResponse({"message": f"User does not have role {role}", "user": user.to_dict()})

    performed_by = request.state.principal.username
    if grant:
        user = service.add_role(user, role, performed_by=performed_by)
        message = f"Role {role} granted to {user.username}"
    else:
        user = service.remove_role(user, role, performed_by=performed_by)
        message = f"Role {role} removed from {user.username}"

    return JSONResponse({"message": message, "user": user.to_dict()})


async def promote(request: Request) -> Response:
    """POST /api/admin/users/{user_id}/promote"""
    return await _change_role(request, ADMIN_ROLE, grant=True)


async def demote(request: Request) -> Response:
    """POST /api/admin/users/{user_id}/demote"""
    return await _change_role(request, ADMIN_ROLE, grant=False)


async def add_role(request: Request) -> Response:
    """POST /api/admin/users/{user_id}/roles/{role}"""
    return await _change_role(request, request.path_params["role"].upper(), grant=True)


async def remove_role(request: Request) -> Response:
    """DELETE /api/admin/users/{user_id}/roles/{role}"""
    return await _change_role(request, request.path_params["role"].upper(), grant=False)


def create_auth_routes() -> Router:
    """Router for /api/auth."""
    return Router(
        routes=[
            Route("/register", register, methods=["POST"]),
            Route("/login", login, methods=["POST"]),
            Route("/logout", logout, methods=["POST"]),
            Route("/me", me, methods=["GET"]),
            Route("/has-role/{role}", has_role, methods=["GET"]),
        ]
    )


def create_admin_routes() -> Router:
    """Router for /api/admin."""
    return Router(
        routes=[
            Route("/users", list_users, methods=["GET"]),
            Route("/users/{user_id:int}/promote", promote, methods=["POST"]),
            Route("/users/{user_id:int}/demote", demote, methods=["POST"]),
            Route("/users/{user_id:int}/roles/{role}", add_role, methods=["POST"]),
            Route("/users/{user_id:int}/roles/{role}", remove_role, methods=["DELETE"]),
        ]
    )
