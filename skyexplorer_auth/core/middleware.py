"""
Authentication Middleware

Resolves the caller of every request:
1. Bearer token in the configured header (JWT)
2. Remember-me cookie, when the bearer step left the request anonymous

The resulting Principal (or None) is bound to request.state.principal and
to the per-request security context for the duration of the request.
Authorization decisions are left to the endpoints.
"""

import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from skyexplorer_auth.auth.context import reset_principal, set_principal
from skyexplorer_auth.auth.models import Principal
from skyexplorer_auth.auth.remember_me import RememberMeTokenStore
from skyexplorer_auth.auth.tokens import JwtTokenService

logger = logging.getLogger(__name__)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Bearer / remember-me request authentication.

    Args:
        app: ASGI application
        tokens: JWT service used for the Authorization header
        remember_me: Remember-me table used for the cookie
        cookie_name: Remember-me cookie name
    """

    def __init__(
        self,
        app,
        tokens: JwtTokenService,
        remember_me: RememberMeTokenStore,
        cookie_name: str = "remember-me",
    ):
        super().__init__(app)
        self.tokens = tokens
        self.remember_me = remember_me
        self.cookie_name = cookie_name

    async def dispatch(self, request: Request, call_next):
        principal = self._from_bearer(request) or self._from_remember_me(request)

        request.state.principal = principal
        context_token = set_principal(principal)
        try:
            return await call_next(request)
        finally:
            reset_principal(context_token)

    # ========================================
    # AUTHENTICATION
    # ========================================

    def _from_bearer(self, request: Request) -> Optional[Principal]:
        token = self.tokens.extract_from_request(request.headers)
        if not token:
            return None

        if not self.tokens.validate(token):
            logger.debug(f"Rejected bearer token on {request.url.path}")
            return None

        return self.tokens.resolve_identity(token)

    def _from_remember_me(self, request: Request) -> Optional[Principal]:
        cookie = request.cookies.get(self.cookie_name)
        if not cookie:
            return None

        identity = self.remember_me.validate(cookie)
        if identity is None:
            return None

        logger.debug(f"Authenticated '{identity.username}' from remember-me cookie")
        return Principal.for_identity(identity)
