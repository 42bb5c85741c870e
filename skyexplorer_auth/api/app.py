"""
Starlette application factory.
"""

import logging
from typing import Optional

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.routing import Mount

from skyexplorer_auth.api.routes import create_admin_routes, create_auth_routes
from skyexplorer_auth.core.factory import AuthComponents, build_components
from skyexplorer_auth.core.middleware import AuthenticationMiddleware

logger = logging.getLogger(__name__)


def create_app(components: Optional[AuthComponents] = None) -> Starlette:
    """
    Builds the HTTP application.

    Args:
        components: Pre-wired components (built from the global config if omitted)

    Returns:
        Starlette app serving /api/auth and /api/admin
    """
    if components is None:
        components = build_components()

    app = Starlette(
        routes=[
            Mount("/api/auth", app=create_auth_routes()),
            Mount("/api/admin", app=create_admin_routes()),
        ],
        middleware=[
            Middleware(
                AuthenticationMiddleware,
                tokens=components.tokens,
                remember_me=components.remember_me,
                cookie_name=components.config.REMEMBER_ME_COOKIE_NAME,
            )
        ],
    )
    app.state.auth = components

    logger.info("SkyExplorer auth API ready")
    return app
