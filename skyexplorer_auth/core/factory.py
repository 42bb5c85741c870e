"""
Component wiring.

Builds the identity object graph from an AuthConfig: the active
provider, the relational mirror (XML mode), the synchronizer and its
login listener, token services and the AuthService.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from skyexplorer_auth.auth.providers.base import UserProvider
from skyexplorer_auth.auth.providers.sql import PeeweeUserProvider
from skyexplorer_auth.auth.providers.sync import (
    AuthenticationSuccessListener,
    XmlToDbUserSynchronizer,
)
from skyexplorer_auth.auth.remember_me import RememberMeTokenStore
from skyexplorer_auth.auth.security import PasswordEncoder
from skyexplorer_auth.auth.service import AuthService
from skyexplorer_auth.auth.tokens import JwtTokenService
from skyexplorer_auth.core.registry import get_provider
from skyexplorer_auth.utils.config import AuthConfig

logger = logging.getLogger(__name__)


@dataclass
class AuthComponents:
    config: AuthConfig
    provider: UserProvider
    db_provider: UserProvider
    synchronizer: XmlToDbUserSynchronizer
    password_encoder: PasswordEncoder
    tokens: JwtTokenService
    remember_me: RememberMeTokenStore
    service: AuthService


def build_components(cfg: Optional[AuthConfig] = None) -> AuthComponents:
    """
    Wires every identity component from configuration.

    Args:
        cfg: Configuration (defaults to the global config)
    """
    if cfg is None:
        from skyexplorer_auth.utils.config import config as cfg

    settings = cfg.as_dict()
    provider = get_provider(cfg.AUTH_PROVIDER, settings)

    if cfg.is_xml_provider:
        # Relational mirror keeps foreign keys valid for XML identities
        db_provider = PeeweeUserProvider(settings)
        synchronizer = XmlToDbUserSynchronizer(db_provider, provider, enabled=True)
    else:
        db_provider = provider
        synchronizer = XmlToDbUserSynchronizer(db_provider, None, enabled=False)

    password_encoder = PasswordEncoder(rounds=cfg.BCRYPT_ROUNDS)
    service = AuthService(provider, password_encoder, synchronizer=synchronizer)

    if synchronizer.enabled:
        service.add_listener(AuthenticationSuccessListener(synchronizer))

    logger.info(
        f"Identity components ready (provider={provider.get_name()}, "
        f"sync={'on' if synchronizer.enabled else 'off'})"
    )

    return AuthComponents(
        config=cfg,
        provider=provider,
        db_provider=db_provider,
        synchronizer=synchronizer,
        password_encoder=password_encoder,
        tokens=JwtTokenService.from_config(cfg),
        remember_me=RememberMeTokenStore(provider, lifetime_seconds=cfg.REMEMBER_ME_MAX_AGE),
        service=service,
    )
