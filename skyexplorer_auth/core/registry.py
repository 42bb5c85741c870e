"""
Provider Registry - Plugin Discovery System

Maps the configured AUTH_PROVIDER name to a UserProvider class.
Built-in providers are always available; third-party packages can add
more through the 'skyexplorer_auth.providers' entry-point group.
"""

import logging
from importlib.metadata import entry_points
from typing import Any, Dict, List, Type

from skyexplorer_auth.auth.providers.base import UserProvider
from skyexplorer_auth.auth.providers.sql import PeeweeUserProvider
from skyexplorer_auth.auth.providers.xml import XmlUserProvider

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "skyexplorer_auth.providers"

BUILTIN_PROVIDERS: Dict[str, Type[UserProvider]] = {
    "database": PeeweeUserProvider,
    "xml": XmlUserProvider,
}


class ProviderRegistry:
    """
    Registry for user providers.

    Entry point format (pyproject.toml):
        [project.entry-points."skyexplorer_auth.providers"]
        ldap = "my_package.providers:LdapUserProvider"
    """

    _providers: Dict[str, Type[UserProvider]] = {}
    _initialized: bool = False

    @classmethod
    def discover_providers(cls) -> None:
        if cls._initialized:
            return

        cls._providers = dict(BUILTIN_PROVIDERS)

        for entry_point in entry_points(group=ENTRY_POINT_GROUP):
            if entry_point.name in cls._providers:
                continue

            try:
                provider_class = entry_point.load()
            except (ImportError, AttributeError) as e:
                logger.error(f"Failed to load provider '{entry_point.name}': {e}")
                continue

            if not (isinstance(provider_class, type) and issubclass(provider_class, UserProvider)):
                logger.warning(
                    f"Provider '{entry_point.name}' is not a subclass of UserProvider, skipping"
                )
                continue

            cls._providers[entry_point.name] = provider_class
            logger.info(f"Registered provider: {entry_point.name}")

        cls._initialized = True
        logger.debug(f"Provider discovery complete. Available: {sorted(cls._providers)}")

    @classmethod
    def register(cls, name: str, provider_class: Type[UserProvider]) -> None:
        """Registers a provider class by hand (tests, embedded setups)."""
        cls.discover_providers()
        cls._providers[name] = provider_class

    @classmethod
    def get_provider(cls, name: str, config: Dict[str, Any]) -> UserProvider:
        """
        Instantiates a provider by name.

        Args:
            name: Provider name (database, xml, ...)
            config: Settings passed to the provider (usually config.as_dict())

        Raises:
            ValueError: If no provider is registered under that name
        """
        cls.discover_providers()

        provider_class = cls._providers.get(name)
        if provider_class is None:
            available = ", ".join(sorted(cls._providers)) or "none"
            raise ValueError(f"Unknown provider: '{name}'. Available providers: {available}.")

        provider = provider_class(config)
        logger.info(f"Initialized provider: {name} ({provider.get_name()})")
        return provider

    @classmethod
    def list_providers(cls) -> List[str]:
        cls.discover_providers()
        return sorted(cls._providers)

    @classmethod
    def reset(cls) -> None:
        """Clears registered providers and forces re-discovery."""
        cls._providers = {}
        cls._initialized = False


# ========================================
# Convenience Functions
# ========================================


def get_provider(name: str, config: Dict[str, Any]) -> UserProvider:
    return ProviderRegistry.get_provider(name, config)


def list_available_providers() -> List[str]:
    return ProviderRegistry.list_providers()
