"""
Configuration management for the SkyExplorer identity layer.
Selects the active user provider and carries JWT / remember-me settings.
"""

import os
import secrets
from typing import Mapping, Optional

ENV_PREFIX = "SKYEXPLORER_AUTH_"

VALID_PROVIDERS = ("database", "xml")
VALID_JWT_ALGORITHMS = ("HS256", "HS384", "HS512")

# 256-bit minimum for HMAC signing keys
MIN_SECRET_BYTES = 32


class AuthConfig:
    """Centralized configuration for the authentication system."""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        self._env = os.environ if env is None else env

        # Environment metadata for Audit Logging
        self.ENV = self._get("ENV", "production")

        # Credential store selection ("database" or "xml")
        self.AUTH_PROVIDER = self._get("PROVIDER", "database").lower()
        self.XML_FILE = self._get("XML_FILE", "./data/users.xml")
        self.DATABASE_URL = self._get("DATABASE_URL", "sqlite:///skyexplorer_auth.db")

        # Bearer token settings
        self.JWT_SECRET = self._get("JWT_SECRET") or self._generate_secret_key()
        self.JWT_ALGORITHM = self._get("JWT_ALGORITHM", "HS512").upper()
        self.JWT_EXPIRATION_SECONDS = int(self._get("JWT_EXPIRATION", "86400"))  # 24h
        self.JWT_HEADER = self._get("JWT_HEADER", "Authorization")
        self.JWT_PREFIX = self._get("JWT_PREFIX", "Bearer ")

        # Remember-me cookie
        self.REMEMBER_ME_COOKIE_NAME = self._get("REMEMBER_ME_COOKIE", "remember-me")
        self.REMEMBER_ME_MAX_AGE = int(self._get("REMEMBER_ME_MAX_AGE", str(14 * 24 * 60 * 60)))
        self.REMEMBER_ME_COOKIE_SECURE = self._get("COOKIE_SECURE", "false").lower() == "true"
        self.REMEMBER_ME_COOKIE_HTTPONLY = True  # Always True for security

        # Password hashing cost
        self.BCRYPT_ROUNDS = int(self._get("BCRYPT_ROUNDS", "10"))

        # Admin Bootstrap
        self.ADMIN_USERNAME = self._get("ADMIN_USERNAME", "admin")
        self.ADMIN_EMAIL = self._get("ADMIN_EMAIL", "admin@localhost")
        self.ADMIN_PASSWORD = self._get("ADMIN_PASSWORD", "")

        # Logging and Audit
        self.LOG_LEVEL = self._get("LOG_LEVEL", "INFO")
        self.AUDIT_LOG_ENABLED = self._get("AUDIT_LOG", "true").lower() == "true"

        self._validate()

    def _get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._env.get(f"{ENV_PREFIX}{name}", default)

    @staticmethod
    def _generate_secret_key() -> str:
        """Generate a secure random signing key if not provided."""
        key = secrets.token_hex(64)
        print("⚠️  WARNING: Using auto-generated JWT secret. Set SKYEXPLORER_AUTH_JWT_SECRET!")
        print("    Tokens issued by this process will not survive a restart.")
        return key

    def _validate(self):
        if self.AUTH_PROVIDER not in VALID_PROVIDERS:
            raise ValueError(
                f"Invalid AUTH_PROVIDER: {self.AUTH_PROVIDER}. "
                f"Must be one of: {', '.join(VALID_PROVIDERS)}"
            )

        if self.AUTH_PROVIDER == "xml" and not self.XML_FILE:
            raise ValueError("XML_FILE must be set when AUTH_PROVIDER is 'xml'")

        if len(self.JWT_SECRET.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ValueError(f"JWT_SECRET must be at least {MIN_SECRET_BYTES} bytes")

        if self.JWT_ALGORITHM not in VALID_JWT_ALGORITHMS:
            raise ValueError(
                f"Invalid JWT_ALGORITHM: {self.JWT_ALGORITHM}. "
                f"Must be one of: {', '.join(VALID_JWT_ALGORITHMS)}"
            )

        if self.JWT_EXPIRATION_SECONDS < 60:
            raise ValueError("JWT_EXPIRATION_SECONDS must be at least 60 seconds")

        if self.REMEMBER_ME_MAX_AGE < 60:
            raise ValueError("REMEMBER_ME_MAX_AGE must be at least 60 seconds")

        if not 4 <= self.BCRYPT_ROUNDS <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")

    @property
    def is_xml_provider(self) -> bool:
        return self.AUTH_PROVIDER == "xml"

    def as_dict(self) -> dict:
        """Public settings only (no leading underscore attributes)."""
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    def __repr__(self):
        """Safe representation hiding sensitive data."""
        return (
            f"<AuthConfig provider={self.AUTH_PROVIDER} "
            f"env={self.ENV} "
            f"jwt_alg={self.JWT_ALGORITHM} "
            f"audit={'enabled' if self.AUDIT_LOG_ENABLED else 'disabled'}>"
        )


# Global config instance
config = AuthConfig()
