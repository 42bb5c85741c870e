"""
Bearer Token Service

Issues and verifies signed, time-limited JWTs (PyJWT, HMAC).

Claims:
- sub:  username
- auth: comma-joined authorities (ROLE_ADMIN,ROLE_USER)
- iat / exp: epoch seconds

Tokens are stateless: there is no server-side revocation list, a token
dies when its exp passes or its signature stops verifying.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Mapping, Optional

import jwt

from skyexplorer_auth.auth.models import Principal, parse_roles, to_authority

logger = logging.getLogger(__name__)

AUTHORITIES_CLAIM = "auth"
DEFAULT_EXPIRATION_SECONDS = 24 * 60 * 60


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JwtTokenService:
    """
    JWT issuer / validator.

    Args:
        secret: HMAC signing key (>= 32 bytes)
        algorithm: HS256, HS384 or HS512
        expiration_seconds: Token lifetime (default 24h)
        header: Request header carrying the token
        prefix: Scheme prefix stripped from the header value
        clock: Returns the current aware UTC datetime (injectable for tests)
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS512",
        expiration_seconds: int = DEFAULT_EXPIRATION_SECONDS,
        header: str = "Authorization",
        prefix: str = "Bearer ",
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.expiration = timedelta(seconds=expiration_seconds)
        self.header = header
        self.prefix = prefix
        self.clock = clock

    @classmethod
    def from_config(cls, cfg) -> "JwtTokenService":
        return cls(
            secret=cfg.JWT_SECRET,
            algorithm=cfg.JWT_ALGORITHM,
            expiration_seconds=cfg.JWT_EXPIRATION_SECONDS,
            header=cfg.JWT_HEADER,
            prefix=cfg.JWT_PREFIX,
        )

    # ========================================
    # Issue
    # ========================================

    def issue(self, username: str, roles: Iterable[str]) -> str:
        """
        Creates a signed token for a user.

        Args:
            username: Subject
            roles: Role labels (USER) or authorities (ROLE_USER)

        Returns:
            str: Compact JWS (header.payload.signature)
        """
        now = self.clock()
        authorities = ",".join(sorted({to_authority(r) for r in roles if r.strip()}))

        payload = {
            "sub": username,
            AUTHORITIES_CLAIM: authorities,
            "iat": now,
            "exp": now + self.expiration,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    # ========================================
    # Verify
    # ========================================

    def validate(self, token: Optional[str]) -> bool:
        """
        Full signature, structure and expiry check.

        Never raises: every failure (bad signature, malformed, expired,
        wrong algorithm, empty input) is reported as False.
        """
        if not token:
            return False

        try:
            self._decode(token)
            return True
        except jwt.ExpiredSignatureError:
            logger.info("JWT token is expired")
        except jwt.InvalidSignatureError:
            logger.warning("Invalid JWT signature")
        except jwt.PyJWTError as e:
            logger.warning(f"Invalid JWT token: {e}")
        return False

    def resolve_identity(self, token: str) -> Optional[Principal]:
        """
        Rebuilds the caller's principal from a token.

        Meant for tokens that already passed validate(); returns None if the
        token does not verify after all.

        Returns:
            Principal with the username and ROLE_-prefixed authorities
        """
        try:
            claims = self._decode(token)
        except jwt.PyJWTError as e:
            logger.warning(f"Cannot resolve identity from token: {e}")
            return None

        authorities = frozenset(
            to_authority(a) for a in parse_roles(claims.get(AUTHORITIES_CLAIM, ""))
        )
        return Principal(username=claims["sub"], authorities=authorities)

    def get_username(self, token: str) -> Optional[str]:
        principal = self.resolve_identity(token)
        return principal.username if principal else None

    def extract_from_request(self, headers: Mapping[str, str]) -> Optional[str]:
        """
        Pulls the raw token out of the configured header.

        Args:
            headers: Request headers (Starlette Headers or any mapping)

        Returns:
            Token without its "Bearer " prefix, or None
        """
        value = headers.get(self.header)
        if value and value.startswith(self.prefix):
            return value[len(self.prefix):]
        return None

    def _decode(self, token: str) -> dict:
        return jwt.decode(
            token,
            self.secret,
            algorithms=[self.algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
