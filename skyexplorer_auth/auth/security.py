"""
Security Hardening Module

Password hashing (bcrypt) and input hygiene helpers.
"""

import logging
import re
import secrets
import string

import bcrypt

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of the secret
BCRYPT_MAX_BYTES = 72

DEFAULT_BCRYPT_ROUNDS = 10


class PasswordEncoder:
    """
    BCrypt password encoder.

    Hashes are standard modular-crypt strings ($2b$10$...), so hashes
    produced by other bcrypt implementations ($2a$, $2y$) verify as well.
    """

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self.rounds = rounds

    @staticmethod
    def _secret(raw_password: str) -> bytes:
        return raw_password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def encode(self, raw_password: str) -> str:
        """
        Hash a plain-text password for storage.

        Args:
            raw_password: Plain text password

        Returns:
            str: bcrypt hash
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._secret(raw_password), salt).decode("utf-8")

    def matches(self, raw_password: str, encoded_password: str) -> bool:
        """
        Verify a plain password against a stored hash.

        Unknown or corrupt hash formats verify as False instead of raising.
        """
        if raw_password is None or not encoded_password:
            return False

        try:
            return bcrypt.checkpw(self._secret(raw_password), encoded_password.encode("utf-8"))
        except (ValueError, TypeError):
            logger.error(f"Unknown password hash format: {encoded_password[:7]}...")
            return False


class SecurityHardening:
    """
    Class with static methods for security hardening.
    """

    @staticmethod
    def sanitize_username(username: str) -> str:
        """
        Sanitizes a login name to prevent injection attacks.

        Keeps letters, numbers, underscore, hyphen, dot, plus and @ so that
        email addresses remain valid login names.

        Args:
            username: Raw username or email

        Returns:
            str: Sanitized value
        """
        sanitized = re.sub(r"[^a-zA-Z0-9_\-\.@+]", "", username)

        # Limit length
        sanitized = sanitized[:100]

        if sanitized != username:
            logger.warning(f"Username sanitized: '{username}' -> '{sanitized}'")

        return sanitized

    @staticmethod
    def generate_random_password(length: int = 16) -> str:
        """
        Generates secure random password.

        Used for first-run admin bootstrap when no password is configured.

        Args:
            length: Password length

        Returns:
            str: Random password
        """
        alphabet = string.ascii_letters + string.digits + string.punctuation
        # Ensure at least one of each type
        password = [
            secrets.choice(string.ascii_lowercase),
            secrets.choice(string.ascii_uppercase),
            secrets.choice(string.digits),
            secrets.choice(string.punctuation),
        ]
        password += [secrets.choice(alphabet) for _ in range(length - 4)]
        secrets.SystemRandom().shuffle(password)
        return "".join(password)
