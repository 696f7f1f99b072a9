"""
Password hashing utilities using bcrypt.
"""

import bcrypt

# 12 rounds is the bcrypt default work factor
BCRYPT_ROUNDS = 12
# bcrypt ignores everything past 72 bytes
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Password hashing service."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._encode(password), salt).decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        A malformed stored hash counts as a mismatch.
        """
        try:
            return bcrypt.checkpw(self._encode(plain_password), hashed_password.encode("utf-8"))
        except ValueError:
            return False


_default_hasher = PasswordHasher()


# Convenience functions
def hash_password(password: str) -> str:
    """Hash a password."""
    return _default_hasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password."""
    return _default_hasher.verify(plain_password, hashed_password)
