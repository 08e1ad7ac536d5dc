"""
Password hashing - bcrypt with timing equalization.

Both store adapters hash and verify through ``PasswordHasher`` so the
account store boundary is the only place plaintext passwords exist.

bcrypt only uses the first 72 bytes of its input, and current bcrypt
releases reject longer input outright. Passwords are therefore truncated to
72 UTF-8 bytes explicitly, identically for hashing and checking. The
credential policy counts characters (up to 128), so a password made of
multi-byte characters can have a tail past byte 72 that is never compared.

The dummy hash lets ``verify`` always run one bcrypt comparison, even for an
unknown email, so response time does not reveal whether an account exists.
"""

import bcrypt

BCRYPT_MAX_BYTES = 72
DEFAULT_BCRYPT_COST = 10


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """bcrypt hasher with a pre-computed dummy hash of the same cost."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_COST) -> None:
        self.rounds = rounds
        self._dummy_hash = self.hash("authgate_timing_dummy")

    def hash(self, password: str) -> str:
        """Return a salted bcrypt hash of ``password``."""
        return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=self.rounds)).decode()

    def check(self, password: str, password_hash: str | None) -> bool:
        """
        Compare ``password`` against ``password_hash`` in constant time.

        A missing hash is compared against the dummy hash and always fails.
        """
        stored = password_hash if password_hash is not None else self._dummy_hash
        try:
            matches = bcrypt.checkpw(_encode(password), stored.encode())
        except ValueError:
            return False
        return matches and password_hash is not None
