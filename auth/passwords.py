"""
auth/passwords.py -- bcrypt password hashing and verification.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

bcrypt only looks at the first 72 bytes of its input and refuses NUL bytes.
Every password is pre-hashed to a 44-char SHA-256 base64 string before bcrypt
sees it, so any length or charset is accepted and every byte counts. The
transform runs on every password, never only on long ones, so the pre-hash of
a password never verifies as that password.

verify() returns False on mismatch -- that is an expected outcome, not an
error. A stored digest bcrypt cannot parse is a HashingError: it means the
users table holds something that was never produced by hash().
"""

from __future__ import annotations

import base64
import hashlib

import bcrypt

from auth.errors import HashingError


def _prepare(plain: str) -> bytes:
    return base64.b64encode(hashlib.sha256(plain.encode("utf-8")).digest())


class PasswordHasher:
    """One-way hash + verify for stored credentials.

    rounds is bcrypt's log2 cost factor. The default of 10 keeps a single
    verify in the tens of milliseconds; tests pass 4 to stay fast.
    """

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        self._dummy_hash = self.hash("chirpy_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt digest of the plaintext password."""
        try:
            return bcrypt.hashpw(_prepare(plain), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")
        except (ValueError, TypeError) as exc:
            raise HashingError(f"bcrypt hash failed: {exc}") from exc

    def verify(self, hashed: str, plain: str) -> bool:
        """Return True if the plaintext matches the digest, False on mismatch.

        bcrypt.checkpw compares in constant time, so the response time does not
        depend on how much of the candidate matches.
        """
        try:
            return bcrypt.checkpw(_prepare(plain), hashed.encode("utf-8"))
        except (ValueError, TypeError) as exc:
            raise HashingError(f"stored digest rejected by bcrypt: {exc}") from exc

    def verify_dummy(self, plain: str) -> None:
        """Burn one bcrypt verification against a throwaway digest.

        Called when the account does not exist so the unknown-email path costs
        the same as the wrong-password path. The dummy is built in __init__ with
        the same cost factor as real hashes.
        """
        self.verify(self._dummy_hash, plain)
