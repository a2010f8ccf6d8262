"""Password hashing for account credentials.

``BcryptHasher`` is the production hasher. bcrypt is CPU-bound, so both
hashing and verification run on a worker thread via anyio.

``SimpleHasher`` stores ``simple$<sha256 hex>`` and exists so the test suite
does not pay the bcrypt cost on every registration.
"""

from __future__ import annotations

import hashlib
from typing import Protocol, runtime_checkable

import bcrypt
from anyio import to_thread

BCRYPT_MAX_BYTES = 72
DEFAULT_BCRYPT_ROUNDS = 10


@runtime_checkable
class PasswordHasher(Protocol):
    async def hash(self, plain: str) -> str: ...

    async def verify(self, plain: str, hashed: str) -> bool: ...


def _hash_bcrypt(plain: bytes, rounds: int) -> str:
    return bcrypt.hashpw(plain, bcrypt.gensalt(rounds=rounds)).decode("ascii")


def _check_bcrypt(plain: bytes, hashed: bytes) -> bool:
    try:
        return bcrypt.checkpw(plain, hashed)
    except ValueError:
        # Malformed stored hash.
        return False


class BcryptHasher:
    """bcrypt hasher; work runs off the event loop."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._rounds = rounds

    async def hash(self, plain: str) -> str:
        return await to_thread.run_sync(_hash_bcrypt, plain.encode("utf-8"), self._rounds)

    async def verify(self, plain: str, hashed: str) -> bool:
        return await to_thread.run_sync(_check_bcrypt, plain.encode("utf-8"), hashed.encode("utf-8"))


_SIMPLE_PREFIX = "simple$"


def _sha256_hex(plain: str) -> str:
    return hashlib.sha256(plain.encode("utf-8")).hexdigest()


class SimpleHasher:
    """Unsalted SHA-256. Tests only."""

    async def hash(self, plain: str) -> str:
        return f"{_SIMPLE_PREFIX}{_sha256_hex(plain)}"

    async def verify(self, plain: str, hashed: str) -> bool:
        prefix, _, digest = hashed.partition("$")
        if f"{prefix}$" != _SIMPLE_PREFIX:
            return False
        return digest == _sha256_hex(plain)


_HASHERS: dict[str, type[BcryptHasher] | type[SimpleHasher]] = {
    "bcrypt": BcryptHasher,
    "simple": SimpleHasher,
}


def get_hasher(name: str = "bcrypt") -> PasswordHasher:
    """Return a PasswordHasher by name ("bcrypt" or "simple")."""
    try:
        factory = _HASHERS[name]
    except KeyError:
        raise ValueError(f"Unknown password hasher: {name!r}") from None
    return factory()
