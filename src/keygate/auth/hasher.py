"""Secret generation and Argon2id hashing for API keys.

Hashes are PHC strings (``$argon2id$v=19$m=...,t=...,p=...$salt$hash``)
that carry their own salt and cost parameters, so raising the cost later
needs no schema change and old hashes keep verifying.
"""

from __future__ import annotations

import base64
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError

if TYPE_CHECKING:
    from keygate.config.schema import AuthConfig


@dataclass(frozen=True, slots=True)
class GeneratedSecret:
    """Fresh random secret: raw bytes and the text handed to the operator."""

    raw: bytes
    text: str

    def __repr__(self) -> str:
        return "GeneratedSecret(<redacted>)"


class SecretHasher:
    """Generate, hash and verify API key secrets with Argon2id."""

    def __init__(self, config: AuthConfig) -> None:
        self._secret_bytes = config.secret_bytes
        self._ph = PasswordHasher(
            time_cost=config.time_cost,
            memory_cost=config.memory_cost,
            parallelism=config.parallelism,
            hash_len=config.hash_len,
            salt_len=config.salt_len,
            type=Type.ID,
        )
        self._dummy_hash: str | None = None

    def generate_secret(self) -> GeneratedSecret:
        """Return ``secret_bytes`` of CSPRNG output and its base64 text."""
        raw = secrets.token_bytes(self._secret_bytes)
        return GeneratedSecret(raw=raw, text=base64.b64encode(raw).decode("ascii"))

    def hash(self, secret: str) -> str:
        """Salted Argon2id hash of *secret* as a PHC string."""
        return self._ph.hash(secret)

    def verify(self, secret: str, stored_hash: str) -> bool:
        """Check *secret* against *stored_hash*.

        Mismatches and malformed or unsupported hashes all return False.
        """
        try:
            return self._ph.verify(stored_hash, secret)
        except (VerificationError, InvalidHashError, ValueError, TypeError):
            return False

    def needs_rehash(self, stored_hash: str) -> bool:
        """True when *stored_hash* was made with other parameters than ours."""
        try:
            return self._ph.check_needs_rehash(stored_hash)
        except (InvalidHashError, ValueError):
            return True

    @property
    def dummy_hash(self) -> str:
        """Hash of a throwaway secret, verified against when no key exists."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hash(self.generate_secret().text)
        return self._dummy_hash
