"""Secret hashing and request authentication."""

from keygate.auth.gate import Authenticator, Credentials, Identity, parse_basic_auth
from keygate.auth.hasher import GeneratedSecret, SecretHasher

__all__ = [
    "Authenticator",
    "Credentials",
    "GeneratedSecret",
    "Identity",
    "SecretHasher",
    "parse_basic_auth",
]
