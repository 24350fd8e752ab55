"""API key lifecycle management."""

from keygate.keys.manager import IssuedKey, KeyInfo, KeyManager

__all__ = ["IssuedKey", "KeyInfo", "KeyManager"]
