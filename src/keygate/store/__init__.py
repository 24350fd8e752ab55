"""Credential and settings persistence."""

from keygate.store.db import create_db
from keygate.store.models import ApiKey, Base, Setting
from keygate.store.repository import CredentialStore
from keygate.store.settings import SettingsStore

__all__ = [
    "ApiKey",
    "Base",
    "CredentialStore",
    "Setting",
    "SettingsStore",
    "create_db",
]
