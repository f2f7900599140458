"""Local persistence: paths, settings and the credential store."""

from healthapp.storage.config import AppSettings
from healthapp.storage.credentials import (
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
)

__all__ = ["AppSettings", "CredentialStore", "FileCredentialStore", "MemoryCredentialStore"]
