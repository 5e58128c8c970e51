from .file_credential_store import FileCredentialStore, default_credentials_path
from .memory_credential_store import MemoryCredentialStore

__all__ = [
    "FileCredentialStore",
    "MemoryCredentialStore",
    "default_credentials_path",
]
