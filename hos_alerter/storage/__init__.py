from .base import RevisionConflict, StorageBackend, StorageError
from .factory import get_storage_backend, reset_storage_backend

__all__ = [
    "StorageBackend",
    "StorageError",
    "RevisionConflict",
    "get_storage_backend",
    "reset_storage_backend",
]
