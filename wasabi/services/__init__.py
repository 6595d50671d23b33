"""Service layer for business logic."""

from wasabi.services.auth_service import AuthorizationGate
from wasabi.services.file_store import FileStore
from wasabi.services.intro_service import IntroService

__all__ = [
    "AuthorizationGate",
    "FileStore",
    "IntroService",
]
