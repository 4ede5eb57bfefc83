"""Client-side coordinator that keeps an access credential renewed."""
from .client import RenewalClient
from .config import ClientConfig
from .coordinator import CoordinatorState, RenewalCoordinator
from .exceptions import RenewalClientError
from .expiry import ExpiryStatus
from .store import CredentialPair, FileCredentialStore, MemoryCredentialStore

__all__ = [
    "RenewalClient",
    "ClientConfig",
    "CoordinatorState",
    "CredentialPair",
    "ExpiryStatus",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "RenewalClientError",
    "RenewalCoordinator",
]
