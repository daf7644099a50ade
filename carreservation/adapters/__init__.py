"""
Adapters layer - Storage backends and identity providers.
"""

from .api_client import ApiReservationRepository
from .cached_store import CachedReservationRepository
from .memory_store import InMemoryReservationRepository
from .session_auth import SessionAuthenticator, StaticAuthProvider, TokenAuthProvider
from .yaml_store import YamlReservationRepository

__all__ = [
    "ApiReservationRepository",
    "CachedReservationRepository",
    "InMemoryReservationRepository",
    "SessionAuthenticator",
    "StaticAuthProvider",
    "TokenAuthProvider",
    "YamlReservationRepository",
]
