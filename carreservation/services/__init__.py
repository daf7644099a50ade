"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .protocols import AuthProviderProtocol, ReservationRepositoryProtocol
from .reservation_service import ReservationService

__all__ = ["AuthProviderProtocol", "ReservationRepositoryProtocol", "ReservationService"]
