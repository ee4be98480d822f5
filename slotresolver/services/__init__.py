"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_slots import AvailabilityRepositoryProtocol, BookableSlotService

__all__ = ["AvailabilityRepositoryProtocol", "BookableSlotService"]
