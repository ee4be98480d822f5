"""
Adapters layer - External integrations (backend table API).
"""

from .mock_client import MockAvailabilityClient
from .rest_client import AvailabilityClient, rule_to_row

__all__ = ["AvailabilityClient", "MockAvailabilityClient", "rule_to_row"]
