"""
Marketplace broker implementations
"""

from .base import BaseMarketplaceBroker
from .client import BrokerServiceClient

__all__ = ["BaseMarketplaceBroker", "BrokerServiceClient"]
