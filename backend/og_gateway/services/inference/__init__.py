"""
Verified Inference Gateway

Client for a decentralized inference marketplace: provider handshake,
signed requests, response verification and validated structured output
with local fallbacks.
"""

from .gateway import InferenceGateway
from .models import GatewayResult
from .exceptions import GatewayError, SetupFailure, UpstreamError, InvalidFormat

__all__ = [
    "InferenceGateway",
    "GatewayResult",
    "GatewayError",
    "SetupFailure",
    "UpstreamError",
    "InvalidFormat",
]
