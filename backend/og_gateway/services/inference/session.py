"""
Marketplace Session Adapter

Wraps a broker with the gateway's call contract: idempotent provider
acknowledgement and a uniform mapping of broker failures onto the
gateway's error taxonomy.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional

import aiohttp

from .broker.base import BaseMarketplaceBroker
from .exceptions import (
    GatewayError,
    ProviderAlreadyAcknowledged,
    ServiceUnavailable,
    SigningFailed,
    SetupFailure,
    VerificationUnavailable,
)
from .models import ProviderSession, ServiceMetadata, SignedRequestHeaders

logger = logging.getLogger(__name__)

# Transport-level failures a broker call can surface
BROKER_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


class MarketplaceSession:
    """Process-wide acknowledgement state plus broker error mapping"""

    def __init__(self, broker: BaseMarketplaceBroker):
        self.broker = broker
        self._sessions: Dict[str, ProviderSession] = {}
        self._lock = asyncio.Lock()

    def get_session(self, provider_address: str) -> Optional[ProviderSession]:
        return self._sessions.get(provider_address.lower())

    def is_acknowledged(self, provider_address: str) -> bool:
        session = self.get_session(provider_address)
        return bool(session and session.acknowledged)

    async def acknowledge_provider(self, provider_address: str) -> ProviderSession:
        """
        Acknowledge a provider at most once per process.

        An "already acknowledged" answer from the broker counts as success.
        Any other failure raises ServiceUnavailable and leaves the provider
        unacknowledged so the next request tries again.
        """
        key = provider_address.lower()

        existing = self._sessions.get(key)
        if existing and existing.acknowledged:
            return existing

        async with self._lock:
            existing = self._sessions.get(key)
            if existing and existing.acknowledged:
                return existing

            already = False
            try:
                await self.broker.acknowledge_provider_signer(provider_address)
            except ProviderAlreadyAcknowledged:
                logger.info("Provider already acknowledged")
                already = True
            except (GatewayError, *BROKER_TRANSPORT_ERRORS) as e:
                logger.warning(f"Provider acknowledgement failed for {provider_address}: {e}")
                raise ServiceUnavailable(
                    f"Provider acknowledgement failed: {e}",
                    provider=provider_address,
                    error_code="ACKNOWLEDGE_FAILED",
                ) from e

            session = ProviderSession(
                provider_address=provider_address,
                acknowledged=True,
                acknowledged_at=datetime.utcnow(),
                already_acknowledged=already,
            )
            self._sessions[key] = session
            return session

    async def resolve_service(self, provider_address: str) -> ServiceMetadata:
        try:
            return await self.broker.get_service_metadata(provider_address)
        except ServiceUnavailable:
            raise
        except (GatewayError, *BROKER_TRANSPORT_ERRORS) as e:
            raise ServiceUnavailable(
                f"Provider service unavailable: {e}",
                provider=provider_address,
            ) from e

    async def sign_headers(
        self, provider_address: str, prompt: str
    ) -> SignedRequestHeaders:
        try:
            return await self.broker.get_request_headers(provider_address, prompt)
        except SigningFailed:
            raise
        except (GatewayError, *BROKER_TRANSPORT_ERRORS) as e:
            raise SigningFailed(
                f"Request signing failed: {e}", provider=provider_address
            ) from e

    async def verify_response(
        self, provider_address: str, response_id: str, raw_text: str
    ) -> bool:
        """
        Returns False when the provider's signature does not match.

        Raises:
            VerificationUnavailable: broker unreachable, answered with an error
                or answered with something that could not be read
        """
        try:
            return bool(
                await self.broker.process_response(provider_address, response_id, raw_text)
            )
        except SetupFailure:
            raise
        except Exception as e:
            raise VerificationUnavailable(
                f"Response verification unavailable: {e}", provider=provider_address
            ) from e

    async def close(self):
        await self.broker.close()
