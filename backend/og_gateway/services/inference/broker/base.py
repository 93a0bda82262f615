"""
Base Marketplace Broker Interface

Abstract call contract the gateway needs from the inference marketplace.
"""

from abc import ABC, abstractmethod

from ..models import ServiceMetadata, SignedRequestHeaders


class BaseMarketplaceBroker(ABC):
    """
    Abstract base class for marketplace brokers.

    A broker acts on behalf of one signing identity: it acknowledges providers,
    discovers their serving endpoint, signs outgoing prompts and verifies
    returned completions.
    """

    @abstractmethod
    async def acknowledge_provider_signer(self, provider_address: str) -> None:
        """
        Record that this identity trusts the provider's signer.

        Raises ProviderAlreadyAcknowledged when the handshake already happened.
        """
        pass

    @abstractmethod
    async def get_service_metadata(self, provider_address: str) -> ServiceMetadata:
        """Resolve the OpenAI-compatible endpoint and model for a provider"""
        pass

    @abstractmethod
    async def get_request_headers(
        self, provider_address: str, content: str
    ) -> SignedRequestHeaders:
        """Sign ``content`` into single-use request headers for the provider"""
        pass

    @abstractmethod
    async def process_response(
        self, provider_address: str, chat_id: str, content: str
    ) -> bool:
        """
        Verify that ``content`` was produced and signed by the provider.

        Returns False on a signature mismatch; raises on transport errors.
        """
        pass

    async def close(self) -> None:
        """Release any transport resources"""
        return None
