"""
HTTP Marketplace Broker Client

Talks to a broker service for provider discovery, acknowledgement and
response verification. Request headers are signed locally with the identity
so the signature always covers the exact prompt that is transmitted.
"""

import logging
import secrets
import time
from typing import Any, Dict, Optional

import aiohttp
from web3 import Web3

from .base import BaseMarketplaceBroker
from ..exceptions import BrokerError, ProviderAlreadyAcknowledged, SigningFailed
from ..identity import ProviderIdentity
from ..models import ServiceMetadata, SignedRequestHeaders

logger = logging.getLogger(__name__)

HEADER_ADDRESS = "X-OG-Address"
HEADER_PROVIDER = "X-OG-Provider"
HEADER_NONCE = "X-OG-Nonce"
HEADER_CONTENT_HASH = "X-OG-Content-Hash"
HEADER_TIMESTAMP = "X-OG-Timestamp"
HEADER_SIGNATURE = "X-OG-Signature"


def content_hash(content: str) -> str:
    """keccak256 of the UTF-8 prompt, 0x-hex"""
    return Web3.to_hex(Web3.keccak(text=content))


def signing_message(
    address: str, provider_address: str, nonce: str, timestamp: str, digest: str
) -> str:
    """Canonical text covered by the request signature"""
    return f"{address}:{provider_address}:{nonce}:{timestamp}:{digest}"


class BrokerServiceClient(BaseMarketplaceBroker):
    """Broker implementation backed by an HTTP broker service"""

    def __init__(
        self,
        base_url: str,
        identity: ProviderIdentity,
        timeout_ms: int = 15000,
    ):
        self.base_url = base_url.rstrip("/")
        self.identity = identity
        self.timeout_ms = timeout_ms
        self._session: Optional[aiohttp.ClientSession] = None

        logger.info(f"Broker client initialized with base URL: {self.base_url}")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session"""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=50,
                ttl_dns_cache=300,
                use_dns_cache=True,
            )
            timeout = aiohttp.ClientTimeout(total=self.timeout_ms / 1000.0)

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                headers={"Content-Type": "application/json"},
                trust_env=False,
            )

            logger.debug("Created new HTTP session for broker")

        return self._session

    def _provider_url(self, provider_address: str, action: str) -> str:
        return f"{self.base_url}/v1/inference/providers/{provider_address}/{action}"

    async def _raise_for_status(
        self, response: aiohttp.ClientResponse, provider_address: str, context: str
    ) -> None:
        if 200 <= response.status < 300:
            return

        error_text = await response.text()
        logger.warning(f"Broker {context} failed with HTTP {response.status}: {error_text[:200]}")

        if context == "acknowledge" and response.status == 409:
            raise ProviderAlreadyAcknowledged(
                "Provider already acknowledged",
                status_code=409,
                provider=provider_address,
            )

        raise BrokerError(
            f"Broker {context} failed: HTTP {response.status}",
            status_code=response.status,
            provider=provider_address,
            details={"body": error_text[:500]},
        )

    async def _read_object(
        self, response: aiohttp.ClientResponse, provider_address: str, context: str
    ) -> Dict[str, Any]:
        """Decode a 2xx body that must be a JSON object"""
        try:
            data = await response.json(content_type=None)
        except ValueError as e:
            raise BrokerError(
                f"Broker {context} returned a body that is not JSON",
                status_code=response.status,
                provider=provider_address,
                details={"error": str(e)},
            ) from e

        if not isinstance(data, dict):
            raise BrokerError(
                f"Broker {context} returned {type(data).__name__}, expected an object",
                status_code=response.status,
                provider=provider_address,
            )
        return data

    async def acknowledge_provider_signer(self, provider_address: str) -> None:
        timestamp = str(int(time.time()))
        message = f"acknowledge:{self.identity.address}:{provider_address}:{timestamp}"
        payload = {
            "user": self.identity.address,
            "timestamp": timestamp,
            "signature": self.identity.sign_text(message),
        }

        session = await self._get_session()
        async with session.post(
            self._provider_url(provider_address, "acknowledge"), json=payload
        ) as response:
            await self._raise_for_status(response, provider_address, "acknowledge")

        logger.info(f"Acknowledged provider signer for {provider_address}")

    async def get_service_metadata(self, provider_address: str) -> ServiceMetadata:
        session = await self._get_session()
        async with session.get(self._provider_url(provider_address, "service")) as response:
            await self._raise_for_status(response, provider_address, "service lookup")
            data = await self._read_object(response, provider_address, "service lookup")

        try:
            return ServiceMetadata(
                provider_address=provider_address,
                endpoint=data.get("endpoint") or data.get("url") or "",
                model=data.get("model") or "",
            )
        except ValueError as e:
            raise BrokerError(
                "Broker returned malformed service metadata",
                provider=provider_address,
                details={"error": str(e)},
            ) from e

    async def get_request_headers(
        self, provider_address: str, content: str
    ) -> SignedRequestHeaders:
        nonce = secrets.token_hex(16)
        digest = content_hash(content)
        timestamp = str(int(time.time()))

        try:
            signature = self.identity.sign_text(
                signing_message(
                    self.identity.address, provider_address, nonce, timestamp, digest
                )
            )
        except (ValueError, TypeError) as e:
            raise SigningFailed(
                "Could not sign request headers",
                provider=provider_address,
                details={"error": type(e).__name__},
            ) from e

        return {
            HEADER_ADDRESS: self.identity.address,
            HEADER_PROVIDER: provider_address,
            HEADER_NONCE: nonce,
            HEADER_CONTENT_HASH: digest,
            HEADER_TIMESTAMP: timestamp,
            HEADER_SIGNATURE: signature,
        }

    async def process_response(
        self, provider_address: str, chat_id: str, content: str
    ) -> bool:
        payload = {
            "user": self.identity.address,
            "chat_id": chat_id,
            "content": content,
        }

        session = await self._get_session()
        async with session.post(
            self._provider_url(provider_address, "verify"), json=payload
        ) as response:
            await self._raise_for_status(response, provider_address, "verify")
            data = await self._read_object(response, provider_address, "verify")

        return data.get("valid") is True

    async def close(self):
        """Close the HTTP session"""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("Closed broker HTTP session")
