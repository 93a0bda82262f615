"""
Pytest configuration and shared fixtures for all tests.

Gateway tests never touch the network: the broker and the model endpoint are
replaced by fakes or by patched aiohttp sessions.
"""
import sys
from pathlib import Path
from typing import AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from og_gateway.core.config import Settings
from og_gateway.services.inference.broker.base import BaseMarketplaceBroker
from og_gateway.services.inference.exceptions import ProviderAlreadyAcknowledged
from og_gateway.services.inference.identity import ProviderIdentity, create_identity
from og_gateway.services.inference.models import (
    InferenceResponse,
    ResilienceConfig,
    ServiceMetadata,
)
from og_gateway.services.inference.resilience import ResilienceManager

# Well-known throwaway key (never funded)
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_PROVIDER = "0xf07240Efa67755B5311bc75784a061eDB47165Dd"


class FakeBroker(BaseMarketplaceBroker):
    """In-memory broker recording every call"""

    def __init__(
        self,
        endpoint: str = "https://provider.example/v1/proxy",
        model: str = "llama-3.3-70b-instruct",
        valid: Optional[bool] = True,
    ):
        self.endpoint = endpoint
        self.model = model
        self.valid = valid
        self.acknowledged: List[str] = []
        self.signed: List[str] = []
        self.verified: List[Dict[str, str]] = []
        self.ack_error: Optional[Exception] = None
        self.service_error: Optional[Exception] = None
        self.sign_error: Optional[Exception] = None
        self.verify_error: Optional[Exception] = None
        self.closed = False

    async def acknowledge_provider_signer(self, provider_address: str) -> None:
        if self.ack_error is not None:
            raise self.ack_error
        if provider_address in self.acknowledged:
            raise ProviderAlreadyAcknowledged("Provider already acknowledged", status_code=409)
        self.acknowledged.append(provider_address)

    async def get_service_metadata(self, provider_address: str) -> ServiceMetadata:
        if self.service_error is not None:
            raise self.service_error
        return ServiceMetadata(
            provider_address=provider_address, endpoint=self.endpoint, model=self.model
        )

    async def get_request_headers(self, provider_address: str, content: str) -> Dict[str, str]:
        if self.sign_error is not None:
            raise self.sign_error
        self.signed.append(content)
        return {"X-OG-Provider": provider_address, "X-OG-Signature": f"sig-{len(self.signed)}"}

    async def process_response(self, provider_address: str, chat_id: str, content: str) -> bool:
        self.verified.append({"chat_id": chat_id, "content": content})
        if self.verify_error is not None:
            raise self.verify_error
        return self.valid

    async def close(self) -> None:
        self.closed = True


class FakeExecutor:
    """Returns queued completions (or raises queued exceptions) in order"""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: List[Dict] = []
        self.closed = False

    async def execute(self, service, prompt, headers, temperature=None, max_tokens=None):
        self.calls.append(
            {
                "service": service,
                "prompt": prompt,
                "headers": headers,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return InferenceResponse(response_id="chatcmpl-test", raw_text=outcome)

    async def close(self):
        self.closed = True


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        PRIVATE_KEY=TEST_PRIVATE_KEY,
        OG_PROVIDER_ADDRESS=TEST_PROVIDER,
        OG_MAX_RETRIES=2,
        OG_RETRY_DELAY_MS=0,
        OG_REQUEST_TIMEOUT_MS=2000,
        OG_REJECT_UNVERIFIED=False,
    )


@pytest.fixture
def provider_address() -> str:
    return TEST_PROVIDER


@pytest.fixture
def make_broker():
    return FakeBroker


@pytest.fixture
def make_executor():
    return FakeExecutor


@pytest.fixture
def identity() -> ProviderIdentity:
    return create_identity(TEST_PRIVATE_KEY, "http://127.0.0.1:8545")


@pytest.fixture
def fake_broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def fast_resilience() -> ResilienceManager:
    return ResilienceManager(
        ResilienceConfig(max_retries=2, retry_delay_ms=0, timeout_ms=2000),
        provider_name="test",
    )


@pytest_asyncio.fixture(scope="function")
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app; lifespan is not run"""
    from og_gateway.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
