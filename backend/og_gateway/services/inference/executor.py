"""
Inference Request Executor

Sends one signed chat completion request to a provider's OpenAI-compatible
endpoint. Retry and timeout policy belong to the caller.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

import aiohttp

from .exceptions import RequestFailed
from .models import InferenceResponse, ServiceMetadata, SignedRequestHeaders

logger = logging.getLogger(__name__)


class InferenceRequestExecutor:
    """Single-attempt chat completion client"""

    def __init__(self, timeout_ms: int = 60000):
        self.timeout_ms = timeout_ms
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session"""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=50,
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

            logger.debug("Created new HTTP session for inference requests")

        return self._session

    async def execute(
        self,
        service: ServiceMetadata,
        prompt: str,
        headers: SignedRequestHeaders,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> InferenceResponse:
        """
        Send ``prompt`` as the sole user message.

        ``headers`` must have been signed over exactly this prompt.

        Raises:
            RequestFailed: transport error or non-2xx status
        """
        payload: Dict[str, Any] = {
            "model": service.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        start_time = time.time()

        try:
            session = await self._get_session()

            async with session.post(
                f"{service.endpoint}/chat/completions",
                json=payload,
                headers=dict(headers),
            ) as response:
                latency = (time.time() - start_time) * 1000

                if not 200 <= response.status < 300:
                    error_text = await response.text()
                    logger.warning(
                        f"Provider returned HTTP {response.status}: {error_text[:200]}"
                    )
                    raise RequestFailed(
                        f"Inference request failed: HTTP {response.status}",
                        status_code=response.status,
                        provider=service.provider_address,
                    )

                data = await response.json()

        except aiohttp.ClientError as e:
            logger.error(f"Inference request error: {e}")
            raise RequestFailed(
                f"Network error communicating with provider: {e}",
                cause=type(e).__name__,
                provider=service.provider_address,
            ) from e
        except json.JSONDecodeError as e:
            raise RequestFailed(
                "Provider returned a non-JSON body",
                cause="invalid_json",
                provider=service.provider_address,
            ) from e

        choices = data.get("choices") or [{}]
        first = choices[0] or {}
        message = first.get("message") or {}

        logger.debug(f"Chat completion {data.get('id')} received in {latency:.2f}ms")

        return InferenceResponse(
            response_id=data.get("id") or "",
            raw_text=message.get("content") or "",
            model=data.get("model"),
            finish_reason=first.get("finish_reason"),
            latency_ms=latency,
        )

    async def close(self):
        """Close the HTTP session"""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("Closed inference HTTP session")
