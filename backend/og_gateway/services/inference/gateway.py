"""
Verified Inference Gateway

Runs the acknowledge -> resolve -> sign -> execute -> verify -> extract ->
validate pipeline for each use case and degrades to local fallback content
when any stage after setup fails.
"""

import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

from og_gateway.core.config import Settings, settings as default_settings
from og_gateway.core.logging import log_inference_event

from .broker.base import BaseMarketplaceBroker
from .broker.client import BrokerServiceClient
from .exceptions import (
    GatewayError,
    InvalidFormat,
    SetupFailure,
    UnverifiedResponse,
    VerificationUnavailable,
)
from .executor import InferenceRequestExecutor
from .extraction import parse_json_array, parse_json_object
from .fallback import (
    fallback_content,
    fallback_relevance,
    fallback_replies,
    fallback_safety,
)
from .identity import create_identity
from .models import GatewayResult, InferenceOutcome, ResilienceConfig
from .prompts import content_prompt, relevance_prompt, replies_prompt, safety_prompt
from .resilience import ResilienceManager
from .schemas import (
    RELEVANCE_SCHEMA,
    SAFETY_SCHEMA,
    lax_content,
    resolve_content_type,
    validate_content,
    validate_replies,
)
from .session import MarketplaceSession

logger = logging.getLogger(__name__)

REPLY_TEMPERATURE = 0.7
REPLY_MAX_TOKENS = 800

Parsed = Tuple[Any, List[str]]


class InferenceGateway:
    """
    Injectable client for verified inference.

    Collaborators may be supplied directly (tests, alternative brokers);
    anything left out is built from settings in ``open()``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        broker: Optional[BaseMarketplaceBroker] = None,
        session: Optional[MarketplaceSession] = None,
        executor: Optional[InferenceRequestExecutor] = None,
        resilience: Optional[ResilienceManager] = None,
    ):
        self.settings = settings or default_settings
        self.broker = broker
        self.session = session
        self.executor = executor
        self.resilience = resilience
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def provider_address(self) -> str:
        return self.settings.OG_PROVIDER_ADDRESS or ""

    async def open(self) -> "InferenceGateway":
        """
        Build identity, broker, session and executor.

        Raises:
            SetupFailure: credentials or provider address missing/invalid
        """
        if self._open:
            return self

        if not self.settings.OG_PROVIDER_ADDRESS:
            raise SetupFailure("Missing OG_PROVIDER_ADDRESS")

        if self.session is None:
            if self.broker is None:
                identity = create_identity(self.settings.PRIVATE_KEY, self.settings.OG_RPC_URL)
                self.broker = BrokerServiceClient(
                    self.settings.OG_BROKER_URL,
                    identity,
                    timeout_ms=self.settings.OG_BROKER_TIMEOUT_MS,
                )
            self.session = MarketplaceSession(self.broker)

        if self.executor is None:
            self.executor = InferenceRequestExecutor(timeout_ms=self.settings.OG_REQUEST_TIMEOUT_MS)

        if self.resilience is None:
            self.resilience = ResilienceManager(
                ResilienceConfig(
                    max_retries=self.settings.OG_MAX_RETRIES,
                    retry_delay_ms=self.settings.OG_RETRY_DELAY_MS,
                    retry_exponential_base=self.settings.OG_RETRY_EXPONENTIAL_BASE,
                    timeout_ms=self.settings.OG_REQUEST_TIMEOUT_MS,
                ),
                provider_name="og-provider",
            )

        self._open = True
        logger.info(f"Inference gateway opened for provider {self.provider_address}")
        return self

    async def close(self):
        if self.session is not None:
            await self.session.close()
        if self.executor is not None:
            await self.executor.close()
        self._open = False
        logger.info("Inference gateway closed")

    async def __aenter__(self) -> "InferenceGateway":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _run(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> InferenceOutcome:
        """One verified completion for ``prompt``"""
        await self.open()
        provider = self.provider_address

        await self.session.acknowledge_provider(provider)
        service = await self.session.resolve_service(provider)

        async def attempt():
            # Fresh headers per attempt, signed over the exact prompt sent
            headers = await self.session.sign_headers(provider, prompt)
            return await self.executor.execute(
                service, prompt, headers, temperature=temperature, max_tokens=max_tokens
            )

        response = await self.resilience.execute(attempt)

        trusted: Optional[bool]
        try:
            trusted = await self.session.verify_response(
                provider, response.response_id, response.raw_text
            )
        except VerificationUnavailable as e:
            logger.warning(f"Verification unavailable for {response.response_id}: {e}")
            trusted = None

        if trusted is False:
            logger.warning(f"Response {response.response_id} failed verification")
        else:
            logger.debug(f"Response {response.response_id} verification: {trusted}")

        return InferenceOutcome(response=response, trusted=trusted, model=service.model)

    async def _structured(
        self,
        use_case: str,
        prompt: str,
        parse: Callable[[str], Parsed],
        fallback: Callable[[], Any],
        default_text: str = "{}",
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> GatewayResult:
        request_id = str(uuid.uuid4())
        start_time = time.time()

        if self.settings.LOG_LLM_PROMPTS:
            logger.info(f"[{use_case}] prompt: {prompt}")

        try:
            outcome = await self._run(prompt, temperature=temperature, max_tokens=max_tokens)
            raw_text = outcome.response.raw_text or default_text

            if self.settings.LOG_LLM_PROMPTS:
                logger.info(f"[{use_case}] raw completion: {raw_text}")

            result, warnings = parse(raw_text)

            if self.settings.OG_REJECT_UNVERIFIED and outcome.trusted is not True:
                raise UnverifiedResponse(
                    "Response could not be verified",
                    details={"trusted": outcome.trusted},
                )

        except SetupFailure:
            raise
        except GatewayError as e:
            return self._fallback(use_case, request_id, fallback, e.message, e.error_code)
        except Exception as e:
            logger.error(f"Unexpected error in {use_case} pipeline: {e}", exc_info=True)
            return self._fallback(use_case, request_id, fallback, str(e), "UNEXPECTED_ERROR")

        log_inference_event(
            use_case,
            "completed",
            request_id=request_id,
            details={
                "trusted": outcome.trusted,
                "warnings": len(warnings),
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        for warning in warnings:
            logger.debug(f"[{use_case}] {warning}")

        return GatewayResult(
            result=result,
            trusted=outcome.trusted,
            model=outcome.model,
            warnings=warnings,
        )

    def _fallback(
        self,
        use_case: str,
        request_id: str,
        fallback: Callable[[], Any],
        error: str,
        error_code: str,
    ) -> GatewayResult:
        log_inference_event(
            use_case,
            "fallback",
            request_id=request_id,
            details={"error_code": error_code, "error": error},
        )
        return GatewayResult(result=fallback(), fallback=True, error=error)

    async def analyze_content_safety(self, content: str) -> GatewayResult:
        def parse(text: str) -> Parsed:
            coerced = SAFETY_SCHEMA.coerce(parse_json_object(text))
            return coerced.value, coerced.warnings

        return await self._structured(
            "content_safety",
            safety_prompt(content),
            parse,
            lambda: fallback_safety(content),
        )

    async def analyze_relevance(
        self,
        post_content: str,
        post_engagement: Any = None,
        user_interests: Optional[List[str]] = None,
        post_timestamp: Any = None,
        author_history: Any = None,
    ) -> GatewayResult:
        def parse(text: str) -> Parsed:
            coerced = RELEVANCE_SCHEMA.coerce(parse_json_object(text))
            return coerced.value, coerced.warnings

        return await self._structured(
            "relevance",
            relevance_prompt(
                post_content, post_engagement, user_interests, post_timestamp, author_history
            ),
            parse,
            lambda: fallback_relevance(
                post_content, post_engagement, user_interests, post_timestamp, author_history
            ),
        )

    async def generate_content(
        self,
        user_interests: Optional[List[str]] = None,
        mood: Optional[str] = None,
        context: Optional[str] = None,
        content_type: Optional[str] = "post",
    ) -> GatewayResult:
        resolved = resolve_content_type(content_type)

        def parse(text: str) -> Parsed:
            try:
                coerced = validate_content(parse_json_object(text), resolved)
            except InvalidFormat as e:
                return lax_content(text, resolved), [f"{resolved}: {e.message}, using raw text"]
            return coerced.value, coerced.warnings

        return await self._structured(
            "generate_content",
            content_prompt(resolved, user_interests, mood, context),
            parse,
            lambda: fallback_content(resolved),
        )

    async def generate_replies(
        self,
        post_content: str,
        context: Optional[str] = None,
        max_replies: int = 3,
        user_interests: Optional[List[str]] = None,
        tone_preferences: Optional[List[str]] = None,
    ) -> GatewayResult:
        def parse(text: str) -> Parsed:
            coerced = validate_replies(parse_json_array(text), max_replies)
            return coerced.value, coerced.warnings

        return await self._structured(
            "generate_replies",
            replies_prompt(post_content, context, max_replies, user_interests, tone_preferences),
            parse,
            lambda: fallback_replies(post_content, max_replies),
            default_text="[]",
            temperature=REPLY_TEMPERATURE,
            max_tokens=REPLY_MAX_TOKENS,
        )

    def status(self) -> Dict[str, Any]:
        """Snapshot for the health endpoint"""
        return {
            "open": self._open,
            "provider_configured": bool(self.settings.OG_PROVIDER_ADDRESS),
            "provider_acknowledged": bool(
                self.session and self.provider_address
                and self.session.is_acknowledged(self.provider_address)
            ),
        }
