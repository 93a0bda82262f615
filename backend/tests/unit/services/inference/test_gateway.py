"""
Tests for the inference gateway pipeline and its fallback policy.
"""
import json

import pytest

from og_gateway.services.inference.exceptions import (
    BrokerError,
    RequestFailed,
    SetupFailure,
)
from og_gateway.services.inference.gateway import InferenceGateway
from og_gateway.services.inference.schemas import RELEVANCE_SCHEMA, SAFETY_SCHEMA

SAFETY_OUTPUT = """```json
{
  "isSafe": false,
  "confidence": 0.92,
  "categories": {"spam": 0.95, "harmful": 0.05, "nsfw": 0.0, "misinformation": 0.1},
  "flags": ["commercial spam"],
  "suggestedActions": ["Remove promotional language"]
}
```"""

REPLIES_OUTPUT = json.dumps(
    [
        {"id": "1", "text": "Love this!", "tone": "enthusiastic", "confidence": 0.7},
        {"id": "2", "text": "Why do you think so?", "tone": "curious", "confidence": 0.9},
        {"id": "3", "text": "", "tone": "friendly", "confidence": 0.8},
    ]
)


@pytest.fixture
def build_gateway(test_settings, fake_broker, fast_resilience, make_executor):
    def _build(*outcomes, settings=None, broker=None):
        executor = make_executor(*outcomes)
        gateway = InferenceGateway(
            settings=settings or test_settings,
            broker=broker or fake_broker,
            executor=executor,
            resilience=fast_resilience,
        )
        return gateway, executor

    return _build


@pytest.mark.asyncio
async def test_safety_pipeline(build_gateway, fake_broker, provider_address):
    gateway, executor = build_gateway(SAFETY_OUTPUT)

    outcome = await gateway.analyze_content_safety("Buy cheap followers now!!!")

    assert outcome.fallback is False
    assert outcome.trusted is True
    assert outcome.model == "llama-3.3-70b-instruct"
    assert set(outcome.result) == set(SAFETY_SCHEMA.fields)
    assert outcome.result["isSafe"] is False
    assert 0 <= outcome.result["confidence"] <= 1

    # Headers are signed over the exact prompt that was sent
    assert fake_broker.signed == [executor.calls[0]["prompt"]]
    assert '"Buy cheap followers now!!!"' in executor.calls[0]["prompt"]
    assert fake_broker.acknowledged == [provider_address]
    assert fake_broker.verified == [{"chat_id": "chatcmpl-test", "content": SAFETY_OUTPUT}]


@pytest.mark.asyncio
async def test_relevance_advisory_score(build_gateway):
    gateway, _ = build_gateway("Sure! Here's your JSON: {\"score\": 2, \"factors\": {}}")

    outcome = await gateway.analyze_relevance(
        "post", post_engagement=10, user_interests=["ai"], post_timestamp="1h", author_history=3
    )

    assert outcome.fallback is False
    assert outcome.result["score"] == 2
    assert set(outcome.result) == set(RELEVANCE_SCHEMA.fields)
    assert outcome.warnings


@pytest.mark.asyncio
async def test_replies_validated(build_gateway):
    gateway, executor = build_gateway(REPLIES_OUTPUT)

    outcome = await gateway.generate_replies("Great post about web3", max_replies=3)

    assert outcome.fallback is False
    assert [r["text"] for r in outcome.result] == ["Why do you think so?", "Love this!"]
    assert outcome.result[0]["tone"] == "friendly"
    assert executor.calls[0]["temperature"] == 0.7
    assert executor.calls[0]["max_tokens"] == 800
    assert "Return 3 replies maximum" in executor.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_replies_invalid_format_falls_back(build_gateway):
    gateway, _ = build_gateway('{"reply": "not a list"}')

    outcome = await gateway.generate_replies("Is blockchain the future of finance?", max_replies=2)

    assert outcome.fallback is True
    assert outcome.trusted is None
    assert len(outcome.result) == 2
    assert outcome.result[0]["tone"] in ("questioning", "thoughtful")


@pytest.mark.asyncio
async def test_network_failure_falls_back_after_retries(build_gateway, fake_broker):
    gateway, executor = build_gateway(RequestFailed("connection reset"))

    outcome = await gateway.generate_replies("Is blockchain the future of finance?", max_replies=2)

    assert outcome.fallback is True
    assert outcome.error == "connection reset"
    assert len(executor.calls) == 3
    # Fresh headers on every attempt
    assert len(fake_broker.signed) == 3
    confidences = [r["confidence"] for r in outcome.result]
    assert confidences == sorted(confidences, reverse=True)


@pytest.mark.asyncio
async def test_transient_failure_recovers(build_gateway):
    gateway, executor = build_gateway(RequestFailed("busy", status_code=503), SAFETY_OUTPUT)

    outcome = await gateway.analyze_content_safety("hello")

    assert outcome.fallback is False
    assert len(executor.calls) == 2


@pytest.mark.asyncio
async def test_safety_falls_back_when_service_unavailable(build_gateway, fake_broker):
    fake_broker.service_error = BrokerError("unknown provider", status_code=404)
    gateway, executor = build_gateway(SAFETY_OUTPUT)

    outcome = await gateway.analyze_content_safety("Buy cheap followers now!!!")

    assert outcome.fallback is True
    assert executor.calls == []
    assert outcome.result["isSafe"] is False
    assert "unknown provider" in outcome.error


@pytest.mark.asyncio
async def test_acknowledge_failure_falls_back(build_gateway, fake_broker):
    fake_broker.ack_error = BrokerError("invalid address", status_code=400)
    gateway, executor = build_gateway(SAFETY_OUTPUT)

    outcome = await gateway.analyze_relevance("post")

    assert outcome.fallback is True
    assert executor.calls == []
    assert set(outcome.result) == set(RELEVANCE_SCHEMA.fields)


@pytest.mark.asyncio
async def test_verification_failure_only_flags(build_gateway, make_broker):
    gateway, _ = build_gateway(SAFETY_OUTPUT, broker=make_broker(valid=False))

    outcome = await gateway.analyze_content_safety("hello")

    assert outcome.fallback is False
    assert outcome.trusted is False
    assert outcome.result["flags"] == ["commercial spam"]


@pytest.mark.asyncio
async def test_verification_unavailable_is_null(build_gateway, fake_broker):
    fake_broker.verify_error = BrokerError("verifier down", status_code=503)
    gateway, _ = build_gateway(SAFETY_OUTPUT)

    outcome = await gateway.analyze_content_safety("hello")

    assert outcome.fallback is False
    assert outcome.trusted is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        json.JSONDecodeError("Expecting value", "<html>", 0),
        AttributeError("'list' object has no attribute 'get'"),
    ],
)
async def test_unreadable_verification_keeps_result(build_gateway, fake_broker, error):
    fake_broker.verify_error = error
    gateway, _ = build_gateway(
        '{"score": 0.9, "factors": {"engagement": 0.8}, "recommendations": ["boost"]}'
    )

    outcome = await gateway.analyze_relevance("New L2 launch", post_engagement=120)

    assert outcome.fallback is False
    assert outcome.trusted is None
    assert outcome.error is None
    assert outcome.result["score"] == 0.9
    assert outcome.result["recommendations"] == ["boost"]


@pytest.mark.asyncio
@pytest.mark.parametrize("valid", [False, None])
async def test_reject_unverified_policy(build_gateway, make_broker, test_settings, valid):
    strict = test_settings.model_copy(update={"OG_REJECT_UNVERIFIED": True})
    broker = make_broker(valid=valid)
    gateway, _ = build_gateway(REPLIES_OUTPUT, settings=strict, broker=broker)

    outcome = await gateway.generate_replies("Good morning", max_replies=3)

    assert outcome.fallback is True
    assert outcome.error == "Response could not be verified"


@pytest.mark.asyncio
async def test_generate_content_unknown_type_uses_post(build_gateway):
    gateway, executor = build_gateway('{"content": "gm", "hashtags": ["#gm"], "mood": "happy"}')

    outcome = await gateway.generate_content(content_type="haiku")

    assert "creative social media content generator" in executor.calls[0]["prompt"]
    assert outcome.result == {
        "content": "gm",
        "hashtags": ["#gm"],
        "mood": "happy",
        "type": "post",
    }
    assert outcome.model == "llama-3.3-70b-instruct"


@pytest.mark.asyncio
async def test_generate_content_lax_path(build_gateway):
    raw = "Just shipped a new feature! " * 10
    gateway, _ = build_gateway(raw)

    outcome = await gateway.generate_content(content_type="meme")

    assert outcome.fallback is False
    assert outcome.trusted is True
    assert outcome.result == {
        "content": raw[:140],
        "hashtags": ["#AI", "#Generated"],
        "type": "meme",
    }


@pytest.mark.asyncio
async def test_generate_content_empty_completion(build_gateway):
    gateway, _ = build_gateway("")

    outcome = await gateway.generate_content(content_type="question")

    assert outcome.fallback is False
    assert outcome.result["type"] == "question"
    assert outcome.result["question"] == ""


@pytest.mark.asyncio
async def test_generate_content_upstream_failure(build_gateway):
    gateway, _ = build_gateway(RequestFailed("unauthorized", status_code=401))

    outcome = await gateway.generate_content(content_type="question")

    assert outcome.fallback is True
    assert outcome.result["type"] == "question"


@pytest.mark.asyncio
async def test_setup_failure_is_fatal(make_broker, test_settings):
    settings = test_settings.model_copy(update={"OG_PROVIDER_ADDRESS": None})
    gateway = InferenceGateway(settings=settings, broker=make_broker())

    with pytest.raises(SetupFailure):
        await gateway.analyze_content_safety("hello")


@pytest.mark.asyncio
async def test_missing_private_key_is_fatal(test_settings):
    settings = test_settings.model_copy(update={"PRIVATE_KEY": None})
    gateway = InferenceGateway(settings=settings)

    with pytest.raises(SetupFailure):
        await gateway.generate_replies("hello")


@pytest.mark.asyncio
async def test_lifecycle(build_gateway, fake_broker):
    gateway, executor = build_gateway(SAFETY_OUTPUT)

    async with gateway as opened:
        assert opened.is_open
        assert opened.status()["provider_configured"] is True

    assert not gateway.is_open
    assert fake_broker.closed
    assert executor.closed


@pytest.mark.asyncio
async def test_open_builds_default_collaborators(test_settings):
    gateway = InferenceGateway(settings=test_settings)
    await gateway.open()
    try:
        assert gateway.session is not None
        assert gateway.executor is not None
        assert gateway.resilience.config.max_retries == 2
    finally:
        await gateway.close()
