"""
Inference API endpoints - safety checks, relevance scoring, content and reply
generation backed by the verified inference gateway
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from og_gateway.services.inference.gateway import InferenceGateway
from og_gateway.services.inference.models import GatewayResult

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_MAX_REPLIES = 3


# Request Models
class ContentSafetyRequest(BaseModel):
    content: str = Field(..., description="Content to classify")


class RelevanceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    post_content: str = Field("", alias="postContent")
    post_engagement: Optional[Any] = Field(None, alias="postEngagement")
    user_interests: Optional[List[str]] = Field(default_factory=list, alias="userInterests")
    post_timestamp: Optional[Any] = Field(None, alias="postTimestamp")
    author_history: Optional[Any] = Field(None, alias="authorHistory")

    @field_validator("user_interests")
    @classmethod
    def null_interests_are_empty(cls, v):
        return v or []


class GeneratePostRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_interests: Optional[List[str]] = Field(default_factory=list, alias="userInterests")
    mood: Optional[str] = None
    context: Optional[str] = None
    type: Optional[str] = Field(
        "post", description="post, meme or question; anything else is a post"
    )

    @field_validator("user_interests")
    @classmethod
    def null_interests_are_empty(cls, v):
        return v or []


class GenerateRepliesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    post_content: Optional[str] = Field(None, alias="postContent")
    context: Optional[str] = None
    max_replies: Optional[int] = Field(DEFAULT_MAX_REPLIES, alias="maxReplies")
    user_interests: Optional[List[str]] = Field(default_factory=list, alias="userInterests")
    tone_preferences: Optional[List[str]] = Field(default_factory=list, alias="tonePreferences")

    @field_validator("max_replies")
    @classmethod
    def null_max_replies_is_default(cls, v):
        return DEFAULT_MAX_REPLIES if v is None else v

    @field_validator("user_interests", "tone_preferences")
    @classmethod
    def null_lists_are_empty(cls, v):
        return v or []


async def get_gateway(request: Request) -> InferenceGateway:
    """Gateway owned by the application; created lazily if lifespan did not run"""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        gateway = InferenceGateway()
        request.app.state.gateway = gateway
    return gateway


def _degraded(body: Dict[str, Any], outcome: GatewayResult) -> Dict[str, Any]:
    if outcome.fallback:
        body["error"] = outcome.error
    return body


@router.post("/analyze-content-safety")
async def analyze_content_safety(
    body: ContentSafetyRequest,
    gateway: InferenceGateway = Depends(get_gateway),
):
    """Classify content for spam, harm, NSFW material and misinformation"""
    outcome = await gateway.analyze_content_safety(body.content)
    return _degraded(
        {
            "success": True,
            **outcome.result,
            "valid": outcome.trusted,
            "fallback": outcome.fallback,
        },
        outcome,
    )


@router.post("/analyze-relevance")
async def analyze_relevance(
    body: RelevanceRequest,
    gateway: InferenceGateway = Depends(get_gateway),
):
    """Score how relevant a post is for a user"""
    outcome = await gateway.analyze_relevance(
        body.post_content,
        post_engagement=body.post_engagement,
        user_interests=body.user_interests,
        post_timestamp=body.post_timestamp,
        author_history=body.author_history,
    )
    return _degraded(
        {
            "success": True,
            **outcome.result,
            "valid": outcome.trusted,
            "fallback": outcome.fallback,
        },
        outcome,
    )


@router.post("/generate-post")
async def generate_post(
    body: GeneratePostRequest,
    gateway: InferenceGateway = Depends(get_gateway),
):
    """Generate a post, meme caption or discussion question"""
    outcome = await gateway.generate_content(
        user_interests=body.user_interests,
        mood=body.mood,
        context=body.context,
        content_type=body.type,
    )
    return _degraded(
        {
            "success": True,
            "content": outcome.result,
            "valid": outcome.trusted,
            "model": outcome.model,
            "fallback": outcome.fallback,
        },
        outcome,
    )


@router.post("/generate-replies")
async def generate_replies(
    body: GenerateRepliesRequest,
    gateway: InferenceGateway = Depends(get_gateway),
):
    """Suggest replies to a post"""
    if not body.post_content:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Post content is required"},
        )

    outcome = await gateway.generate_replies(
        body.post_content,
        context=body.context,
        max_replies=body.max_replies,
        user_interests=body.user_interests,
        tone_preferences=body.tone_preferences,
    )

    response = {
        "success": True,
        "replies": outcome.result,
        "valid": outcome.trusted,
    }
    if outcome.fallback:
        response["fallback"] = True
        response["error"] = outcome.error
    return response
