"""
Fallback Generator

Network-free content used when genuine inference fails. Every function here
is pure: the same inputs always give the same output, except generated-content
selection when no seed is supplied.
"""

import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .schemas import resolve_content_type

# (keywords, reply) in evaluation order; a '?' anywhere counts as a question
REPLY_RULES: List[Tuple[Tuple[str, ...], Dict[str, Any]]] = [
    (
        ("?",),
        {
            "id": "1",
            "text": "That's an interesting question! I'd love to hear more about your thoughts on this.",
            "tone": "questioning",
            "confidence": 0.8,
        },
    ),
    (
        ("amazing", "great", "love", "awesome"),
        {
            "id": "2",
            "text": "This is fantastic! Thanks for sharing such positive energy.",
            "tone": "enthusiastic",
            "confidence": 0.7,
        },
    ),
    (
        ("problem", "issue", "challenge", "struggle"),
        {
            "id": "3",
            "text": "I understand where you're coming from. Have you found any approaches that help with this?",
            "tone": "supportive",
            "confidence": 0.6,
        },
    ),
    (
        ("blockchain", "web3", "ai", "technology"),
        {
            "id": "4",
            "text": "Interesting perspective on this technology! How do you see this evolving in the future?",
            "tone": "thoughtful",
            "confidence": 0.75,
        },
    ),
    (
        ("learn", "study", "education", "knowledge"),
        {
            "id": "5",
            "text": "Great insights! I always appreciate learning from different perspectives on this topic.",
            "tone": "agreeing",
            "confidence": 0.65,
        },
    ),
]

GENERIC_REPLIES: List[Dict[str, Any]] = [
    {
        "id": "6",
        "text": "Thanks for sharing this! It really got me thinking about the topic.",
        "tone": "friendly",
        "confidence": 0.5,
    },
    {
        "id": "7",
        "text": "I appreciate you posting this. It's given me a new perspective to consider.",
        "tone": "thoughtful",
        "confidence": 0.5,
    },
]

FALLBACK_CONTENT: List[Dict[str, Any]] = [
    {
        "content": "Just had an amazing thought about the future of technology! What's your take on AI advancements? \U0001f914",
        "hashtags": ["#Technology", "#AI", "#Future"],
        "type": "post",
    },
    {
        "content": "When you finally fix that bug after 5 hours... \U0001f389",
        "hashtags": ["#Programming", "#DeveloperLife", "#Success"],
        "type": "post",
    },
    {
        "question": "What's the most interesting thing you've learned this week?",
        "hashtags": ["#Learning", "#Community", "#Discussion"],
        "type": "question",
    },
]

SAFETY_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "spam": ("buy", "cheap", "followers", "free", "click", "discount", "promo", "dm me", "!!!"),
    "harmful": ("hate", "kill", "attack", "harass", "violence", "threat"),
    "nsfw": ("nsfw", "explicit", "nude", "xxx", "porn"),
    "misinformation": ("hoax", "conspiracy", "fake news", "miracle cure", "they don't want you to know"),
}
SAFETY_KEYWORD_WEIGHT = 0.35
UNSAFE_THRESHOLD = 0.7

RELEVANCE_WEIGHTS = {
    "engagement": 0.3,
    "timeliness": 0.25,
    "personalInterest": 0.3,
    "communityTrend": 0.15,
}


def fallback_replies(post_content: Optional[str], max_replies: int = 3) -> List[Dict[str, Any]]:
    """Keyword-driven canned replies, highest confidence first"""
    content_lower = (post_content or "").lower()
    replies: List[Dict[str, Any]] = []

    for keywords, reply in REPLY_RULES:
        if any(keyword in content_lower for keyword in keywords):
            replies.append(dict(reply))

    for reply in GENERIC_REPLIES:
        if len(replies) < max_replies:
            replies.append(dict(reply))

    replies.sort(key=lambda r: r["confidence"], reverse=True)
    return replies[: max(max_replies, 0)]


def fallback_content(content_type: Optional[str] = "post", seed: Optional[Any] = None) -> Dict[str, Any]:
    """Pick a canned item, preferring the requested content type"""
    resolved = resolve_content_type(content_type)
    candidates = [item for item in FALLBACK_CONTENT if item["type"] == resolved] or FALLBACK_CONTENT

    rng = random.Random(seed) if seed is not None else random
    choice = rng.choice(candidates)
    return {k: list(v) if isinstance(v, list) else v for k, v in choice.items()}


def fallback_safety(content: Optional[str]) -> Dict[str, Any]:
    """Keyword heuristic classification"""
    content_lower = (content or "").lower()

    categories = {}
    for category, keywords in SAFETY_KEYWORDS.items():
        hits = sum(1 for keyword in keywords if keyword in content_lower)
        categories[category] = round(min(hits * SAFETY_KEYWORD_WEIGHT, 1.0), 2)

    flags = [name for name, value in categories.items() if value >= UNSAFE_THRESHOLD]
    is_safe = not flags

    suggested_actions = []
    if not is_safe:
        suggested_actions.append("Review before publishing")
    if "spam" in flags:
        suggested_actions.append("Remove promotional language")

    return {
        "isSafe": is_safe,
        "confidence": 0.5,
        "categories": categories,
        "flags": flags,
        "suggestedActions": suggested_actions,
    }


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _post_age_hours(post_timestamp: Any, now: datetime) -> Optional[float]:
    """Epoch seconds/milliseconds or ISO-8601; None when unparseable"""
    epoch = _to_float(post_timestamp)
    if epoch is not None:
        if epoch > 1e12:
            epoch /= 1000.0
        posted = datetime.fromtimestamp(epoch, tz=timezone.utc)
    elif isinstance(post_timestamp, str):
        try:
            posted = datetime.fromisoformat(post_timestamp.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        if posted.tzinfo is None:
            posted = posted.replace(tzinfo=timezone.utc)
    else:
        return None

    return max((now - posted).total_seconds() / 3600.0, 0.0)


def fallback_relevance(
    post_content: Optional[str],
    post_engagement: Any = None,
    user_interests: Optional[List[str]] = None,
    post_timestamp: Any = None,
    author_history: Any = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Weighted heuristic score from interest overlap, engagement, age and author activity"""
    now = now or datetime.now(timezone.utc)
    content_lower = (post_content or "").lower()
    interests = [i.lower() for i in (user_interests or []) if isinstance(i, str) and i.strip()]

    if interests:
        matched = sum(1 for interest in interests if interest in content_lower)
        personal_interest = matched / len(interests)
    else:
        personal_interest = 0.0

    engagement = min(max((_to_float(post_engagement) or 0.0) / 100.0, 0.0), 1.0)

    age_hours = _post_age_hours(post_timestamp, now) if post_timestamp is not None else None
    timeliness = 0.5 if age_hours is None else max(1.0 - age_hours / 48.0, 0.0)

    community_trend = min(max((_to_float(author_history) or 0.0) / 50.0, 0.0), 1.0)

    factors = {
        "engagement": round(engagement, 3),
        "timeliness": round(timeliness, 3),
        "personalInterest": round(personal_interest, 3),
        "communityTrend": round(community_trend, 3),
    }
    score = round(sum(factors[name] * weight for name, weight in RELEVANCE_WEIGHTS.items()), 3)

    recommendations = []
    if personal_interest > 0:
        recommendations.append("Matches user interests")
    if score >= 0.7:
        recommendations.append("Highly relevant")
    elif score < 0.3:
        recommendations.append("Low relevance")

    return {"score": score, "factors": factors, "recommendations": recommendations}
