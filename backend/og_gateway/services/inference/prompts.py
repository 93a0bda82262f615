"""
Prompt templates for the four inference use cases
"""

from typing import Any, List, Optional

from .schemas import resolve_content_type


def _join(values: Optional[List[str]], default: str) -> str:
    return ", ".join(values) if values else default


def safety_prompt(content: str) -> str:
    return f"""
    Analyze social media content for safety and appropriateness.

    CONTENT: "{content}"

    Analyze for:
    1. Spam characteristics (commercial intent, repetitive content)
    2. Harmful content (hate speech, harassment, violence)
    3. NSFW material (explicit content, adult themes)
    4. Misinformation (false claims, conspiracy theories)

    Return JSON:
    {{
      "isSafe": true,
      "confidence": 0.95,
      "categories": {{
        "spam": 0.1,
        "harmful": 0.05,
        "nsfw": 0.02,
        "misinformation": 0.1
      }},
      "flags": [],
      "suggestedActions": []
    }}

    Consider content safe if all categories < 0.7.
    """


def relevance_prompt(
    post_content: str,
    post_engagement: Any,
    user_interests: Optional[List[str]],
    post_timestamp: Any,
    author_history: Any,
) -> str:
    return f"""
    Analyze social media content relevance for user personalization.

    POST CONTENT: {post_content}
    POST ENGAGEMENT: {post_engagement} interactions
    USER INTERESTS: {_join(user_interests, "")}
    POST AGE: {post_timestamp}
    AUTHOR HISTORY: {author_history} posts

    Calculate relevance score (0-1) considering:
    1. Engagement potential (0.3 weight)
    2. Timeliness (0.25 weight)
    3. Personal interest alignment (0.3 weight)
    4. Community trust (0.15 weight)

    Return JSON:
    {{
      "score": 0.85,
      "factors": {{
        "engagement": 0.9,
        "timeliness": 0.7,
        "personalInterest": 0.8,
        "communityTrend": 0.9
      }},
      "recommendations": ["Highly relevant", "Matches user interests"]
    }}
    """


def _post_prompt(user_interests, mood, context) -> str:
    return f"""
      You are a creative social media content generator. Create engaging social media content based on the user's interests and context.

      USER INTERESTS: {_join(user_interests, "general topics")}
      MOOD: {mood or "neutral"}
      CONTEXT: {context or "daily thoughts"}

      Generate a social media post that is:
      - Engaging and authentic
      - 1-3 sentences maximum
      - Relevant to user interests
      - Matches the specified mood
      - Includes relevant hashtags

      Return ONLY a JSON object with this structure:
      {{
        "content": "The actual post content text",
        "hashtags": ["#tag1", "#tag2", "#tag3"],
        "mood": "detected mood",
        "type": "post"
      }}
      """


def _meme_prompt(user_interests, mood, context) -> str:
    return f"""
      You are a meme caption generator. Create hilarious meme captions based on the context.

      CONTEXT: {context or "internet culture"}
      MOOD: {mood or "funny"}

      Generate a meme caption that is:
      - Hilarious and relatable
      - 1-2 lines maximum
      - Perfect for image macros
      - Includes meme categories

      Return ONLY a JSON object with this structure:
      {{
        "caption": "The meme caption text",
        "template_suggestion": "popular meme template suggestion",
        "categories": ["category1", "category2"],
        "type": "meme"
      }}
      """


def _question_prompt(user_interests, mood, context) -> str:
    return f"""
      Generate engaging discussion questions for social media.

      INTERESTS: {_join(user_interests, "general topics")}
      CONTEXT: {context or "community discussion"}

      Create a question that:
      - Sparks conversation
      - Is open-ended
      - Relates to user interests
      - Encourages community engagement

      Return ONLY a JSON object with this structure:
      {{
        "question": "The engaging question",
        "discussion_prompt": "Why do you think that?",
        "hashtags": ["#discussion", "#community"],
        "type": "question"
      }}
      """


CONTENT_PROMPTS = {
    "post": _post_prompt,
    "meme": _meme_prompt,
    "question": _question_prompt,
}


def content_prompt(
    content_type: Optional[str],
    user_interests: Optional[List[str]] = None,
    mood: Optional[str] = None,
    context: Optional[str] = None,
) -> str:
    """Prompt for the requested content type; unknown types use the post template"""
    builder = CONTENT_PROMPTS[resolve_content_type(content_type)]
    return builder(user_interests, mood, context)


def replies_prompt(
    post_content: str,
    context: Optional[str] = None,
    max_replies: int = 3,
    user_interests: Optional[List[str]] = None,
    tone_preferences: Optional[List[str]] = None,
) -> str:
    return f"""
Generate 3-5 smart, contextual replies for a social media post. Consider the context and user interests.

POST CONTENT: "{post_content}"

ADDITIONAL CONTEXT: {context or "No additional context provided"}

USER INTERESTS: {_join(user_interests, "General interests")}

TONE PREFERENCES: {_join(tone_preferences, "Mix of friendly, supportive, and thoughtful")}

GUIDELINES:
- Generate diverse reply types: questions, agreements, supportive comments, thoughtful insights
- Keep replies natural and conversational (1-2 sentences max)
- Match the tone and style of the original post
- Consider the user's interests when relevant
- Ensure replies are engaging and encourage conversation
- Avoid generic or spammy responses

TONE OPTIONS:
- friendly: Warm, casual, approachable
- supportive: Encouraging, understanding, helpful
- questioning: Curious, seeking clarification or more information
- agreeing: Showing agreement and shared perspective
- enthusiastic: Excited, positive, energetic
- thoughtful: Reflective, insightful, considerate

Return ONLY valid JSON array with this structure:
[
  {{
    "id": "1",
    "text": "The actual reply text here",
    "tone": "friendly",
    "confidence": 0.85
  }}
]

Requirements:
- Return {max_replies} replies maximum
- Confidence score (0.1-1.0) based on relevance and quality
- Mix of different tones
- Replies should be directly related to the post content
- Make them feel personal and authentic
"""
