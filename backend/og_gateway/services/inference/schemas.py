"""
Schema Validator/Coercer

One data-driven table describes every field the gateway returns: its kind,
default, numeric range, enum and list cap. Coercion always yields a fully
populated record; keys the table does not declare are dropped.

Ranges are either clamped (``clamp=True``) or advisory, in which case an
out-of-range value is passed through and reported as a warning.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import InvalidFormat

logger = logging.getLogger(__name__)

REPLY_TONES = (
    "friendly",
    "supportive",
    "questioning",
    "agreeing",
    "enthusiastic",
    "thoughtful",
)

CONTENT_TYPES = ("post", "meme", "question")

LAX_HASHTAGS = ["#AI", "#Generated"]
LAX_CONTENT_LENGTH = 140


@dataclass
class FieldSpec:
    """Contract for a single field"""

    kind: str  # bool | number | string | string_list | object
    default: Any = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    clamp: bool = False
    enum: Optional[Tuple[str, ...]] = None
    max_items: Optional[int] = None
    children: Optional[Dict[str, "FieldSpec"]] = None

    def default_value(self) -> Any:
        if self.kind == "object":
            return {name: spec.default_value() for name, spec in (self.children or {}).items()}
        if isinstance(self.default, list):
            return list(self.default)
        return self.default


@dataclass
class CoercionResult:
    """Coerced record plus everything that had to be repaired"""

    value: Any
    warnings: List[str] = field(default_factory=list)


class SchemaSpec:
    """Named set of field contracts"""

    def __init__(self, name: str, fields: Dict[str, FieldSpec]):
        self.name = name
        self.fields = fields

    def coerce(self, data: Any) -> CoercionResult:
        """Coerce a decoded JSON value into a complete record"""
        warnings: List[str] = []
        if not isinstance(data, dict):
            warnings.append(f"{self.name}: expected object, got {type(data).__name__}")
            data = {}

        record = _coerce_object(self.fields, data, self.name, warnings)

        dropped = sorted(set(data) - set(self.fields))
        if dropped:
            warnings.append(f"{self.name}: dropped undeclared keys {dropped}")

        return CoercionResult(value=record, warnings=warnings)

    def defaults(self) -> Dict[str, Any]:
        return {name: spec.default_value() for name, spec in self.fields.items()}


def _coerce_object(
    fields: Dict[str, FieldSpec], data: Dict[str, Any], path: str, warnings: List[str]
) -> Dict[str, Any]:
    return {
        name: coerce_field(spec, data.get(name), f"{path}.{name}", warnings)
        for name, spec in fields.items()
    }


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_field(spec: FieldSpec, value: Any, path: str, warnings: List[str]) -> Any:
    """Coerce one value against its contract, recording repairs in ``warnings``"""
    if spec.kind == "object":
        if not isinstance(value, dict):
            if value is not None:
                warnings.append(f"{path}: expected object")
            value = {}
        return _coerce_object(spec.children or {}, value, path, warnings)

    if value is None:
        return spec.default_value()

    if spec.kind == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        if isinstance(value, (int, float)):
            return bool(value)
        warnings.append(f"{path}: not a boolean")
        return spec.default_value()

    if spec.kind == "number":
        number = _to_number(value)
        if number is None:
            warnings.append(f"{path}: not a number")
            return spec.default_value()

        low = spec.minimum if spec.minimum is not None else -math.inf
        high = spec.maximum if spec.maximum is not None else math.inf
        if low <= number <= high:
            return number
        if spec.clamp:
            return min(max(number, low), high)
        warnings.append(f"{path}: {number} outside [{spec.minimum}, {spec.maximum}]")
        return number

    if spec.kind == "string":
        if isinstance(value, str):
            text = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            text = str(value)
        else:
            warnings.append(f"{path}: not a string")
            return spec.default_value()

        if spec.enum is not None and text not in spec.enum:
            warnings.append(f"{path}: {text!r} not in {list(spec.enum)}")
            return spec.default_value()
        return text

    if spec.kind == "string_list":
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            warnings.append(f"{path}: not a list")
            return spec.default_value()

        items = [
            str(item)
            for item in value
            if isinstance(item, (str, int, float)) and not isinstance(item, bool)
        ]
        if len(items) != len(value):
            warnings.append(f"{path}: dropped non-string items")
        if spec.max_items is not None and len(items) > spec.max_items:
            items = items[: spec.max_items]
        return items

    raise ValueError(f"Unknown field kind: {spec.kind}")


def _score(default: float = 0.0) -> FieldSpec:
    return FieldSpec("number", default=default, minimum=0.0, maximum=1.0)


SAFETY_SCHEMA = SchemaSpec(
    "safety",
    {
        "isSafe": FieldSpec("bool", default=False),
        "confidence": _score(0.5),
        "categories": FieldSpec(
            "object",
            children={
                "spam": _score(),
                "harmful": _score(),
                "nsfw": _score(),
                "misinformation": _score(),
            },
        ),
        "flags": FieldSpec("string_list", default=[], max_items=20),
        "suggestedActions": FieldSpec("string_list", default=[], max_items=20),
    },
)

RELEVANCE_SCHEMA = SchemaSpec(
    "relevance",
    {
        "score": _score(),
        "factors": FieldSpec(
            "object",
            children={
                "engagement": _score(),
                "timeliness": _score(),
                "personalInterest": _score(),
                "communityTrend": _score(),
            },
        ),
        "recommendations": FieldSpec("string_list", default=[], max_items=20),
    },
)

POST_SCHEMA = SchemaSpec(
    "post",
    {
        "content": FieldSpec("string", default=""),
        "hashtags": FieldSpec("string_list", default=[], max_items=10),
        "mood": FieldSpec("string", default="neutral"),
        "type": FieldSpec("string", default="post", enum=CONTENT_TYPES),
    },
)

MEME_SCHEMA = SchemaSpec(
    "meme",
    {
        "caption": FieldSpec("string", default=""),
        "template_suggestion": FieldSpec("string", default=""),
        "categories": FieldSpec("string_list", default=[], max_items=10),
        "type": FieldSpec("string", default="meme", enum=CONTENT_TYPES),
    },
)

QUESTION_SCHEMA = SchemaSpec(
    "question",
    {
        "question": FieldSpec("string", default=""),
        "discussion_prompt": FieldSpec("string", default=""),
        "hashtags": FieldSpec("string_list", default=[], max_items=10),
        "type": FieldSpec("string", default="question", enum=CONTENT_TYPES),
    },
)

CONTENT_SCHEMAS: Dict[str, SchemaSpec] = {
    "post": POST_SCHEMA,
    "meme": MEME_SCHEMA,
    "question": QUESTION_SCHEMA,
}

REPLY_SCHEMA = SchemaSpec(
    "reply",
    {
        "id": FieldSpec("string", default=""),
        "text": FieldSpec("string", default=""),
        "tone": FieldSpec("string", default="friendly", enum=REPLY_TONES),
        "confidence": FieldSpec(
            "number", default=0.5, minimum=0.1, maximum=1.0, clamp=True
        ),
    },
)


def resolve_content_type(content_type: Optional[str]) -> str:
    """Unknown or missing content types resolve to 'post'"""
    if content_type in CONTENT_SCHEMAS:
        return content_type
    return "post"


def validate_content(data: Any, content_type: str) -> CoercionResult:
    return CONTENT_SCHEMAS[resolve_content_type(content_type)].coerce(data)


def lax_content(raw_text: str, content_type: str) -> Dict[str, Any]:
    """Local degradation for generated content whose output did not parse"""
    return {
        "content": raw_text[:LAX_CONTENT_LENGTH],
        "hashtags": list(LAX_HASHTAGS),
        "type": resolve_content_type(content_type),
    }


def validate_replies(value: Any, max_replies: int) -> CoercionResult:
    """
    Coerce a decoded reply list.

    Elements are coerced independently, empty replies are dropped, and the
    rest are ordered by descending confidence and capped at ``max_replies``.

    Raises:
        InvalidFormat: value is not a list, or no usable reply survives
    """
    if not isinstance(value, list):
        raise InvalidFormat("Invalid response format")

    warnings: List[str] = []
    replies: List[Dict[str, Any]] = []

    for index, item in enumerate(value):
        result = REPLY_SCHEMA.coerce(item)
        reply = result.value
        warnings.extend(result.warnings)

        if not reply["id"]:
            reply["id"] = f"reply-{index + 1}"
        if not reply["text"].strip():
            warnings.append(f"reply[{index}]: dropped empty reply")
            continue
        replies.append(reply)

    if not replies:
        raise InvalidFormat("No usable replies in model output")

    replies.sort(key=lambda r: r["confidence"], reverse=True)
    return CoercionResult(value=replies[: max(max_replies, 0)], warnings=warnings)
