"""
Structured Extractor

Recovers a JSON payload from free-form model output.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from .exceptions import InvalidFormat

logger = logging.getLogger(__name__)

FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

_CLOSERS = {"{": "}", "[": "]"}


def extract_fenced(text: str) -> Optional[str]:
    """Inner content of the first ``` or ```json fenced block"""
    match = FENCED_BLOCK.search(text)
    if match and match.group(1):
        return match.group(1)
    return None


def extract_json(text: str) -> str:
    """
    Naive extraction: fenced block, else first '{' through last '}', else the
    text unchanged.
    """
    fenced = extract_fenced(text)
    if fenced is not None:
        return fenced

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return text[start : end + 1]

    return text


def find_balanced(text: str, opener: str = "{") -> Optional[str]:
    """
    First balanced top-level value starting with ``opener``.

    Tracks nesting depth across both brace kinds and ignores brackets inside
    JSON string literals. Candidates that do not parse are skipped.
    """
    closer = _CLOSERS[opener]
    pos = text.find(opener)

    while pos != -1:
        stack: List[str] = []
        in_string = False
        escaped = False

        for i in range(pos, len(text)):
            ch = text[i]

            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue

            if ch == '"':
                in_string = True
            elif ch in _CLOSERS:
                stack.append(_CLOSERS[ch])
            elif ch in ("}", "]"):
                if not stack or stack.pop() != ch:
                    break
                if not stack:
                    candidate = text[pos : i + 1]
                    try:
                        json.loads(candidate)
                    except ValueError:
                        break
                    return candidate

        pos = text.find(opener, pos + 1)

    return None


def extract_json_payload(text: str, expect: str = "object") -> str:
    """
    Tolerant extraction used by the gateway.

    Order: fenced block, first balanced top-level value of the expected kind,
    naive first/last heuristic, text unchanged.
    """
    opener = "[" if expect == "array" else "{"

    fenced = extract_fenced(text)
    if fenced is not None:
        return fenced

    balanced = find_balanced(text, opener)
    if balanced is not None:
        return balanced

    if expect == "array":
        start = text.find("[")
        end = text.rfind("]")
        if start != -1 and end != -1 and end > start:
            return text[start : end + 1]
        return text

    return extract_json(text)


def _loads(text: str, expect: str) -> Any:
    candidate = extract_json_payload(text, expect=expect)
    try:
        return json.loads(candidate)
    except ValueError as e:
        raise InvalidFormat(
            "Model output is not valid JSON",
            details={"error": str(e), "excerpt": text[:200]},
        ) from e


def parse_json_object(text: str) -> Dict[str, Any]:
    """Decode model output that should contain a JSON object"""
    value = _loads(text, "object")
    if not isinstance(value, dict):
        raise InvalidFormat(
            "Expected a JSON object", details={"got": type(value).__name__}
        )
    return value


def parse_json_array(text: str) -> List[Any]:
    """Decode model output that should contain a JSON array"""
    value = _loads(text, "array")
    if not isinstance(value, list):
        raise InvalidFormat(
            "Invalid response format", details={"got": type(value).__name__}
        )
    return value
