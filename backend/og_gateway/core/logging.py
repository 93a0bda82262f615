"""
Logging configuration with automatic sensitive data redaction.

The gateway handles a wallet private key and produces request signatures;
neither may reach log output.
"""

import logging
import re
import sys
from typing import Any, Dict, List, Optional, Set
import structlog
from structlog.stdlib import LoggerFactory

from og_gateway.core.config import settings


class SensitiveDataRedactor:
    """
    Redacts sensitive data from log entries.

    Handles:
    - Exact key matches (private_key, signature, authorization, ...)
    - Pattern-based key matches (contains 'secret', 'token', ...)
    - Nested dictionaries and lists
    - Partial redaction (wallet addresses keep their last 4 chars)
    """

    # Keys that should be fully redacted (exact match, case-insensitive)
    FULLY_REDACTED_KEYS: Set[str] = {
        "private_key",
        "privatekey",
        "secret",
        "secret_key",
        "mnemonic",
        "seed_phrase",
        "signature",
        "x-og-signature",
        "authorization",
        "cookie",
        "access_token",
        "bearer_token",
        "api_key",
    }

    # Key patterns that should be fully redacted (substring match)
    REDACTED_KEY_PATTERNS: List[str] = [
        "password",
        "secret",
        "token",
        "credential",
        "private_key",
        "signature",
    ]

    # Keys that should be partially redacted (show last 4 chars)
    PARTIALLY_REDACTED_KEYS: Set[str] = {
        "address",
        "user_address",
        "wallet_address",
        "x-og-address",
    }

    # Regex patterns for detecting sensitive data in values
    VALUE_PATTERNS = {
        # 32-byte hex secrets (private keys); 20-byte addresses are left alone
        "hex_secret": re.compile(r"\b(0x)?[0-9a-fA-F]{64}\b"),
        "bearer": re.compile(r"Bearer\s+[a-zA-Z0-9._-]+", re.IGNORECASE),
    }

    REDACTED_PLACEHOLDER = "[REDACTED]"

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._fully_redacted_lower = {k.lower() for k in self.FULLY_REDACTED_KEYS}
        self._partially_redacted_lower = {k.lower() for k in self.PARTIALLY_REDACTED_KEYS}

    def redact(self, data: Any, key: Optional[str] = None) -> Any:
        """
        Recursively redact sensitive data.

        Args:
            data: The data to redact (can be dict, list, or primitive)
            key: The key name if this data is a value in a dict

        Returns:
            Redacted version of the data
        """
        if not self.enabled or data is None:
            return data

        if key:
            key_lower = key.lower()

            if key_lower in self._fully_redacted_lower:
                return self.REDACTED_PLACEHOLDER

            for pattern in self.REDACTED_KEY_PATTERNS:
                if pattern in key_lower:
                    return self.REDACTED_PLACEHOLDER

            if key_lower in self._partially_redacted_lower:
                return self._partial_redact(data)

        if isinstance(data, dict):
            return {k: self.redact(v, k) for k, v in data.items()}

        if isinstance(data, (list, tuple)):
            return [self.redact(item) for item in data]

        if isinstance(data, str):
            return self._redact_string_value(data)

        return data

    def _partial_redact(self, value: Any) -> str:
        """Show only the last 4 characters of an identifier."""
        value_str = str(value)
        if len(value_str) > 4:
            return f"****{value_str[-4:]}"
        return "****"

    def _redact_string_value(self, value: str) -> str:
        """Check string values for sensitive patterns and redact them."""
        if not value or len(value) < 10:
            return value

        result = self.VALUE_PATTERNS["bearer"].sub("Bearer [REDACTED]", value)
        result = self.VALUE_PATTERNS["hex_secret"].sub("[KEY_REDACTED]", result)
        return result


_redactor = SensitiveDataRedactor()


def sensitive_data_redactor_processor(
    logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Structlog processor that redacts sensitive data from log events.

    Runs before the final renderer so secrets never reach log output.
    """
    return _redactor.redact(event_dict)


def setup_logging() -> None:
    """Setup structured logging with automatic sensitive data redaction."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            sensitive_data_redactor_processor,
            structlog.processors.JSONRenderer()
            if settings.LOG_FORMAT == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.upper()),
    )

    # Set specific loggers to reduce noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger"""
    return structlog.get_logger(name)


def log_request(
    method: str,
    path: str,
    status_code: int,
    processing_time: float,
    request_id: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """Log HTTP request"""
    logger = get_logger("api.request")

    log_data = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "processing_time": processing_time,
        "request_id": request_id,
        **kwargs,
    }

    if status_code >= 500:
        logger.error("Request failed", **log_data)
    elif status_code >= 400:
        logger.warning("Request error", **log_data)
    else:
        logger.info("Request completed", **log_data)


def log_inference_event(
    use_case: str,
    event_type: str,
    request_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> None:
    """Log a gateway pipeline event (completed, fallback, unverified, ...)"""
    logger = get_logger("inference")

    log_data = {
        "use_case": use_case,
        "event_type": event_type,
        "request_id": request_id,
        "details": details or {},
        **kwargs,
    }

    if event_type == "fallback":
        logger.warning("Inference event", **log_data)
    else:
        logger.info("Inference event", **log_data)


def redact_sensitive_data(data: Any) -> Any:
    """
    Manually redact sensitive data from any data structure.

    Use this when data has to be logged through a plain stdlib logger.
    """
    return _redactor.redact(data)
