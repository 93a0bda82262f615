"""
Inference Gateway Exceptions

Error taxonomy for the verified inference pipeline. Everything derived from
UpstreamError or InvalidFormat degrades to fallback content; SetupFailure is
fatal for the request.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base exception for the inference gateway"""

    def __init__(
        self,
        message: str,
        error_code: str = "GATEWAY_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class SetupFailure(GatewayError):
    """Identity or signer could not be constructed (missing key, bad RPC URL)"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="SETUP_FAILURE", details=details)


class UpstreamError(GatewayError):
    """Marketplace, provider or transport failure"""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        error_code: str = "UPSTREAM_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, details=details)
        self.provider = provider


class ServiceUnavailable(UpstreamError):
    """Provider unknown, unreachable, or could not be acknowledged"""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        error_code: str = "SERVICE_UNAVAILABLE",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, provider=provider, error_code=error_code, details=details)


class SigningFailed(UpstreamError):
    """Identity could not produce request headers for a prompt"""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message, provider=provider, error_code="SIGNING_FAILED", details=details
        )


class RequestFailed(UpstreamError):
    """Inference request failed on transport or with a non-2xx status"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[str] = None,
        provider: Optional[str] = None,
        error_code: str = "REQUEST_FAILED",
    ):
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if cause:
            details["cause"] = cause
        super().__init__(message, provider=provider, error_code=error_code, details=details)
        self.status_code = status_code
        self.cause = cause

    @property
    def retryable(self) -> bool:
        """Transport errors, timeouts, 429 and 5xx are worth another attempt"""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


class RequestTimeout(RequestFailed):
    """Inference attempt exceeded its hard timeout"""

    def __init__(self, message: str, timeout_duration: Optional[float] = None):
        super().__init__(message, cause="timeout", error_code="REQUEST_TIMEOUT")
        self.timeout_duration = timeout_duration
        if timeout_duration is not None:
            self.details["timeout_duration"] = timeout_duration


class VerificationUnavailable(UpstreamError):
    """Response verification could not be performed (transport error)"""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            provider=provider,
            error_code="VERIFICATION_UNAVAILABLE",
            details=details,
        )


class BrokerError(UpstreamError):
    """Broker service answered with an error status"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, provider=provider, error_code="BROKER_ERROR", details=details)
        self.status_code = status_code


class ProviderAlreadyAcknowledged(BrokerError):
    """Acknowledgement was already recorded for this identity and provider"""


class InvalidFormat(GatewayError):
    """Model output could not be decoded into the expected shape"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="INVALID_FORMAT", details=details)


class UnverifiedResponse(GatewayError):
    """Completion was not verified while the strict trust policy is active"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="UNVERIFIED_RESPONSE", details=details)
