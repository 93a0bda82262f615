"""
Inference Gateway Data Models

Pydantic models for the values that flow through the verified inference pipeline.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field, field_validator

# Header name -> value, bound to one (provider address, prompt) pair
SignedRequestHeaders = Dict[str, str]


class ServiceMetadata(BaseModel):
    """Resolved serving endpoint for a provider"""

    provider_address: str = Field(..., description="Provider address")
    endpoint: str = Field(..., description="OpenAI-compatible base URL")
    model: str = Field(..., description="Model identifier served by the provider")

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError("Endpoint must be an http(s) URL")
        return v.rstrip("/")


class ProviderSession(BaseModel):
    """Acknowledgement state for one provider, kept for the process lifetime"""

    provider_address: str = Field(..., description="Provider address")
    acknowledged: bool = Field(False, description="Whether the handshake completed")
    acknowledged_at: Optional[datetime] = Field(
        None, description="When the acknowledgement was recorded"
    )
    already_acknowledged: bool = Field(
        False, description="Broker reported an earlier acknowledgement"
    )


class InferenceResponse(BaseModel):
    """Raw completion returned by a provider"""

    response_id: str = Field(..., description="Correlation id used for verification")
    raw_text: str = Field("", description="Untyped provider output")
    model: Optional[str] = Field(None, description="Model reported by the provider")
    finish_reason: Optional[str] = Field(None, description="Reason for completion finish")
    latency_ms: Optional[float] = Field(None, description="Provider latency")


class InferenceOutcome(BaseModel):
    """A completion together with its trust signal"""

    response: InferenceResponse
    trusted: Optional[bool] = Field(
        None, description="True/False from verification, None when unavailable"
    )
    model: str = Field(..., description="Model resolved from service metadata")


class GatewayResult(BaseModel):
    """Validated (or fallback) result handed back to the API layer"""

    result: Union[Dict[str, Any], List[Dict[str, Any]]]
    trusted: Optional[bool] = None
    fallback: bool = False
    model: Optional[str] = None
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class ResilienceConfig(BaseModel):
    """Configuration for retry and timeout around the request executor"""

    max_retries: int = Field(2, ge=0, le=10, description="Maximum retry attempts")
    retry_delay_ms: int = Field(
        500, ge=0, le=30000, description="Initial retry delay"
    )
    retry_exponential_base: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff base"
    )
    timeout_ms: int = Field(60000, ge=100, le=300000, description="Per-attempt timeout")
