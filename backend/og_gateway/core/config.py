"""
Configuration settings for the application
"""

import os
from typing import List, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = os.getenv("APP_NAME", "OG Inference Gateway")
    APP_DEBUG: bool = os.getenv("APP_DEBUG", "False").lower() == "true"
    APP_HOST: str = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT: int = int(os.getenv("APP_PORT", "8000"))

    # CORS origins for the browser client
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Detailed logging for LLM interactions
    LOG_LLM_PROMPTS: bool = (
        os.getenv("LOG_LLM_PROMPTS", "False").lower() == "true"
    )  # Set to True to log prompts and raw completions

    # Identity (wallet key + chain RPC used to derive the signer)
    PRIVATE_KEY: Optional[str] = os.getenv("PRIVATE_KEY")
    OG_RPC_URL: str = os.getenv("OG_RPC_URL", "https://evmrpc-testnet.0g.ai")

    # Inference marketplace
    OG_PROVIDER_ADDRESS: Optional[str] = os.getenv("OG_PROVIDER_ADDRESS")
    OG_BROKER_URL: str = os.getenv("OG_BROKER_URL", "http://localhost:3100")
    OG_BROKER_TIMEOUT_MS: int = int(os.getenv("OG_BROKER_TIMEOUT_MS", "15000"))

    # Request executor resilience
    OG_REQUEST_TIMEOUT_MS: int = int(os.getenv("OG_REQUEST_TIMEOUT_MS", "60000"))
    OG_MAX_RETRIES: int = int(os.getenv("OG_MAX_RETRIES", "2"))
    OG_RETRY_DELAY_MS: int = int(os.getenv("OG_RETRY_DELAY_MS", "500"))
    OG_RETRY_EXPONENTIAL_BASE: float = float(
        os.getenv("OG_RETRY_EXPONENTIAL_BASE", "2.0")
    )

    # Trust policy: when true, results that fail verification are replaced
    # by fallback content instead of being returned with valid=false
    OG_REJECT_UNVERIFIED: bool = False

    # Logging
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @field_validator("APP_DEBUG", "LOG_LLM_PROMPTS", "OG_REJECT_UNVERIFIED", mode="before")
    @classmethod
    def parse_bool(cls, v):
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes")
        return bool(v)

    @field_validator("OG_MAX_RETRIES")
    @classmethod
    def validate_retries(cls, v):
        if v < 0 or v > 10:
            raise ValueError("OG_MAX_RETRIES must be between 0 and 10")
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        # Ignore unknown environment variables to avoid validation errors
        # when optional/deprecated flags are present in .env
        "extra": "ignore",
    }


# Global settings instance
settings = Settings()
