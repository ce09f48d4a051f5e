"""
Configuration Settings

Environment variables and application configuration.
Includes LangSmith tracing setup for pipeline observability.
"""

import os
import logging
from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "PlanVision API"
    app_version: str = "1.0.0"
    debug: bool = True

    # API settings
    api_prefix: str = "/api/v1"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Accept comma-separated string or list for CORS origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return self.cors_origins

    # Google AI
    google_api_key: str = ""
    # Room detection (polygon tracing on floor plans)
    vision_model_name: str = "gemini-2.0-flash-001"
    # Isometric render generation
    render_image_model_name: str = "gemini-2.5-flash-image"

    # Room detection
    detection_batch_size: int = 4
    default_confidence: float = 0.9

    # Region editing / compositing
    default_feather_px: int = 12
    crop_padding_px: int = 20
    default_strength: float = 0.8

    @field_validator("crop_padding_px")
    @classmethod
    def check_crop_padding(cls, v):
        """Context padding around a room crop stays within 10-30px."""
        if not 10 <= v <= 30:
            raise ValueError("crop_padding_px must be between 10 and 30")
        return v

    # Inpainting (Replicate predictions API)
    replicate_api_token: str = ""
    replicate_api_url: str = "https://api.replicate.com/v1/predictions"
    inpaint_model_version: str = (
        "stability-ai/sdxl:39ed52f2a78e934b3ba6e2a89f5b1c712de7dfea535525255b1aa35c5565e08b"
    )
    inpaint_poll_interval_s: float = 1.0
    inpaint_max_poll_attempts: int = 60
    inpaint_request_timeout_s: float = 30.0

    # LangSmith Tracing
    langchain_tracing_v2: bool = True
    langchain_api_key: str = ""
    langchain_project: str = "planvision"
    langchain_endpoint: str = "https://api.smith.langchain.com"

    class Config:
        env_file = (".env", "../.env", "../../.env")
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def setup_langsmith() -> bool:
    """
    Setup LangSmith tracing environment variables.

    Call this at application startup to enable tracing.
    Returns True if tracing is enabled, False otherwise.
    """
    settings = get_settings()

    if settings.langchain_api_key and settings.langchain_tracing_v2:
        os.environ["LANGCHAIN_TRACING_V2"] = "true"
        os.environ["LANGCHAIN_API_KEY"] = settings.langchain_api_key
        os.environ["LANGCHAIN_PROJECT"] = settings.langchain_project
        os.environ["LANGCHAIN_ENDPOINT"] = settings.langchain_endpoint

        logger.info(
            "LangSmith tracing enabled (project=%s, endpoint=%s)",
            settings.langchain_project,
            settings.langchain_endpoint,
        )
        return True

    os.environ["LANGCHAIN_TRACING_V2"] = "false"
    logger.warning("LangSmith tracing NOT configured. Set LANGCHAIN_API_KEY in your .env file")
    return False
