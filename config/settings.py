"""
Configuration management using Pydantic Settings.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings

DEFAULT_MAX_OUTPUT_TOKENS = 100000


class Settings(BaseSettings):
    """Application settings with validation."""

    # YouTube Data API v3
    youtube_api_key: str = Field(..., description="YouTube Data API v3 key")
    youtube_requests_per_minute: int = Field(50, description="YouTube API requests per minute")

    # LLM Provider
    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    anthropic_api_key: Optional[str] = Field(None, description="Anthropic API key")
    gemini_api_key: Optional[str] = Field(None, description="Google Gemini API key")
    llm_provider: str = Field("openai", description="LLM provider to use: openai, anthropic, or gemini")
    llm_model: str = Field("gpt-5-mini", description="LLM model to use for summarization")
    llm_max_output_tokens: int = Field(
        DEFAULT_MAX_OUTPUT_TOKENS, description="Upper bound on tokens generated per summary"
    )

    # Google Docs target
    google_docs_document_id: str = Field(..., description="ID of the Google Doc to publish into")
    google_docs_client_email: str = Field(..., description="Service account client email")
    google_docs_private_key: str = Field(..., description="Service account private key (PEM)")

    # Database Configuration
    database_url: str = Field(
        "sqlite+aiosqlite:///./pod_worker.db",
        description="Database connection URL"
    )

    # Channel catalog
    channels_config_path: str = Field("config/channels.json", description="Path to channels.json")

    # Processing
    max_results_per_channel: int = Field(10, ge=1, le=50, description="Videos fetched per channel per run")
    days_to_look_back: int = Field(30, ge=1, description="Only process videos published within this window")
    transcript_timeout_seconds: float = Field(60.0, gt=0, description="Transcript fetch timeout")
    summary_timeout_seconds: float = Field(180.0, gt=0, description="Summary generation timeout")

    # Logging Configuration
    log_level: str = Field("INFO", description="Logging level")
    log_file: str = Field("./logs/pod_worker.log", description="Log file path")

    # Environment
    environment: str = Field("development", description="Environment: development, production")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
        frozen = True

    @validator('llm_provider')
    def validate_llm_provider(cls, v):
        """Validate LLM provider."""
        if v not in ['openai', 'anthropic', 'gemini']:
            raise ValueError('llm_provider must be one of: "openai", "anthropic", or "gemini"')
        return v

    @validator('llm_model')
    def validate_llm_model(cls, v):
        """Blank model names fall back to the default."""
        return v.strip() or "gpt-5-mini"

    @validator('llm_max_output_tokens')
    def validate_max_output_tokens(cls, v):
        """Non-positive token caps fall back to the default."""
        return v if v > 0 else DEFAULT_MAX_OUTPUT_TOKENS

    @validator('google_docs_private_key')
    def unescape_private_key(cls, v):
        """Keys pasted into .env files carry literal \\n sequences."""
        return v.replace("\\n", "\n")

    @validator('log_level')
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    def validate_api_keys(self) -> None:
        """Validate that required API keys are present based on provider."""
        if self.llm_provider == "openai" and not self.openai_api_key:
            raise ValueError("openai_api_key is required when using OpenAI provider")
        if self.llm_provider == "anthropic" and not self.anthropic_api_key:
            raise ValueError("anthropic_api_key is required when using Anthropic provider")
        if self.llm_provider == "gemini" and not self.gemini_api_key:
            raise ValueError("gemini_api_key is required when using Gemini provider")

    def setup_logging(self) -> None:
        """Setup logging configuration."""
        # Create logs directory if it doesn't exist
        log_path = Path(self.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logging.basicConfig(
            level=getattr(logging, self.log_level),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(self.log_file, encoding='utf-8'),
                logging.StreamHandler()
            ]
        )

        # Set specific logger levels
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
        logging.getLogger("googleapiclient").setLevel(logging.WARNING)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    settings.validate_api_keys()
    settings.setup_logging()
    return settings
