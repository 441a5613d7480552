"""Configuration management for the well-being survey analytics tool."""

import logging
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class LLMConfig(BaseSettings):
    """LLM API configuration settings for narrative generation."""

    gemini_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    llm_provider: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    max_concurrent_requests: int = 3
    request_timeout: float = 60.0
    max_retries: int = 3
    retry_delay: float = 1.0
    max_output_tokens: int = 1024
    temperature: float = 0.7

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @validator("llm_provider")
    def validate_provider(cls, v):
        """Only providers with an implementation are accepted."""
        if v is None:
            return v
        v = v.lower().strip()
        if v not in ("gemini", "claude"):
            raise ValueError("LLM_PROVIDER must be one of: gemini, claude")
        return v

    @validator("max_concurrent_requests")
    def validate_concurrency(cls, v):
        if v < 1 or v > 50:
            raise ValueError("MAX_CONCURRENT_REQUESTS must be between 1 and 50")
        return v


class AppConfig(BaseSettings):
    """Application configuration settings."""

    app_name: str = "wellbeing-survey"
    app_version: str = "0.1.0"
    log_level: str = "INFO"
    debug: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @validator("log_level")
    def validate_log_level(cls, v):
        """Validate log level against the logging module's level names."""
        level = v.upper().strip()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL must be a logging level name, got '{v}'")
        return level


class Settings(BaseSettings):
    """Main application settings."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    app: AppConfig = Field(default_factory=AppConfig)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment."""
        return cls()
