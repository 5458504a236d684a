"""Configuration settings for the chatrouter service"""

from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeatureFlags(BaseModel):
    """Which optional capabilities the configuration enables"""
    web_search: bool
    trading: bool
    ai: bool


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Hosting channel
    TG_TOKEN: str = Field(min_length=1)

    # AI collaborator
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    AI_MAX_TOKENS: int = 4096
    AI_TEMPERATURE: float = 0.7
    AI_TIMEOUT_SECONDS: float = Field(default=25.0, gt=0)
    SYSTEM_PROMPT: Optional[str] = None
    SERVICES_FILE: Optional[str] = "services.txt"

    # Optional collaborators
    SERPAPI_KEY: Optional[str] = None
    HYPERLIQUID_API_URL: str = "https://api.hyperliquid.xyz"

    # Server
    PORT: int = Field(default=3000, ge=1, le=65535)
    ENVIRONMENT: Literal["development", "production", "test"] = "development"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    # Routing
    MAX_HISTORY: int = Field(default=20, ge=1)
    MODULE_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    CONTEXT_STORE_MAX_SIZE: int = Field(default=10_000, ge=1)
    CONTEXT_TTL_SECONDS: Optional[int] = Field(default=86_400, ge=1)

    @field_validator("ANTHROPIC_API_KEY", "SERPAPI_KEY", "SYSTEM_PROMPT", "SERVICES_FILE", mode="before")
    @classmethod
    def empty_as_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def ai_deadline_within_module_timeout(self) -> "Settings":
        # The AI call must give up before the router cancels the module
        if self.AI_TIMEOUT_SECONDS >= self.MODULE_TIMEOUT_SECONDS:
            raise ValueError(
                f"AI_TIMEOUT_SECONDS ({self.AI_TIMEOUT_SECONDS}) must be lower than "
                f"MODULE_TIMEOUT_SECONDS ({self.MODULE_TIMEOUT_SECONDS})"
            )
        return self

    @property
    def features(self) -> FeatureFlags:
        return FeatureFlags(
            web_search=bool(self.SERPAPI_KEY),
            trading=True,
            ai=bool(self.ANTHROPIC_API_KEY)
        )


def get_settings() -> Settings:
    return Settings()
