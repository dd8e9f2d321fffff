"""Environment configuration for linked-tickets."""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Zendesk custom field holding the "link:<id>" list. Supplied as a string.
    LINKED_TICKETS_CUSTOM_FIELD_ID: int

    # Used for API requests and for agent-facing ticket URLs
    ZENDESK_BASE_URL: str
    ZENDESK_EMAIL: Optional[str] = None
    ZENDESK_API_TOKEN: Optional[str] = None
    ZENDESK_TIMEOUT: float = 30.0

    SIMILAR_TICKET_LIMIT: int = 10

    @field_validator("LINKED_TICKETS_CUSTOM_FIELD_ID", mode="before")
    @classmethod
    def _parse_field_id(cls, value):
        if isinstance(value, str):
            return int(value.strip(), 10)
        return value

    @field_validator("ZENDESK_BASE_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


def load_settings(**overrides) -> Settings:
    """Read settings from the environment (and .env), applying overrides."""
    return Settings(**overrides)
