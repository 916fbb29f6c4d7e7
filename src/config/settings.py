"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration.

    Instances are frozen: one is built at startup and shared read-only by
    every call session.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    log_level: str = Field(default="INFO")

    # Server
    port: int = Field(default=8081, description="Port the HTTP/WebSocket server listens on.")
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL used to build the stream URL (e.g. https://<ngrok>.ngrok-free.app).",
    )

    # OpenAI (speech recognition, completion, speech synthesis)
    openai_api_key: str | None = Field(default=None)
    openai_base_url: str | None = Field(default=None)

    # Speech recognition
    transcription_model: str = Field(default="whisper-1")
    inbound_sample_rate: int = Field(
        default=8000,
        description="Sample rate of the PCM16 mono audio carried in inbound media frames.",
    )

    # LLM connectivity
    llm_provider: Literal["openai", "self_hosted_vllm"] = Field(default="openai")
    llm_endpoint: str | None = Field(
        default=None, description="HTTP endpoint for the self-hosted inference server."
    )
    llm_api_key: str | None = Field(
        default=None, description="Falls back to OPENAI_API_KEY for the openai provider."
    )
    llm_model: str = Field(default="gpt-3.5-turbo")
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    # Text to speech
    tts_provider: Literal["openai", "azure"] = Field(default="openai")
    tts_model: str = Field(default="gpt-4o-mini-tts")
    tts_voice: str = Field(default="alloy")
    azure_speech_key: str | None = Field(default=None)
    azure_speech_region: str | None = Field(default=None)
    azure_voice: str = Field(default="en-US-JennyNeural")

    # Twilio
    twilio_account_sid: str | None = Field(default=None)
    twilio_auth_token: str | None = Field(default=None)
    twilio_number: str | None = Field(default=None, description="E.164 originating number for SMS.")

    # Receptionist behaviour
    system_prompt: str | None = Field(
        default=None,
        description="Training script for the receptionist. Defaults to prompts/receptionist.txt.",
    )
    scheduling_link: str | None = Field(
        default=None, description="Booking link sent by SMS when the assistant suggests scheduling."
    )
    followup_contact: str | None = Field(
        default=None, description="E.164 destination number for follow-up SMS."
    )

    @field_validator(
        "public_base_url",
        "openai_api_key",
        "openai_base_url",
        "llm_endpoint",
        "llm_api_key",
        "azure_speech_key",
        "azure_speech_region",
        "twilio_account_sid",
        "twilio_auth_token",
        "twilio_number",
        "system_prompt",
        "scheduling_link",
        "followup_contact",
        mode="before",
    )
    @classmethod
    def blank_as_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def followup_enabled(self) -> bool:
        return bool(self.scheduling_link and self.followup_contact)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
