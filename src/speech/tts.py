"""Text-to-speech synthesis for the receptionist voice."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from xml.sax.saxutils import escape

from openai import AsyncOpenAI, OpenAIError

from calls.errors import SynthesisError
from config.settings import Settings
from llm.openai_client import build_async_openai

LOGGER = logging.getLogger(__name__)


class BaseSynthesizer(ABC):
    """Interface for all text-to-speech synthesizers."""

    @abstractmethod
    async def synthesize(self, text: str) -> bytes:
        """Synthesize speech for ``text`` and return raw PCM16 mono audio."""


class OpenAISynthesizer(BaseSynthesizer):
    """OpenAI speech API returning raw 24 kHz PCM16."""

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None) -> None:
        self._client = client or build_async_openai(settings)
        self._model = settings.tts_model
        self._voice = settings.tts_voice

    async def synthesize(self, text: str) -> bytes:
        try:
            response = await self._client.audio.speech.create(
                model=self._model,
                voice=self._voice,
                input=text,
                response_format="pcm",
            )
        except OpenAIError as exc:
            raise SynthesisError(f"OpenAI speech synthesis failed: {exc}") from exc

        audio = response.content
        if not audio:
            raise SynthesisError("OpenAI speech synthesis returned no audio.")
        return audio


class AzureSynthesizer(BaseSynthesizer):
    """Wrapper around Azure Cognitive Services Speech SDK."""

    def __init__(self, settings: Settings) -> None:
        try:
            import azure.cognitiveservices.speech as speechsdk
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "azure-cognitiveservices-speech is required for AzureSynthesizer."
            ) from exc

        if not settings.azure_speech_key or not settings.azure_speech_region:
            raise ValueError("Azure speech key and region must be configured.")

        speech_config = speechsdk.SpeechConfig(
            subscription=settings.azure_speech_key,
            region=settings.azure_speech_region,
        )
        speech_config.speech_synthesis_voice_name = settings.azure_voice
        speech_config.set_speech_synthesis_output_format(
            speechsdk.SpeechSynthesisOutputFormat.Raw8Khz16BitMonoPcm
        )

        self._speechsdk = speechsdk
        self._speech_config = speech_config
        self._voice = settings.azure_voice

    async def synthesize(self, text: str) -> bytes:
        synthesizer = self._speechsdk.SpeechSynthesizer(
            speech_config=self._speech_config,
            audio_config=None,  # allow retrieving audio data directly
        )
        ssml = self._build_ssml(text=text, voice_name=self._voice)
        try:
            result = await asyncio.to_thread(lambda: synthesizer.speak_ssml_async(ssml).get())
        except RuntimeError as exc:
            # The Speech SDK surfaces transport and auth failures as RuntimeError.
            raise SynthesisError(f"Azure TTS failed: {exc}") from exc

        if result.reason == self._speechsdk.ResultReason.Canceled:
            cancellation = result.cancellation_details
            raise SynthesisError(f"Azure TTS canceled: {cancellation.error_details}")

        return result.audio_data

    @staticmethod
    def _build_ssml(text: str, voice_name: str) -> str:
        return (
            "<speak version='1.0' xml:lang='en-US'>"
            f"<voice name='{voice_name}'>{escape(text)}</voice>"
            "</speak>"
        )


def build_synthesizer(settings: Settings) -> BaseSynthesizer:
    """Factory returning the configured synthesizer."""

    if settings.tts_provider == "openai":
        return OpenAISynthesizer(settings)
    if settings.tts_provider == "azure":
        return AzureSynthesizer(settings)
    raise ValueError(f"Unsupported TTS provider: {settings.tts_provider}")
