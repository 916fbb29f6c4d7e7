"""Speech-to-text for inbound caller audio."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from openai import AsyncOpenAI, OpenAIError

from calls.errors import TranscriptionError
from config.settings import Settings
from llm.openai_client import build_async_openai
from speech.audio import pcm16_from_bytes, pcm16_to_wav_bytes

LOGGER = logging.getLogger(__name__)


class BaseTranscriber(ABC):
    """Interface for all speech-to-text backends."""

    @abstractmethod
    async def transcribe(self, audio_bytes: bytes) -> str:
        """Return the text spoken in ``audio_bytes`` (raw PCM16 mono)."""


class OpenAITranscriber(BaseTranscriber):
    """Transcription through the OpenAI audio API (whisper-1)."""

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None) -> None:
        self._client = client or build_async_openai(settings)
        self._model = settings.transcription_model
        self._sample_rate = settings.inbound_sample_rate

    async def transcribe(self, audio_bytes: bytes) -> str:
        try:
            wav_bytes = pcm16_to_wav_bytes(pcm16_from_bytes(audio_bytes), self._sample_rate)
        except ValueError as exc:
            raise TranscriptionError(f"Audio could not be packaged for transcription: {exc}") from exc

        try:
            response = await self._client.audio.transcriptions.create(
                model=self._model,
                file=("utterance.wav", wav_bytes, "audio/wav"),
                response_format="text",
            )
        except OpenAIError as exc:
            raise TranscriptionError(f"OpenAI transcription failed: {exc}") from exc

        # response_format="text" yields a plain string; older SDKs wrap it.
        text = response if isinstance(response, str) else getattr(response, "text", "")
        LOGGER.debug("Transcribed %d bytes of audio into %d characters", len(audio_bytes), len(text))
        return text.strip()


def build_transcriber(settings: Settings) -> BaseTranscriber:
    """Factory returning the configured transcriber."""

    return OpenAITranscriber(settings)
