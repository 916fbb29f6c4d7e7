from __future__ import annotations

import wave
from io import BytesIO

import numpy as np


def pcm16_from_bytes(raw: bytes) -> np.ndarray:
    """Interpret little-endian 16-bit mono PCM bytes as an int16 array."""

    if len(raw) % 2:
        raise ValueError("PCM16 audio must contain an even number of bytes.")
    return np.frombuffer(raw, dtype="<i2").astype(np.int16)


def pcm16_to_wav_bytes(pcm: np.ndarray, sample_rate: int) -> bytes:
    """Wrap PCM16 samples in a WAV container without touching the samples."""

    pcm_bytes = pcm.astype(np.int16).tobytes()
    buffer = BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm_bytes)
    return buffer.getvalue()
