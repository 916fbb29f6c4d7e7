"""Domain-specific exceptions raised by the call pipeline.

These exceptions are safe to import from API layers without pulling in any
provider SDKs.
"""

from __future__ import annotations


class CallPipelineError(Exception):
    default_detail: str = "Call pipeline error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class MalformedFrameError(CallPipelineError):
    default_detail = "Malformed media stream frame."


class TranscriptionError(CallPipelineError):
    default_detail = "Transcription failed."


class CompletionError(CallPipelineError):
    default_detail = "Chat completion failed."


class SynthesisError(CallPipelineError):
    default_detail = "Speech synthesis failed."


class DispatchError(CallPipelineError):
    default_detail = "Follow-up message dispatch failed."
