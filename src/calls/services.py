"""Process-wide collaborators shared by every call session."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from config.settings import Settings
from integrations.sms_dispatcher import BaseNotifier, build_notifier
from llm.base import BaseLLMClient
from llm.factory import build_llm_client
from prompts.loader import resolve_system_prompt
from speech.transcriber import BaseTranscriber, build_transcriber
from speech.tts import BaseSynthesizer, build_synthesizer

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallServices:
    """Immutable bundle of settings and adapters handed to each session."""

    settings: Settings
    system_prompt: str
    transcriber: BaseTranscriber
    llm: BaseLLMClient
    synthesizer: BaseSynthesizer
    notifier: BaseNotifier | None = None


def build_call_services(settings: Settings) -> CallServices:
    """Construct all remote adapters once at startup."""

    services = CallServices(
        settings=settings,
        system_prompt=resolve_system_prompt(settings.system_prompt),
        transcriber=build_transcriber(settings),
        llm=build_llm_client(settings),
        synthesizer=build_synthesizer(settings),
        notifier=build_notifier(settings),
    )
    if not settings.followup_enabled:
        LOGGER.info("Scheduling link or follow-up contact not configured; follow-up SMS suppressed")
    return services
