from __future__ import annotations

import asyncio
import json
import sys
from types import SimpleNamespace

import httpx
import pytest
from fakes import make_settings
from openai import OpenAIError
from twilio.base.exceptions import TwilioRestException

from calls.errors import CompletionError, DispatchError, SynthesisError, TranscriptionError
from calls.services import build_call_services
from integrations.sms_dispatcher import TwilioSmsNotifier, build_notifier
from integrations.twilio_client import TwilioConfig
from llm.openai_client import OpenAIClient
from llm.vllm_client import VLLMClient
from prompts.loader import resolve_system_prompt
from speech.transcriber import OpenAITranscriber
from speech.tts import AzureSynthesizer, OpenAISynthesizer


def _async_returning(value=None, exc: Exception | None = None, calls: list | None = None):
    async def create(**kwargs):
        if calls is not None:
            calls.append(kwargs)
        if exc is not None:
            raise exc
        return value

    return create


def test_openai_transcriber_uploads_wav_and_strips_text():
    calls: list[dict] = []
    client = SimpleNamespace(
        audio=SimpleNamespace(transcriptions=SimpleNamespace(create=_async_returning(" Hello there \n", calls=calls)))
    )
    transcriber = OpenAITranscriber(make_settings(), client=client)

    text = asyncio.run(transcriber.transcribe(b"\x00\x00" * 80))

    assert text == "Hello there"
    assert calls[0]["model"] == "whisper-1"
    filename, wav_bytes, mime = calls[0]["file"]
    assert filename.endswith(".wav")
    assert wav_bytes[:4] == b"RIFF"
    assert mime == "audio/wav"


def test_openai_transcriber_wraps_provider_errors():
    client = SimpleNamespace(
        audio=SimpleNamespace(transcriptions=SimpleNamespace(create=_async_returning(exc=OpenAIError("down"))))
    )
    transcriber = OpenAITranscriber(make_settings(), client=client)

    with pytest.raises(TranscriptionError):
        asyncio.run(transcriber.transcribe(b"\x00\x00"))


def test_openai_synthesizer_requests_raw_pcm():
    calls: list[dict] = []
    response = SimpleNamespace(content=b"\x01\x02")
    client = SimpleNamespace(audio=SimpleNamespace(speech=SimpleNamespace(create=_async_returning(response, calls=calls))))
    synthesizer = OpenAISynthesizer(make_settings(), client=client)

    audio = asyncio.run(synthesizer.synthesize("Hello"))

    assert audio == b"\x01\x02"
    assert calls[0]["response_format"] == "pcm"
    assert calls[0]["voice"] == "alloy"
    assert calls[0]["model"] == "gpt-4o-mini-tts"


def test_openai_synthesizer_wraps_provider_errors():
    client = SimpleNamespace(
        audio=SimpleNamespace(speech=SimpleNamespace(create=_async_returning(exc=OpenAIError("down"))))
    )
    synthesizer = OpenAISynthesizer(make_settings(), client=client)

    with pytest.raises(SynthesisError):
        asyncio.run(synthesizer.synthesize("Hello"))


def test_openai_chat_client_returns_first_choice():
    calls: list[dict] = []
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="Hi!"))])
    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_async_returning(response, calls=calls))))
    llm = OpenAIClient(make_settings(), client=client)

    reply = asyncio.run(llm.chat([{"role": "system", "content": "S"}], temperature=0.7))

    assert reply == "Hi!"
    assert calls[0]["model"] == "gpt-3.5-turbo"
    assert calls[0]["messages"] == [{"role": "system", "content": "S"}]


def test_openai_chat_client_wraps_provider_errors():
    client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=_async_returning(exc=OpenAIError("quota"))))
    )
    llm = OpenAIClient(make_settings(), client=client)

    with pytest.raises(CompletionError):
        asyncio.run(llm.chat([]))


def test_vllm_client_posts_chat_completion():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"choices": [{"message": {"content": "Hello from vLLM"}}]})

    settings = make_settings(llm_provider="self_hosted_vllm", llm_endpoint="http://llm:8000/", llm_api_key="k")
    llm = VLLMClient(settings, transport=httpx.MockTransport(handler))

    reply = asyncio.run(llm.chat([{"role": "user", "content": "Hi"}]))

    assert reply == "Hello from vLLM"
    assert str(seen[0].url) == "http://llm:8000/v1/chat/completions"
    assert seen[0].headers["Authorization"] == "Bearer k"
    assert json.loads(seen[0].content)["messages"] == [{"role": "user", "content": "Hi"}]


def test_vllm_client_wraps_http_errors():
    transport = httpx.MockTransport(lambda request: httpx.Response(503, text="overloaded"))
    settings = make_settings(llm_provider="self_hosted_vllm", llm_endpoint="http://llm:8000")
    llm = VLLMClient(settings, transport=transport)

    with pytest.raises(CompletionError):
        asyncio.run(llm.chat([]))


class _FakeMessages:
    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc
        self.created: list[dict] = []

    def create(self, **kwargs):
        self.created.append(kwargs)
        if self.exc is not None:
            raise self.exc
        return SimpleNamespace(sid="SM123")


def _twilio_cfg() -> TwilioConfig:
    return TwilioConfig(account_sid="AC123", auth_token="token", from_number="+15005550001")


def test_twilio_sms_notifier_sends_from_configured_number():
    messages = _FakeMessages()
    notifier = TwilioSmsNotifier(_twilio_cfg(), client=SimpleNamespace(messages=messages))

    asyncio.run(notifier.notify("+15005550006", "Book here"))

    assert messages.created == [{"to": "+15005550006", "from_": "+15005550001", "body": "Book here"}]


def test_twilio_sms_notifier_raises_dispatch_error():
    messages = _FakeMessages(exc=TwilioRestException(400, "https://api.twilio.com/Messages", "bad number"))
    notifier = TwilioSmsNotifier(_twilio_cfg(), client=SimpleNamespace(messages=messages))

    with pytest.raises(DispatchError):
        asyncio.run(notifier.notify("+1", "Book here"))


def test_build_notifier_is_disabled_without_twilio_credentials():
    assert build_notifier(make_settings(twilio_auth_token=None)) is None
    assert build_notifier(make_settings(twilio_number="")) is None


def test_blank_followup_settings_disable_followup():
    assert make_settings().followup_enabled
    assert not make_settings(scheduling_link="  ").followup_enabled
    assert not make_settings(followup_contact=None).followup_enabled


def test_system_prompt_falls_back_to_bundled_script():
    assert resolve_system_prompt("  Custom script ") == "Custom script"
    assert "receptionist" in resolve_system_prompt(None)


def test_build_call_services_wires_configured_providers():
    services = build_call_services(make_settings(system_prompt=None))

    assert isinstance(services.transcriber, OpenAITranscriber)
    assert isinstance(services.llm, OpenAIClient)
    assert isinstance(services.synthesizer, OpenAISynthesizer)
    assert isinstance(services.notifier, TwilioSmsNotifier)
    assert services.system_prompt.startswith("You are the receptionist")


def _install_fake_speechsdk(monkeypatch, future) -> None:
    class SpeechConfig:
        def __init__(self, *, subscription: str, region: str) -> None:
            self.speech_synthesis_voice_name = None

        def set_speech_synthesis_output_format(self, output_format) -> None:
            self.output_format = output_format

    speechsdk = SimpleNamespace(
        SpeechConfig=SpeechConfig,
        SpeechSynthesisOutputFormat=SimpleNamespace(Raw8Khz16BitMonoPcm="raw-8khz-16bit-mono-pcm"),
        SpeechSynthesizer=lambda **kwargs: SimpleNamespace(speak_ssml_async=lambda ssml: future),
        ResultReason=SimpleNamespace(Canceled="canceled", SynthesizingAudioCompleted="completed"),
    )
    cognitiveservices = SimpleNamespace(speech=speechsdk)
    monkeypatch.setitem(sys.modules, "azure", SimpleNamespace(cognitiveservices=cognitiveservices))
    monkeypatch.setitem(sys.modules, "azure.cognitiveservices", cognitiveservices)
    monkeypatch.setitem(sys.modules, "azure.cognitiveservices.speech", speechsdk)


def _azure_settings():
    return make_settings(tts_provider="azure", azure_speech_key="key", azure_speech_region="westeurope")


def test_azure_synthesizer_returns_audio(monkeypatch):
    result = SimpleNamespace(reason="completed", audio_data=b"\x01\x00")
    _install_fake_speechsdk(monkeypatch, SimpleNamespace(get=lambda: result))

    synthesizer = AzureSynthesizer(_azure_settings())

    assert asyncio.run(synthesizer.synthesize("Hello & welcome")) == b"\x01\x00"


def test_azure_synthesizer_wraps_sdk_errors(monkeypatch):
    def get():
        raise RuntimeError("Connection refused")

    _install_fake_speechsdk(monkeypatch, SimpleNamespace(get=get))

    synthesizer = AzureSynthesizer(_azure_settings())

    with pytest.raises(SynthesisError, match="Connection refused"):
        asyncio.run(synthesizer.synthesize("Hello"))
