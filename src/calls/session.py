"""Per-call orchestration of the receptionist speech pipeline."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum
from typing import Final

from calls.business_hours import AFTER_HOURS_MESSAGE, is_business_hours, utc_now
from calls.errors import CompletionError, DispatchError, SynthesisError, TranscriptionError
from calls.schemas import Role, Turn, to_chat_messages
from calls.services import CallServices
from integrations.twilio_streaming import (
    IgnoredFrame,
    InboundFrame,
    MalformedFrame,
    StopFrame,
    encode_media_frame,
)

LOGGER = logging.getLogger(__name__)

FOLLOW_UP_KEYWORDS: Final[tuple[str, ...]] = ("schedule", "book")
FOLLOW_UP_TEMPLATE: Final[str] = "Please use this link to schedule your paid consultation: {link}"

SendFrame = Callable[[str], Awaitable[None]]
Clock = Callable[[], datetime]


class SessionState(str, Enum):
    ACTIVE = "active"
    TERMINATED = "terminated"


def mentions_scheduling(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in FOLLOW_UP_KEYWORDS)


def new_session_id() -> str:
    return f"call-{uuid.uuid4().hex[:12]}"


class CallSession:
    """State and pipeline for a single phone call.

    Inbound frames are queued and handled by one worker task, so the pipeline
    for an utterance always finishes before the next one starts. Each
    utterance goes through transcription, the business hours check, chat
    completion, an optional follow-up SMS and speech synthesis; any failing
    step drops that utterance and leaves the call running.

    Termination is immediate and final. Remote calls already in flight are
    left to finish, but whatever they return is discarded.
    """

    def __init__(
        self,
        services: CallServices,
        send: SendFrame,
        *,
        session_id: str | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.id = session_id or new_session_id()
        self.state = SessionState.ACTIVE
        self._services = services
        self._settings = services.settings
        self._send = send
        self._clock = clock
        self._transcript: list[Turn] = [Turn(role="system", content=services.system_prompt)]
        self._queue: asyncio.Queue[InboundFrame | None] = asyncio.Queue()
        self._worker: asyncio.Task | None = None

    @property
    def transcript(self) -> tuple[Turn, ...]:
        return tuple(self._transcript)

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def start(self) -> None:
        """Spawn the worker draining this call's inbound queue."""

        if self._worker is None:
            self._worker = asyncio.create_task(self._drain(), name=f"{self.id}-worker")

    def submit(self, frame: InboundFrame) -> None:
        """Accept an inbound frame; stop frames terminate right away."""

        if not self.is_active:
            LOGGER.debug("Call %s already terminated; ignoring %s", self.id, type(frame).__name__)
            return
        if isinstance(frame, StopFrame):
            self.terminate("stop event")
            return
        self._queue.put_nowait(frame)

    def terminate(self, reason: str = "stop event") -> bool:
        """Move to TERMINATED. Returns False if the call was already terminated."""

        if not self.is_active:
            return False
        self.state = SessionState.TERMINATED
        self._queue.put_nowait(None)
        LOGGER.info("Call %s terminated (%s) with %d turns", self.id, reason, len(self._transcript))
        return True

    async def wait_idle(self) -> None:
        """Block until every queued frame has been handled or discarded."""

        await self._queue.join()

    async def wait_closed(self) -> None:
        if self._worker is not None:
            await self._worker

    async def _drain(self) -> None:
        while True:
            frame = await self._queue.get()
            try:
                if frame is None or not self.is_active:
                    break
                await self.handle_frame(frame)
            except Exception:
                LOGGER.exception("Unexpected failure while handling a frame on call %s", self.id)
            finally:
                self._queue.task_done()

        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    async def handle_frame(self, frame: InboundFrame) -> None:
        """Run the pipeline for one inbound frame."""

        if not self.is_active:
            return
        if isinstance(frame, StopFrame):
            self.terminate("stop event")
            return
        if isinstance(frame, MalformedFrame):
            LOGGER.warning("Dropping malformed frame on call %s: %s", self.id, frame.reason)
            return
        if isinstance(frame, IgnoredFrame):
            LOGGER.debug("Call %s: ignoring %s event", self.id, frame.event)
            return
        await self._respond_to_utterance(frame.payload)

    async def _respond_to_utterance(self, audio: bytes) -> None:
        try:
            text = await self._services.transcriber.transcribe(audio)
        except TranscriptionError as exc:
            LOGGER.warning("Dropping utterance on call %s: %s", self.id, exc.detail)
            return
        if self._discarded("transcription"):
            return

        text = text.strip()
        if not text:
            return
        self._append("user", text)

        # Hours may change mid-call, so the policy is evaluated per utterance.
        if not is_business_hours(self._clock()):
            LOGGER.info("Call %s: outside business hours, playing after-hours message", self.id)
            self._append("assistant", AFTER_HOURS_MESSAGE)
            await self._speak(AFTER_HOURS_MESSAGE)
            return

        try:
            reply = await self._services.llm.chat(
                to_chat_messages(self._transcript),
                temperature=self._settings.llm_temperature,
            )
        except CompletionError as exc:
            LOGGER.warning("Dropping utterance on call %s: %s", self.id, exc.detail)
            return
        if self._discarded("completion"):
            return

        reply = reply.strip()
        if not reply:
            LOGGER.warning("Dropping utterance on call %s: completion returned no text", self.id)
            return
        self._append("assistant", reply)

        await self._maybe_send_followup(reply)
        if self._discarded("follow-up dispatch"):
            return

        await self._speak(reply)

    async def _maybe_send_followup(self, reply: str) -> None:
        if not mentions_scheduling(reply):
            return
        notifier = self._services.notifier
        if not self._settings.followup_enabled or notifier is None:
            LOGGER.debug("Call %s: scheduling intent detected but follow-up SMS is not configured", self.id)
            return

        body = FOLLOW_UP_TEMPLATE.format(link=self._settings.scheduling_link)
        try:
            await notifier.notify(self._settings.followup_contact, body)
        except DispatchError as exc:
            LOGGER.warning("Call %s: follow-up SMS failed: %s", self.id, exc.detail)

    async def _speak(self, text: str) -> None:
        try:
            audio = await self._services.synthesizer.synthesize(text)
        except SynthesisError as exc:
            # The turn stays in the transcript; the caller just hears nothing.
            LOGGER.warning("Call %s: reply could not be synthesized: %s", self.id, exc.detail)
            return
        if self._discarded("synthesis"):
            return
        await self._send(encode_media_frame(audio))

    def _append(self, role: Role, content: str) -> None:
        self._transcript.append(Turn(role=role, content=content))

    def _discarded(self, step: str) -> bool:
        if self.is_active:
            return False
        LOGGER.info("Call %s terminated during %s; discarding result", self.id, step)
        return True
