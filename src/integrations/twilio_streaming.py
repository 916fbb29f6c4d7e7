"""Wire format of the Twilio Media Streams duplex connection.

Inbound text frames are decoded into a closed set of variants so that the
call session never has to deal with raw JSON or decoding exceptions.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Union

from pydantic import BaseModel, ValidationError

from calls.errors import MalformedFrameError

# Control events Twilio sends around the audio; they carry nothing the call needs.
CONTROL_EVENTS = frozenset({"connected", "start", "mark", "dtmf"})


class StreamMedia(BaseModel):
    payload: str


class StreamMessage(BaseModel):
    event: str
    media: StreamMedia | None = None


@dataclass(frozen=True)
class MediaFrame:
    payload: bytes


@dataclass(frozen=True)
class StopFrame:
    pass


@dataclass(frozen=True)
class MalformedFrame:
    reason: str


@dataclass(frozen=True)
class IgnoredFrame:
    event: str


InboundFrame = Union[MediaFrame, StopFrame, MalformedFrame, IgnoredFrame]


def decode_media_payload(payload_b64: str) -> bytes:
    """Decode the base64 PCM16 payload of a media frame."""

    try:
        raw = base64.b64decode(payload_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedFrameError(f"Invalid base64 media payload: {exc}") from exc
    if not raw:
        raise MalformedFrameError("Empty media payload.")
    if len(raw) % 2:
        raise MalformedFrameError("PCM16 media payload has an odd number of bytes.")
    return raw


def decode_frame(text: str) -> InboundFrame:
    """Parse one inbound WebSocket text frame."""

    try:
        message = StreamMessage.model_validate_json(text)
    except ValidationError as exc:
        return MalformedFrame(reason=f"Invalid stream message: {exc.errors()[0]['msg']}")

    if message.event == "stop":
        return StopFrame()
    if message.event == "media":
        if message.media is None:
            return MalformedFrame(reason="Media event without media body.")
        try:
            return MediaFrame(payload=decode_media_payload(message.media.payload))
        except MalformedFrameError as exc:
            return MalformedFrame(reason=exc.detail)
    if message.event in CONTROL_EVENTS:
        return IgnoredFrame(event=message.event)
    return MalformedFrame(reason=f"Unknown stream event: {message.event!r}")


def encode_media_frame(audio: bytes) -> str:
    """Build the outbound media frame carrying synthesized audio."""

    payload = base64.b64encode(audio).decode("ascii")
    return json.dumps({"event": "media", "media": {"payload": payload}})
