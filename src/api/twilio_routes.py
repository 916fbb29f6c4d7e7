"""Twilio Voice integration.

This module provides:
- The voice webhook (TwiML) telling Twilio to open a Media Stream.
- The Media Stream WebSocket carrying call audio in both directions.

Each WebSocket connection is one phone call and gets its own ``CallSession``.
"""

from __future__ import annotations

import logging
from xml.sax.saxutils import escape

from fastapi import APIRouter, Depends, Request, Response, WebSocket, WebSocketDisconnect
from starlette.types import Message

from api.dependencies import get_app_settings, get_call_services
from calls.business_hours import utc_now
from calls.services import CallServices
from calls.session import CallSession, Clock
from config.settings import Settings
from integrations.twilio_streaming import InboundFrame, MalformedFrame, decode_frame

LOGGER = logging.getLogger(__name__)

RECORDING_NOTICE = "This call may be recorded. Connecting you now."
STREAM_PATH = "/call"

router = APIRouter(tags=["twilio"])


def get_clock() -> Clock:
    return utc_now


def _twiml_response(xml: str) -> Response:
    # Twilio expects application/xml
    return Response(content=xml, media_type="application/xml")


def _to_ws_url(http_url: str) -> str:
    if http_url.startswith("https://"):
        return "wss://" + http_url.removeprefix("https://")
    if http_url.startswith("http://"):
        return "ws://" + http_url.removeprefix("http://")
    return http_url


def _stream_url(request: Request, settings: Settings) -> str:
    if settings.public_base_url:
        return _to_ws_url(settings.public_base_url.rstrip("/")) + STREAM_PATH
    # Behind proxies (ngrok, Replit) the public host is in X-Forwarded-Host.
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    return f"wss://{host}{STREAM_PATH}"


def _twiml_say_and_stream(*, say_text: str, stream_url: str) -> str:
    say = escape(say_text)
    stream = escape(stream_url, {'"': "&quot;"})
    return (
        "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"
        "<Response>"
        f"<Say>{say}</Say>"
        "<Connect>"
        f"<Stream url=\"{stream}\" />"
        "</Connect>"
        "</Response>"
    )


def _frame_from_message(message: Message) -> InboundFrame:
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(code=message.get("code", 1000))
    text = message.get("text")
    if text is None:
        # Media Streams only sends JSON text frames.
        return MalformedFrame(reason="binary frame")
    return decode_frame(text)


@router.api_route("/twiml", methods=["GET", "POST"])
async def twilio_voice_webhook(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> Response:
    stream_url = _stream_url(request, settings)
    LOGGER.info("Incoming call; streaming audio to %s", stream_url)
    return _twiml_response(_twiml_say_and_stream(say_text=RECORDING_NOTICE, stream_url=stream_url))


@router.websocket(STREAM_PATH)
async def twilio_media_stream(
    websocket: WebSocket,
    services: CallServices = Depends(get_call_services),
    clock: Clock = Depends(get_clock),
) -> None:
    await websocket.accept()

    async def send(frame: str) -> None:
        await websocket.send_text(frame)

    session = CallSession(services, send, clock=clock)
    session.start()
    LOGGER.info("Call %s connected", session.id)

    try:
        while session.is_active:
            session.submit(_frame_from_message(await websocket.receive()))
    except WebSocketDisconnect:
        session.terminate("connection closed")
    else:
        await websocket.close()
    finally:
        session.terminate("stream handler exited")
        await session.wait_closed()
        LOGGER.info("Call %s closed", session.id)
