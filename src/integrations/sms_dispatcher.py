"""Follow-up text messages sent when a caller is ready to book."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from requests.exceptions import RequestException
from twilio.base.exceptions import TwilioException

from calls.errors import DispatchError
from config.settings import Settings
from integrations.twilio_client import TwilioConfig, build_twilio_client, get_twilio_config

LOGGER = logging.getLogger(__name__)


class BaseNotifier(ABC):
    """Sends a text body to a contact address."""

    @abstractmethod
    async def notify(self, contact: str, body: str) -> None:
        """Deliver ``body`` to ``contact``; raise DispatchError on failure."""


class TwilioSmsNotifier(BaseNotifier):
    """SMS delivery through the Twilio Messaging API."""

    def __init__(self, cfg: TwilioConfig, client=None) -> None:
        self._from_number = cfg.from_number
        self._client = client or build_twilio_client(cfg)

    async def notify(self, contact: str, body: str) -> None:
        try:
            # The Twilio REST client is synchronous.
            message = await asyncio.to_thread(
                self._client.messages.create,
                to=contact,
                from_=self._from_number,
                body=body,
            )
        except (TwilioException, RequestException) as exc:
            LOGGER.error("Twilio SMS to %s failed: %s", contact, exc)
            raise DispatchError(f"Twilio SMS failed: {exc}") from exc
        LOGGER.info("Sent follow-up SMS %s to %s", getattr(message, "sid", "?"), contact)


def build_notifier(settings: Settings) -> BaseNotifier | None:
    """Return an SMS notifier, or None when Twilio messaging is not configured."""

    try:
        cfg = get_twilio_config(settings)
    except ValueError as exc:
        LOGGER.warning("Follow-up SMS disabled: %s", exc)
        return None
    return TwilioSmsNotifier(cfg)
