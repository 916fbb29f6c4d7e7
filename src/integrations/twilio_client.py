from __future__ import annotations

from dataclasses import dataclass

from config.settings import Settings


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: str
    auth_token: str
    from_number: str


def get_twilio_config(settings: Settings) -> TwilioConfig:
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        raise ValueError("Twilio credentials are not configured")
    if not settings.twilio_number:
        raise ValueError("Twilio originating number is not configured")

    return TwilioConfig(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_number,
    )


def build_twilio_client(cfg: TwilioConfig):
    from twilio.rest import Client

    return Client(cfg.account_sid, cfg.auth_token)
