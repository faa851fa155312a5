"""Outbound SMS over Twilio.

The Twilio REST client is synchronous, so sends run in a worker thread to
keep the event loop free.
"""

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client

from trekmate.core.config import settings

logger = logging.getLogger(__name__)


class SmsError(Exception):
    """A single SMS could not be handed to the provider."""

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


@dataclass
class SentSms:
    sid: str
    status: str | None


class SmsGateway:
    """Thin async wrapper around a Twilio client and sender number."""

    def __init__(self, client: Client, from_number: str):
        self.client = client
        self.from_number = from_number

    def _send_sync(self, to: str, body: str) -> SentSms:
        try:
            message = self.client.messages.create(body=body, from_=self.from_number, to=to)
        except TwilioRestException as e:
            raise SmsError(e.msg or str(e), code=e.code) from e
        except TwilioException as e:
            raise SmsError(str(e)) from e
        return SentSms(sid=message.sid, status=message.status)

    async def send(self, to: str, body: str) -> SentSms:
        return await asyncio.to_thread(self._send_sync, to, body)


@lru_cache
def get_sms_gateway() -> SmsGateway | None:
    """Return the configured gateway, or None when Twilio credentials are missing."""
    if not settings.sms_configured:
        logger.warning("Twilio credentials missing; SMS delivery disabled")
        return None
    client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
    return SmsGateway(client, settings.twilio_phone_number)
