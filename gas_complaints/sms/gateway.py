"""SMS gateways.

Two transports implement :class:`SmsGateway`: a direct call to the
KavehNegar HTTP API and a relay that forwards the request through an
intermediary function so the API key never leaves the server.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import BaseModel

log = logging.getLogger(__name__)

MISSING_PARAMS = "پارامترهای ورودی (کلید API، فرستنده یا گیرنده) ناقص هستند."
SENT_OK = "پیامک با موفقیت ارسال شد."


class SmsResult(BaseModel):
    success: bool
    message: str


class SmsGateway(ABC):
    """Abstract outbound SMS transport."""

    @abstractmethod
    async def send(
        self, api_key: str, sender: str, receptor: str, message: str
    ) -> SmsResult:
        """Send ``message`` to ``receptor``. Never raises on delivery errors."""

    async def close(self) -> None:
        """Release any held resources."""


class KavenegarGateway(SmsGateway):
    """Gateway that calls the KavehNegar ``sms/send`` endpoint directly."""

    api_base = "https://api.kavenegar.com/v1"

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 10.0) -> None:
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def send(
        self, api_key: str, sender: str, receptor: str, message: str
    ) -> SmsResult:
        """Send a message and interpret KavehNegar's ``return`` envelope.

        Parameters
        ----------
        api_key:
            Panel API key, part of the URL path.
        sender:
            Dedicated line number.
        receptor:
            Destination mobile number.
        message:
            Text to deliver.

        """
        if not (api_key and sender and receptor and message):
            log.warning("SMS skipped: missing required parameters")
            return SmsResult(success=False, message=MISSING_PARAMS)

        log.info("Sending SMS via KavehNegar to %s", receptor)
        url = f"{self.api_base}/{api_key}/sms/send.json"
        params = {"receptor": receptor, "sender": sender, "message": message}
        try:
            response = await self.client.get(url, params=params)
        except httpx.HTTPError as exc:
            log.error("SMS transport error: %s", exc)
            return SmsResult(success=False, message="خطای سیستمی در ارسال درخواست.")

        if response.is_error:
            log.error("SMS network error: %s", response.reason_phrase)
            return SmsResult(
                success=False, message=f"خطای شبکه: {response.reason_phrase}"
            )
        try:
            data: dict[str, Any] = response.json()
        except ValueError:
            return SmsResult(success=False, message="پاسخ نامعتبر از پنل پیامک")

        envelope = data.get("return") or {}
        if envelope.get("status") == 200:
            return SmsResult(success=True, message=SENT_OK)
        if envelope:
            error = f"{envelope.get('message')} (کد: {envelope.get('status')})"
        else:
            error = "خطای ناشناخته از سمت پنل پیامک"
        log.error("KavehNegar API error: %s", error)
        return SmsResult(success=False, message=error)

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()


class RelayGateway(SmsGateway):
    """Gateway that posts to a relay function which calls KavehNegar."""

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.url = url
        self.headers = headers or {}
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def send(
        self, api_key: str, sender: str, receptor: str, message: str
    ) -> SmsResult:
        if not (api_key and receptor and message):
            return SmsResult(success=False, message=MISSING_PARAMS)

        payload = {
            "apiKey": api_key,
            "sender": sender,
            "receptor": receptor,
            "message": message,
        }
        try:
            response = await self.client.post(self.url, json=payload, headers=self.headers)
            data: dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.error("SMS relay error: %s", exc)
            return SmsResult(success=False, message="خطای سیستمی در ارسال درخواست.")

        if data.get("success") and not response.is_error:
            return SmsResult(success=True, message=SENT_OK)
        return SmsResult(
            success=False,
            message=str(data.get("message") or f"خطای شبکه: {response.reason_phrase}"),
        )

    async def close(self) -> None:
        await self.client.aclose()
