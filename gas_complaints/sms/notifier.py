"""Best-effort SMS notifications for lifecycle transitions."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable

from ..core.models import SmsSettings
from .gateway import SmsGateway, SmsResult

log = logging.getLogger(__name__)

TEST_MESSAGE = "این یک پیام آزمایشی از سامانه شکایات است."

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def format_message(template: str, **params: str) -> str:
    """Replace every ``{key}`` in ``template``; unknown keys are left as is."""
    return _PLACEHOLDER.sub(
        lambda m: str(params[m.group(1)]) if m.group(1) in params else m.group(0),
        template,
    )


class Notifier:
    """Render templates and hand them to a gateway in the background.

    ``settings`` is a callable so the notifier always sees the current
    :class:`SmsSettings`, including admin edits made after construction.
    """

    def __init__(self, gateway: SmsGateway, settings: Callable[[], SmsSettings]) -> None:
        self.gateway = gateway
        self._settings = settings
        self._pending: set[asyncio.Task[SmsResult]] = set()

    def notify(
        self, receptor: str | None, template: str, **params: str
    ) -> asyncio.Task[SmsResult] | None:
        """Schedule ``template`` for ``receptor`` and return immediately.

        ``template`` names a field of :class:`SmsTemplates` such as
        ``"new_complaint"``. Returns the scheduled task, or ``None`` when the
        send was skipped.
        """
        settings = self._settings()
        if not settings.is_enabled or not receptor:
            return None
        if not settings.api_key or not settings.line_number:
            log.warning("Cannot send SMS: API key or line number missing")
            return None

        message = format_message(getattr(settings.templates, template), **params)
        task = asyncio.create_task(
            self._send(settings.api_key, settings.line_number, receptor, message)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _send(
        self, api_key: str, sender: str, receptor: str, message: str
    ) -> SmsResult:
        try:
            result = await self.gateway.send(api_key, sender, receptor, message)
        except Exception:  # delivery must never break a transition
            log.exception("SMS to %s failed", receptor)
            return SmsResult(success=False, message="خطای سیستمی در ارسال درخواست.")
        if result.success:
            log.info("SMS sent to %s", receptor)
        else:
            log.warning("SMS to %s failed: %s", receptor, result.message)
        return result

    async def send_test(self, receptor: str, settings: SmsSettings | None = None) -> SmsResult:
        """Send the fixed test message synchronously and return the result."""
        settings = settings or self._settings()
        return await self._send(
            settings.api_key, settings.line_number, receptor, TEST_MESSAGE
        )

    async def drain(self) -> None:
        """Wait for every scheduled send to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
