"""Outbound SMS gateways and the lifecycle notifier."""

from __future__ import annotations

from ..config import Settings
from .gateway import KavenegarGateway, RelayGateway, SmsGateway, SmsResult
from .notifier import Notifier, format_message


def create_gateway(settings: Settings) -> SmsGateway:
    """Use the relay when one is configured, else call KavehNegar directly."""
    if settings.sms_relay_url:
        headers = {}
        if settings.supabase_key:
            headers["Authorization"] = f"Bearer {settings.supabase_key}"
        return RelayGateway(
            settings.sms_relay_url, headers=headers, timeout=settings.http_timeout
        )
    return KavenegarGateway(timeout=settings.http_timeout)


__all__ = [
    "KavenegarGateway",
    "Notifier",
    "RelayGateway",
    "SmsGateway",
    "SmsResult",
    "create_gateway",
    "format_message",
]
