"""Tests for the SMS gateways and :class:`Notifier`."""

import asyncio
import json

import httpx

from gas_complaints.core.models import SmsSettings
from gas_complaints.sms import (
    KavenegarGateway,
    Notifier,
    RelayGateway,
    SmsGateway,
    SmsResult,
    format_message,
)


class RecordingGateway(SmsGateway):
    def __init__(self, result: SmsResult | None = None, error: Exception | None = None):
        self.sent: list[tuple[str, str, str, str]] = []
        self.result = result or SmsResult(success=True, message="ok")
        self.error = error

    async def send(self, api_key, sender, receptor, message):
        self.sent.append((api_key, sender, receptor, message))
        if self.error:
            raise self.error
        return self.result


def test_format_message_replaces_every_placeholder() -> None:
    assert format_message("{id} / {target} / {id}", id="C-1", target="ناظر") == "C-1 / ناظر / C-1"
    assert format_message("{unknown}", id="C-1") == "{unknown}"


def test_kavenegar_success() -> None:
    captured: dict[str, httpx.Request] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(200, json={"return": {"status": 200, "message": "تایید شد"}, "entries": []})

    gateway = KavenegarGateway(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    result = asyncio.run(gateway.send("KEY", "3000", "09123456789", "سلام دنیا"))

    assert result.success is True
    request = captured["request"]
    assert request.url.path == "/v1/KEY/sms/send.json"
    assert request.url.params["receptor"] == "09123456789"
    assert request.url.params["sender"] == "3000"
    assert request.url.params["message"] == "سلام دنیا"
    asyncio.run(gateway.close())


def test_kavenegar_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"return": {"status": 418, "message": "اعتبار کافی نیست"}})

    gateway = KavenegarGateway(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    result = asyncio.run(gateway.send("KEY", "3000", "09123456789", "x"))
    assert result.success is False
    assert "418" in result.message


def test_kavenegar_http_error_and_missing_params() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    gateway = KavenegarGateway(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    assert asyncio.run(gateway.send("KEY", "3000", "09123456789", "x")).success is False
    assert asyncio.run(gateway.send("", "3000", "09123456789", "x")).success is False
    assert len(calls) == 1


def test_relay_posts_payload() -> None:
    captured: dict[str, httpx.Request] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(200, json={"success": True, "data": {}})

    gateway = RelayGateway(
        "https://proj.supabase.co/functions/v1/send-sms",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        headers={"Authorization": "Bearer anon"},
    )
    result = asyncio.run(gateway.send("KEY", "3000", "09123456789", "hi"))
    assert result.success is True
    request = captured["request"]
    assert json.loads(request.content) == {
        "apiKey": "KEY", "sender": "3000", "receptor": "09123456789", "message": "hi",
    }
    assert request.headers["Authorization"] == "Bearer anon"


def test_relay_failure_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"success": False, "message": "Missing required parameters"})

    gateway = RelayGateway("https://relay", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    result = asyncio.run(gateway.send("KEY", "3000", "09123456789", "hi"))
    assert result == SmsResult(success=False, message="Missing required parameters")


def test_notifier_renders_and_sends_in_background() -> None:
    gateway = RecordingGateway()
    settings = SmsSettings(api_key="KEY", line_number="3000")
    notifier = Notifier(gateway, lambda: settings)

    async def scenario():
        task = notifier.notify("09123456789", "referral_notification", id="C-1", target="مجری")
        assert task is not None
        await notifier.drain()

    asyncio.run(scenario())
    assert gateway.sent == [("KEY", "3000", "09123456789", "شکایت C-1 جهت بررسی به مجری ارجاع شد.")]


def test_notifier_skips_when_disabled_or_unconfigured() -> None:
    gateway = RecordingGateway()
    current = {"settings": SmsSettings(api_key="KEY", is_enabled=False)}
    notifier = Notifier(gateway, lambda: current["settings"])

    async def scenario():
        assert notifier.notify("09123456789", "new_complaint", id="C-1") is None
        current["settings"] = SmsSettings(api_key="")
        assert notifier.notify("09123456789", "new_complaint", id="C-1") is None
        current["settings"] = SmsSettings(api_key="KEY")
        assert notifier.notify(None, "new_complaint", id="C-1") is None
        await notifier.drain()

    asyncio.run(scenario())
    assert gateway.sent == []


def test_notifier_swallows_gateway_errors() -> None:
    gateway = RecordingGateway(error=RuntimeError("socket closed"))
    settings = SmsSettings(api_key="KEY")
    notifier = Notifier(gateway, lambda: settings)

    async def scenario():
        task = notifier.notify("09123456789", "final_verdict", id="C-1")
        await notifier.drain()
        return task.result()

    result = asyncio.run(scenario())
    assert result.success is False


def test_send_test_uses_given_settings() -> None:
    gateway = RecordingGateway()
    notifier = Notifier(gateway, lambda: SmsSettings())
    draft = SmsSettings(api_key="NEW", line_number="5000")
    result = asyncio.run(notifier.send_test("09123456789", draft))
    assert result.success is True
    assert gateway.sent[0][:3] == ("NEW", "5000", "09123456789")
