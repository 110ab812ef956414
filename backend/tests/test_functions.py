"""Tests for the serverless functions client using a mocked transport."""

import json

import httpx
import pytest

from heritage_admin.core.errors import BackendError, ValidationError
from heritage_admin.services.functions import FunctionError, FunctionsClient, strip_html
from heritage_admin.services.translation_service import TranslationService


def _client(handler, **kwargs) -> FunctionsClient:
    return FunctionsClient(
        base_url="https://functions.test/v1", api_key="anon-key", transport=httpx.MockTransport(handler), **kwargs
    )


def test_strip_html():
    assert strip_html("<p>Hello&nbsp;<b>Ravi</b> &amp; family</p>") == "Hello Ravi & family"


@pytest.mark.asyncio
async def test_invoke_sends_key_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["apikey"] = request.headers["apikey"]
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True})

    result = await _client(handler).invoke("ping", {"hello": "world"})

    assert result == {"ok": True}
    assert seen == {
        "url": "https://functions.test/v1/ping",
        "apikey": "anon-key",
        "auth": "Bearer anon-key",
        "body": {"hello": "world"},
    }


@pytest.mark.asyncio
async def test_invoke_not_configured():
    client = FunctionsClient(base_url="", api_key="")
    assert not client.is_configured
    with pytest.raises(FunctionError, match="not configured"):
        await client.invoke("ping", {})


@pytest.mark.asyncio
async def test_invoke_not_deployed():
    client = _client(lambda request: httpx.Response(404, text="Not Found"))
    with pytest.raises(FunctionError) as exc:
        await client.invoke("heritage-send-fcm", {})
    assert exc.value.message == "Function heritage-send-fcm is not deployed"
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_invoke_error_status_includes_detail():
    client = _client(lambda request: httpx.Response(500, json={"error": "SMTP down"}))
    with pytest.raises(FunctionError) as exc:
        await client.invoke("quick-service", {})
    assert exc.value.message == "Function error: 500 - SMTP down"


@pytest.mark.asyncio
async def test_invoke_error_status_with_non_object_body():
    client = _client(lambda request: httpx.Response(502, content=b'["upstream", "down"]'))
    with pytest.raises(FunctionError) as exc:
        await client.invoke("quick-service", {})
    assert exc.value.message == 'Function error: 502 - ["upstream", "down"]'


@pytest.mark.asyncio
async def test_non_object_success_body_is_a_failed_delivery():
    client = _client(lambda request: httpx.Response(200, json=["queued"]))

    with pytest.raises(FunctionError) as exc:
        await client.invoke("quick-service", {})
    assert exc.value.message == "Function quick-service returned invalid JSON"

    result = await client.send_email("guest@example.com", "Hello", "<p>Hi</p>")
    assert result.success is False
    assert result.error == "Function quick-service returned invalid JSON"

    translated = await client.translate(["Fort"], "hi")
    assert translated.success is False


@pytest.mark.asyncio
async def test_send_email_success_uses_text_fallback():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "messageId": "m-1"})

    result = await _client(handler).send_email(" guest@example.com ", "Welcome", "<h1>Welcome</h1>")

    assert result.success is True
    assert result.message_id == "m-1"
    assert captured["to"] == "guest@example.com"
    assert captured["text"] == "Welcome"


@pytest.mark.asyncio
async def test_send_email_validation_does_not_call_function():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"success": True})

    client = _client(handler)
    assert (await client.send_email("", "Subject", "<p>x</p>")).error == "Recipient email is required"
    assert (await client.send_email("a@b.c", " ", "<p>x</p>")).error == "Email subject is required"
    assert calls == []


@pytest.mark.asyncio
async def test_send_push_failure_reported():
    client = _client(lambda request: httpx.Response(200, json={"success": False, "error": "Invalid token"}))

    result = await client.send_push("device-token", "Booking confirmed", "See you at Amber Fort")

    assert result.success is False
    assert result.error == "Invalid token"


@pytest.mark.asyncio
async def test_send_push_requires_title_and_body():
    client = _client(lambda request: httpx.Response(200, json={"success": True}))
    result = await client.send_push("device-token", "", "body")
    assert result.error == "Title and body are required"


@pytest.mark.asyncio
async def test_translate_single_target_shape():
    client = _client(lambda request: httpx.Response(200, json={"target": "hi", "translations": ["नमस्ते"]}))
    result = await client.translate(["Hello"], "hi")
    assert result.success
    assert result.translations == {"hi": ["नमस्ते"]}


@pytest.mark.asyncio
async def test_translate_multi_target_shape():
    client = _client(
        lambda request: httpx.Response(200, json={"results": {"hi": ["किला"], "fr": ["Fort"]}})
    )
    result = await client.translate(["Fort"], ["hi", "fr"])
    assert result.translations == {"hi": ["किला"], "fr": ["Fort"]}


@pytest.mark.asyncio
async def test_translate_unexpected_shape():
    client = _client(lambda request: httpx.Response(200, json={"weird": True}))
    result = await client.translate(["Fort"], ["hi"])
    assert result.success is False
    assert result.error == "Invalid response format from translation service"


@pytest.mark.asyncio
async def test_translate_field_maps_first_value_per_language():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["text"] == ["Step well"]
        assert body["source"] == "en"
        return httpx.Response(200, json={"results": {lang: [f"{lang}:Step well"] for lang in body["target"]}})

    service = TranslationService(_client(handler))
    result = await service.translate_field("7:display_name", "  Step well ", targets=["en", "hi", "gu"])

    assert result == {"hi": "hi:Step well", "gu": "gu:Step well"}


@pytest.mark.asyncio
async def test_translate_field_blank_and_unsupported():
    service = TranslationService(_client(lambda request: httpx.Response(500)))
    assert await service.translate_field("k", "   ") == {}
    with pytest.raises(ValidationError):
        await service.translate_field("k", "Fort", targets=["xx"])


@pytest.mark.asyncio
async def test_translate_field_failure_raises_backend_error():
    service = TranslationService(_client(lambda request: httpx.Response(502, json={"error": "quota"})))
    with pytest.raises(BackendError, match="quota"):
        await service.translate_field("k", "Fort", targets=["hi"])
