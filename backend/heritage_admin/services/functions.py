"""Client for the platform's serverless functions (email, push, translation).

The console only calls these functions. Delivery, retries and provider
selection happen on the function side.
"""

import html
import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from heritage_admin.core.config import settings

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(markup: str) -> str:
    """Plain-text fallback for an HTML body."""
    return html.unescape(_TAG_RE.sub("", markup).replace("&nbsp;", " ")).strip()


@dataclass
class DeliveryResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


@dataclass
class TranslationResult:
    success: bool
    translations: dict[str, list[str]] = field(default_factory=dict)
    error: str | None = None


class FunctionError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FunctionsClient:
    """POSTs JSON to `<functions_url>/<name>` with the platform API key."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url if base_url is not None else settings.functions_url).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.functions_api_key
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def invoke(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        """Call function `name` and return its JSON body, raising FunctionError on failure."""
        if not self.is_configured:
            raise FunctionError("Functions URL is not configured")

        url = f"{self._base_url}/{name}"
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=settings.functions_timeout_seconds
            ) as client:
                resp = await client.post(url, json=body, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"Function {name} unreachable: {e}")
            raise FunctionError(f"Function {name} unreachable: {e}") from e

        if resp.status_code == 404:
            raise FunctionError(f"Function {name} is not deployed", status_code=404)
        if resp.is_error:
            detail = resp.text
            try:
                payload = resp.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict) and payload.get("error"):
                detail = payload["error"]
            logger.error(f"Function {name} returned {resp.status_code}: {detail}")
            raise FunctionError(f"Function error: {resp.status_code} - {detail}", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise FunctionError(f"Function {name} returned invalid JSON") from e
        if not isinstance(data, dict):
            logger.error(f"Function {name} returned a non-object body: {resp.text[:200]}")
            raise FunctionError(f"Function {name} returned invalid JSON")
        return data

    async def _deliver(self, name: str, body: dict[str, Any]) -> DeliveryResult:
        try:
            data = await self.invoke(name, body)
        except FunctionError as e:
            return DeliveryResult(success=False, error=e.message)
        if data.get("success"):
            return DeliveryResult(success=True, message_id=data.get("messageId"))
        return DeliveryResult(success=False, error=data.get("error") or f"Function {name} reported failure")

    async def send_email(self, to: str, subject: str, html_body: str, text: str | None = None) -> DeliveryResult:
        if not to or not to.strip():
            return DeliveryResult(success=False, error="Recipient email is required")
        if not subject or not subject.strip():
            return DeliveryResult(success=False, error="Email subject is required")

        result = await self._deliver(
            settings.email_function,
            {"to": to.strip(), "subject": subject, "html": html_body, "text": text or strip_html(html_body)},
        )
        if result.success:
            logger.info(f"Email sent to {to} ({result.message_id})")
        else:
            logger.warning(f"Email to {to} failed: {result.error}")
        return result

    async def send_push(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, str] | None = None,
        image_url: str | None = None,
        click_action: str | None = None,
    ) -> DeliveryResult:
        if not token:
            return DeliveryResult(success=False, error="Device token is required")
        if not title or not body:
            return DeliveryResult(success=False, error="Title and body are required")

        payload: dict[str, Any] = {"token": token, "title": title, "body": body, "data": data or {}}
        if image_url:
            payload["imageUrl"] = image_url
        if click_action:
            payload["clickAction"] = click_action

        result = await self._deliver(settings.push_function, payload)
        if not result.success:
            logger.warning(f"Push notification failed: {result.error}")
        return result

    async def translate(
        self, texts: str | list[str], targets: str | list[str], source: str | None = None
    ) -> TranslationResult:
        payload: dict[str, Any] = {"text": texts, "target": targets}
        if source:
            payload["source"] = source
        try:
            data = await self.invoke(settings.translate_function, payload)
        except FunctionError as e:
            return TranslationResult(success=False, error=e.message)

        # one target: {"target": "hi", "translations": [...]}; several: {"results": {"hi": [...]}}
        if "target" in data and "translations" in data:
            return TranslationResult(success=True, translations={data["target"]: list(data["translations"])})
        if "results" in data:
            return TranslationResult(
                success=True, translations={lang: list(values) for lang, values in data["results"].items()}
            )
        logger.error(f"Unexpected translation response: {data}")
        return TranslationResult(success=False, error="Invalid response format from translation service")


_client: FunctionsClient | None = None


def get_functions_client() -> FunctionsClient:
    global _client
    if _client is None:
        _client = FunctionsClient()
    return _client
