"""Per-field machine translation for the master-data editor."""

import logging

from heritage_admin.core.config import settings
from heritage_admin.core.errors import BackendError, ValidationError
from heritage_admin.services.functions import FunctionsClient, get_functions_client
from heritage_admin.utils.coalesce import KeyedCoalescer

logger = logging.getLogger(__name__)


class TranslationService:
    """One translation request per editor field at a time; rapid edits coalesce."""

    def __init__(self, client: FunctionsClient, coalescer: KeyedCoalescer | None = None) -> None:
        self.client = client
        self.coalescer = coalescer or KeyedCoalescer()

    async def translate_field(
        self, field_key: str, text: str, targets: list[str] | None = None, source: str = "en"
    ) -> dict[str, str]:
        """Translate `text` into every target language. Raises RequestSuperseded if a newer edit replaced it."""
        text = (text or "").strip()
        if not text:
            return {}
        targets = [t.lower() for t in (targets or settings.supported_languages) if t.lower() != source.lower()]
        unsupported = [t for t in targets if t not in settings.supported_languages]
        if unsupported:
            raise ValidationError(f"Unsupported languages: {', '.join(unsupported)}")
        if not targets:
            return {}

        result = await self.coalescer.run(field_key, lambda: self.client.translate([text], targets, source))
        if not result.success:
            raise BackendError(result.error or "Translation failed")
        return {lang: values[0] if values else "" for lang, values in result.translations.items()}


_service: TranslationService | None = None


def get_translation_service() -> TranslationService:
    global _service
    if _service is None:
        _service = TranslationService(get_functions_client())
    return _service
