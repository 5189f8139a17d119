"""Translation services.

The submission flow consumes :class:`TranslationService`. Translation never
blocks a submission: any failure degrades to the original text.
"""

import asyncio
import math
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from google.cloud import translate_v3

from app.config import Settings, get_settings
from app.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SupportedLanguage:
    code: str
    name: str
    native_name: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


DEFAULT_LANGUAGES: Tuple[SupportedLanguage, ...] = (
    SupportedLanguage("en", "English", "English"),
    SupportedLanguage("zh-CN", "Chinese (Simplified)", "简体中文"),
    SupportedLanguage("zh-TW", "Chinese (Traditional)", "繁體中文"),
    SupportedLanguage("ja", "Japanese", "日本語"),
    SupportedLanguage("ko", "Korean", "한국어"),
    SupportedLanguage("es", "Spanish", "Español"),
    SupportedLanguage("fr", "French", "Français"),
    SupportedLanguage("de", "German", "Deutsch"),
    SupportedLanguage("it", "Italian", "Italiano"),
    SupportedLanguage("pt", "Portuguese", "Português"),
    SupportedLanguage("ru", "Russian", "Русский"),
    SupportedLanguage("ar", "Arabic", "العربية"),
    SupportedLanguage("hi", "Hindi", "हिन्दी"),
    SupportedLanguage("th", "Thai", "ไทย"),
    SupportedLanguage("vi", "Vietnamese", "Tiếng Việt"),
)


class TranslationService(ABC):
    """Contract for text translation and language detection."""

    @abstractmethod
    async def translate_text(
        self, text: str, target_language: str, source_language: Optional[str] = None
    ) -> str:
        ...

    @abstractmethod
    async def translate_batch(
        self, texts: List[str], target_language: str, source_language: Optional[str] = None
    ) -> List[str]:
        """Translate texts, returning results in input order."""

    @abstractmethod
    async def detect_language(self, text: str) -> str:
        ...

    @abstractmethod
    async def get_supported_languages(self) -> List[SupportedLanguage]:
        ...

    async def is_translation_needed(self, text: str, target_language: str) -> bool:
        """True when the detected language of ``text`` differs from the target."""
        try:
            detected = await self.detect_language(text)
        except Exception as e:
            logger.warning(f"Language detection failed: {e}")
            return False
        return detected != target_language


class PassthroughTranslationService(TranslationService):
    """Returns text unchanged; used when no translation provider is configured."""

    def __init__(self, default_language: str = "en"):
        self.default_language = default_language

    async def translate_text(
        self, text: str, target_language: str, source_language: Optional[str] = None
    ) -> str:
        return text

    async def translate_batch(
        self, texts: List[str], target_language: str, source_language: Optional[str] = None
    ) -> List[str]:
        return list(texts)

    async def detect_language(self, text: str) -> str:
        return self.default_language

    async def get_supported_languages(self) -> List[SupportedLanguage]:
        return list(DEFAULT_LANGUAGES)

    async def is_translation_needed(self, text: str, target_language: str) -> bool:
        return False


class TranslationCache:
    """In-process cache of translated strings with per-entry expiry.

    When full, the entry closest to expiry is evicted.
    """

    def __init__(self, maxsize: int, ttl_seconds: float):
        self.maxsize = maxsize
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[Tuple[str, str, str], Tuple[str, float]] = {}

    def get(self, key: Tuple[str, str, str]) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= time.monotonic():
            del self._entries[key]
            return None
        return value

    def __setitem__(self, key: Tuple[str, str, str], value: str) -> None:
        if key not in self._entries and len(self._entries) >= self.maxsize:
            oldest = min(self._entries, key=lambda k: self._entries[k][1])
            del self._entries[oldest]
        self._entries[key] = (value, time.monotonic() + self.ttl_seconds)

    def __len__(self) -> int:
        return len(self._entries)


class GoogleTranslationService(TranslationService):
    """Google Cloud Translation (v3) with an expiring cache and bounded batch fan-out."""

    def __init__(
        self,
        project_id: str,
        location: str = "global",
        client: Optional[Any] = None,
        batch_concurrency: int = 3,
        timeout_seconds: float = 10.0,
        cache_ttl_seconds: int = 30 * 24 * 60 * 60,
        cache_size: int = 10_000,
    ):
        self.project_id = project_id
        self.location = location
        self.batch_concurrency = batch_concurrency
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._cache = TranslationCache(maxsize=cache_size, ttl_seconds=cache_ttl_seconds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleTranslationService":
        if not settings.google_cloud_project:
            raise ValueError("Google translation requires GOOGLE_CLOUD_PROJECT")
        return cls(
            project_id=settings.google_cloud_project,
            location=settings.google_cloud_location,
            batch_concurrency=settings.translation_batch_concurrency,
            timeout_seconds=settings.translation_timeout_seconds,
            cache_ttl_seconds=settings.translation_cache_ttl_seconds,
        )

    @property
    def parent(self) -> str:
        return f"projects/{self.project_id}/locations/{self.location}"

    @property
    def client(self):
        if self._client is None:
            self._client = translate_v3.TranslationServiceAsyncClient()
        return self._client

    @staticmethod
    def _cache_key(text: str, target: str, source: Optional[str]) -> Tuple[str, str, str]:
        return (source or "auto", target, text)

    async def _translate_chunk(
        self, texts: List[str], target_language: str, source_language: Optional[str]
    ) -> List[str]:
        request = {
            "parent": self.parent,
            "contents": texts,
            "mime_type": "text/plain",
            "target_language_code": target_language,
        }
        if source_language:
            request["source_language_code"] = source_language

        try:
            response = await asyncio.wait_for(
                self.client.translate_text(request=request),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            logger.warning(f"Translation of {len(texts)} texts failed, keeping originals: {e}")
            return list(texts)

        translated = [t.translated_text for t in response.translations]
        if len(translated) != len(texts):
            logger.warning("Translation response size mismatch, keeping originals")
            return list(texts)

        for original, result in zip(texts, translated):
            self._cache[self._cache_key(original, target_language, source_language)] = result
        return translated

    async def translate_text(
        self, text: str, target_language: str, source_language: Optional[str] = None
    ) -> str:
        if not text.strip() or source_language == target_language:
            return text
        cached = self._cache.get(self._cache_key(text, target_language, source_language))
        if cached is not None:
            return cached
        return (await self._translate_chunk([text], target_language, source_language))[0]

    async def translate_batch(
        self, texts: List[str], target_language: str, source_language: Optional[str] = None
    ) -> List[str]:
        if source_language == target_language:
            return list(texts)

        results: List[Optional[str]] = [None] * len(texts)
        pending: List[int] = []
        for index, text in enumerate(texts):
            cached = self._cache.get(self._cache_key(text, target_language, source_language))
            if not text.strip():
                results[index] = text
            elif cached is not None:
                results[index] = cached
            else:
                pending.append(index)

        if pending:
            chunk_size = math.ceil(len(pending) / self.batch_concurrency)
            chunks = [pending[i:i + chunk_size] for i in range(0, len(pending), chunk_size)]
            translated_chunks = await asyncio.gather(*[
                self._translate_chunk([texts[i] for i in chunk], target_language, source_language)
                for chunk in chunks
            ])
            for chunk, translated in zip(chunks, translated_chunks):
                for index, value in zip(chunk, translated):
                    results[index] = value

        return [value if value is not None else texts[i] for i, value in enumerate(results)]

    async def detect_language(self, text: str) -> str:
        try:
            response = await asyncio.wait_for(
                self.client.detect_language(request={
                    "parent": self.parent,
                    "content": text,
                    "mime_type": "text/plain",
                }),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            logger.warning(f"Language detection failed, assuming English: {e}")
            return "en"
        if not response.languages:
            return "en"
        return response.languages[0].language_code or "en"

    async def get_supported_languages(self) -> List[SupportedLanguage]:
        try:
            response = await asyncio.wait_for(
                self.client.get_supported_languages(request={
                    "parent": self.parent,
                    "display_language_code": "en",
                }),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            logger.warning(f"Could not list supported languages, using defaults: {e}")
            return list(DEFAULT_LANGUAGES)

        languages = [
            SupportedLanguage(lang.language_code, lang.display_name, lang.display_name)
            for lang in response.languages
        ]
        named = [lang for lang in languages if lang.name.strip()]
        # Display names are missing when the API ignores display_language_code
        if len(named) < len(languages) / 2 or not languages:
            return list(DEFAULT_LANGUAGES)
        return languages


# Global singleton instance
_translation_instance: Optional[TranslationService] = None


def get_translation_service() -> TranslationService:
    """Get the global translation service selected by ``translation_provider``."""
    global _translation_instance
    if _translation_instance is None:
        settings = get_settings()
        if settings.translation_provider == "google":
            _translation_instance = GoogleTranslationService.from_settings(settings)
        else:
            _translation_instance = PassthroughTranslationService(settings.default_target_language)
        logger.info(f"Translation service: {type(_translation_instance).__name__}")
    return _translation_instance
