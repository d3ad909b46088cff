"""Gemini-backed metadata extraction over the generative language REST API."""

from __future__ import annotations

import asyncio
import base64
import logging
import os
from typing import Any

import requests

from magindex.config.exceptions import ConfigError
from magindex.config.models import LLMSettings
from magindex.library.models import IssueMetadata

from .errors import ExtractionError
from .extractor import MetadataExtractor, parse_extraction_response

LOGGER = logging.getLogger(__name__)

API_KEY_ENV = "GEMINI_API_KEY"

REQUIRED_FIELDS = (
    "official_title",
    "magazine_edition",
    "magazine_section",
    "rpg_system",
    "content_type",
    "summary",
    "filename_slug",
)

_PROMPT = """\
You are the official archivist of the Dragao Brasil (DB) RPG magazine.
Analyze the attached PDF and extract precise metadata.

Original file: "{filename}"

1. magazine_edition: look for "Dragao Brasil #XX" or "DB XX"; return only the number.
2. magazine_section: the recurring column (e.g. "Chefe de Fase", "Dicas de Mestre",
   "Caverna do Saber", "Gazeta do Reinado", "Resenha", "Toolbox").
3. rpg_system: the main rules system (e.g. "T20", "DnD5e", "3D&T", "Generic").
4. content_type: one of Adventure, Rules, Setting, Story, Stat Block, Item,
   Bestiary, Advice, News, Review, Comic.
5. official_title: the main title of the article.
6. filename_slug: a slug built from the title and system, e.g. "T20_Novos_Talentos".
7. summary: at most 150 characters.

Return only JSON.
"""


class GeminiExtractor(MetadataExtractor):
    """Send PDFs to Gemini and parse the structured reply."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        *,
        temperature: float = 0.1,
        timeout: float = 120.0,
        session: requests.Session | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._temperature = temperature
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: LLMSettings) -> "GeminiExtractor":
        """Build an extractor from configuration.

        Raises:
            ConfigError: If the provider is unsupported or no API key is available.
        """
        if settings.provider != "gemini":
            raise ConfigError(f"Unsupported LLM provider '{settings.provider}'.")
        api_key = settings.api_key or os.environ.get(API_KEY_ENV)
        if not api_key:
            raise ConfigError(
                f"An API key is required for Gemini. Set `llm.api_key` or {API_KEY_ENV}."
            )
        return cls(
            api_key=api_key,
            model=settings.model,
            base_url=settings.api_base_url,
            temperature=settings.temperature,
            timeout=settings.timeout_seconds,
        )

    async def analyze(self, data: bytes, filename: str) -> IssueMetadata:
        payload = self._build_payload(data, filename)
        response = await asyncio.to_thread(self._post, payload)
        return parse_extraction_response(self._extract_text(response))

    def _build_payload(self, data: bytes, filename: str) -> dict[str, Any]:
        properties = {name: {"type": "STRING"} for name in REQUIRED_FIELDS}
        return {
            "contents": [
                {
                    "parts": [
                        {
                            "inline_data": {
                                "mime_type": "application/pdf",
                                "data": base64.b64encode(data).decode("ascii"),
                            }
                        },
                        {"text": _PROMPT.format(filename=filename)},
                    ]
                }
            ],
            "generationConfig": {
                "temperature": self._temperature,
                "responseMimeType": "application/json",
                "responseSchema": {
                    "type": "OBJECT",
                    "properties": properties,
                    "required": list(REQUIRED_FIELDS),
                },
            },
        }

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/models/{self._model}:generateContent"
        try:
            response = self._session.post(
                url,
                json=payload,
                headers={"x-goog-api-key": self._api_key},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            LOGGER.debug("Gemini request failed: %s", exc)
            raise ExtractionError(f"Could not reach the analysis service: {exc}") from exc

        if response.status_code == 429:
            raise ExtractionError("Rate limit reached (429). Wait before retrying.")
        if response.status_code == 404:
            raise ExtractionError("Model unavailable or invalid API key (404).")
        if response.status_code >= 400:
            raise ExtractionError(
                f"Analysis service error {response.status_code}: {response.text[:200]}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise ExtractionError("The analysis service returned a non-JSON body.") from exc
        if not isinstance(body, dict):
            raise ExtractionError("The analysis service returned an unexpected body.")
        return body

    @staticmethod
    def _extract_text(body: dict[str, Any]) -> str:
        feedback = body.get("promptFeedback") or {}
        if feedback.get("blockReason"):
            raise ExtractionError("Content blocked by the safety filter.")

        candidates = body.get("candidates") or []
        if not candidates:
            raise ExtractionError("The analysis service returned no candidates.")
        candidate = candidates[0]
        if candidate.get("finishReason") == "SAFETY":
            raise ExtractionError("Content blocked by the safety filter.")

        parts = (candidate.get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


__all__ = ["GeminiExtractor", "REQUIRED_FIELDS", "API_KEY_ENV"]
