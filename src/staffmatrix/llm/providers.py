from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from openai import OpenAI

from staffmatrix.config import Settings
from staffmatrix.core.documents import DocumentPayload
from staffmatrix.types import ModelResponse

logger = logging.getLogger(__name__)

_OPEN_FENCE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_CLOSE_FENCE = re.compile(r"\s*```$")


@dataclass(slots=True)
class ProviderConfig:
    name: str
    base_url: str
    api_key: str
    timeout_sec: int
    document_char_limit: int = 200000


@dataclass(frozen=True, slots=True)
class OutputSchema:
    name: str
    schema: dict[str, Any]


class LLMProvider:
    def __init__(self, config: ProviderConfig):
        self.config = config
        self.client = OpenAI(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=float(config.timeout_sec),
        )

    def complete_text(
        self,
        *,
        model: str,
        prompt: str,
        document: DocumentPayload | None = None,
        output_schema: OutputSchema | None = None,
    ) -> ModelResponse:
        try:
            return self._complete_via_responses(
                model=model, prompt=prompt, document=document, output_schema=output_schema
            )
        except Exception as exc:
            if not self._is_unsupported_responses_endpoint(exc):
                raise

            logger.warning(
                "Responses API unavailable for provider=%s base_url=%s; "
                "falling back to chat.completions (%s)",
                self.config.name,
                self.config.base_url,
                exc,
            )
            return self._complete_via_chat_completions(
                model=model, prompt=prompt, document=document, output_schema=output_schema
            )

    def complete_json(
        self,
        *,
        model: str,
        prompt: str,
        document: DocumentPayload | None = None,
        output_schema: OutputSchema | None = None,
    ) -> dict[str, Any]:
        text_response = self.complete_text(
            model=model, prompt=prompt, document=document, output_schema=output_schema
        )
        return parse_json(text_response.content)

    def _complete_via_responses(
        self,
        *,
        model: str,
        prompt: str,
        document: DocumentPayload | None,
        output_schema: OutputSchema | None,
    ) -> ModelResponse:
        content: list[dict[str, Any]] = []
        if document is not None:
            if document.is_text:
                content.append({"type": "input_text", "text": self._document_text(document)})
            else:
                content.append(
                    {
                        "type": "input_file",
                        "filename": document.filename,
                        "file_data": document.as_data_url(),
                    }
                )
        content.append({"type": "input_text", "text": prompt})

        kwargs: dict[str, Any] = {
            "model": model,
            "input": [{"role": "user", "content": content}],
        }
        if output_schema is not None:
            kwargs["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": output_schema.name,
                    "schema": output_schema.schema,
                }
            }

        response = self.client.responses.create(**kwargs)
        text = getattr(response, "output_text", "") or ""
        raw = response.model_dump() if hasattr(response, "model_dump") else {}
        if not isinstance(raw, dict):
            raw = {"raw": raw}
        raw["api_path"] = "responses"
        return ModelResponse(content=text, raw=raw)

    def _complete_via_chat_completions(
        self,
        *,
        model: str,
        prompt: str,
        document: DocumentPayload | None,
        output_schema: OutputSchema | None,
    ) -> ModelResponse:
        content: list[dict[str, Any]] = []
        if document is not None:
            if document.is_text:
                content.append({"type": "text", "text": self._document_text(document)})
            else:
                content.append(
                    {
                        "type": "file",
                        "file": {"filename": document.filename, "file_data": document.as_data_url()},
                    }
                )
        content.append({"type": "text", "text": prompt})

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": content}],
        }
        if output_schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": output_schema.name, "schema": output_schema.schema},
            }

        response = self.client.chat.completions.create(**kwargs)

        text = self._extract_chat_text(response)
        raw = response.model_dump() if hasattr(response, "model_dump") else {}
        if not isinstance(raw, dict):
            raw = {"raw": raw}
        raw["api_path"] = "chat_completions"
        return ModelResponse(content=text, raw=raw)

    def _document_text(self, document: DocumentPayload) -> str:
        text = truncate_text(document.decoded_text(), self.config.document_char_limit, document.filename)
        return f"Document ({document.filename}):\n{text}"

    @staticmethod
    def _extract_chat_text(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""

        message = getattr(choices[0], "message", None)
        if message is None:
            return ""

        content = getattr(message, "content", "")
        if isinstance(content, str):
            return content
        if content is None:
            return ""
        return str(content)

    @staticmethod
    def _is_unsupported_responses_endpoint(exc: Exception) -> bool:
        status_code = getattr(exc, "status_code", None)
        if status_code == 404:
            return True

        message = str(exc).strip().lower()
        if not message:
            return False

        return "not found" in message or "404" in message


def truncate_text(text: str, limit: int, source: str) -> str:
    if len(text) <= limit:
        return text
    logger.warning("Truncating document %s from %s to %s characters", source, len(text), limit)
    return text[:limit]


def clean_json_string(text: str) -> str:
    """Strip a markdown code fence (optionally tagged ``json``) around model output."""
    clean = text.strip()
    if clean.startswith("```"):
        clean = _OPEN_FENCE.sub("", clean)
        clean = _CLOSE_FENCE.sub("", clean)
    return clean.strip()


def parse_json(content: str) -> dict[str, Any]:
    candidate = clean_json_string(content)
    if not candidate:
        raise ValueError("empty model output")

    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ValueError(f"model output is not valid JSON ({exc.msg})") from exc

    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


def build_provider(settings: Settings, api_key: str) -> LLMProvider:
    return LLMProvider(
        ProviderConfig(
            name="gateway",
            base_url=settings.llm_base_url,
            api_key=api_key,
            timeout_sec=settings.llm_timeout_sec,
            document_char_limit=settings.llm_document_char_limit,
        )
    )
