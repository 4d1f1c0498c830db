"""Translation oracle abstractions."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Sequence

from openai import AzureOpenAI, OpenAI, OpenAIError

from .configuration import TarjamaConfig
from .errors import (
    ConfigurationError,
    OracleContractViolation,
    OracleMalformedResponse,
    OracleUnavailable,
)
from .structures import TranslationResult

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    "ar": "Modern Standard Arabic",
    "en": "English",
    "fr": "French",
    "de": "German",
    "es": "Spanish",
    "tr": "Turkish",
    "ur": "Urdu",
}


def describe_locale(locale: str) -> str:
    """Return a human-readable language name for a locale tag."""

    primary = locale.split("-", 1)[0].lower()
    name = LANGUAGE_NAMES.get(primary)
    return f"{name} ({locale})" if name else locale


class TransformationOracle(ABC):
    """Adapter for the external text-transformation service."""

    @abstractmethod
    def transform(
        self,
        scalar_fields: Mapping[str, str],
        segments: Sequence[str],
        *,
        locale: str,
    ) -> TranslationResult:
        """Transform scalar fields and ordered segments into ``locale``."""


class EchoOracle(TransformationOracle):
    """An oracle that returns the original text (useful for testing)."""

    def transform(
        self,
        scalar_fields: Mapping[str, str],
        segments: Sequence[str],
        *,
        locale: str,
    ) -> TranslationResult:
        return TranslationResult(
            scalar_fields=dict(scalar_fields),
            segments_translated=tuple(segments),
        )


class OpenAIOracle(TransformationOracle):
    """Oracle backed by OpenAI models through the Responses API."""

    def __init__(
        self,
        settings: TarjamaConfig,
        *,
        client: Any = None,
        model: Optional[str] = None,
        debug: bool = False,
    ) -> None:
        self.settings = settings
        self.debug = debug
        if client is None:
            client, default_model = self._build_client()
        else:
            default_model = self._default_model_name()
        self._client = client
        self.model = model or default_model

    def _default_model_name(self) -> str:
        if self.settings.LLM_PROVIDER == "azure_openai":
            return self.settings.AZURE_OPENAI_DEPLOYMENT_NAME or self.settings.OPENAI_MODEL
        return self.settings.OPENAI_MODEL

    def _build_client(self) -> tuple[Any, str]:
        if self.settings.LLM_PROVIDER == "azure_openai":
            return self._build_azure_client()
        return self._build_openai_client()

    def _build_openai_client(self) -> tuple[Any, str]:
        if not self.settings.OPENAI_API_KEY:
            raise ConfigurationError(
                "OpenAI configuration missing. Set OPENAI_API_KEY or choose a "
                "different provider."
            )
        return OpenAI(api_key=self.settings.OPENAI_API_KEY), self.settings.OPENAI_MODEL

    def _build_azure_client(self) -> tuple[Any, str]:
        settings = self.settings
        missing = [
            name
            for name, value in {
                "AZURE_OPENAI_API_KEY": settings.AZURE_OPENAI_API_KEY,
                "AZURE_OPENAI_ENDPOINT": settings.AZURE_OPENAI_ENDPOINT,
                "AZURE_OPENAI_API_VERSION": settings.AZURE_OPENAI_API_VERSION,
                "AZURE_OPENAI_DEPLOYMENT_NAME": settings.AZURE_OPENAI_DEPLOYMENT_NAME,
            }.items()
            if not value
        ]
        if missing:
            raise ConfigurationError(
                "Azure OpenAI configuration incomplete. Please set: "
                + ", ".join(missing)
                + "."
            )

        client = AzureOpenAI(
            api_key=settings.AZURE_OPENAI_API_KEY,
            api_version=settings.AZURE_OPENAI_API_VERSION,
            azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
        )
        return client, settings.AZURE_OPENAI_DEPLOYMENT_NAME  # type: ignore[return-value]

    def system_prompt(self, locale: str) -> str:
        language = describe_locale(locale)
        return (
            f"You are a professional {language} translator for "
            f"{self.settings.TARJAMA_TRANSLATION_CONTEXT}. Return only JSON.\n"
            "You will receive JSON with:\n"
            '- "fields": an object of short texts (title, SEO title, SEO description); '
            "values may be empty.\n"
            '- "segments": an array of text segments extracted from HTML, in order.\n'
            f"Translate every text into {language}.\n"
            'Do not add or remove items from "segments". "segments_translated" MUST '
            'have exactly the same length as "segments" and match by index. '
            "Keep whitespace-only segments as they are.\n"
            "You are translating only the text, not HTML tags. The translations are "
            "inserted back into the original HTML, so never include < or > or tags "
            "in a segment translation.\n"
            "Keep brand names and model codes in Latin script.\n"
            "Respond strictly with an object shaped as "
            '{"fields": {"<name>": "<text or null>"}, "segments_translated": ["..."]}. '
            "Do not add commentary. Do not wrap the JSON in markdown code fences."
        )

    def transform(
        self,
        scalar_fields: Mapping[str, str],
        segments: Sequence[str],
        *,
        locale: str,
    ) -> TranslationResult:
        if not segments and not any(scalar_fields.values()):
            return TranslationResult(
                scalar_fields={name: None for name in scalar_fields},
                segments_translated=(),
            )

        user_payload = {
            "target_language": describe_locale(locale),
            "locale": locale,
            "fields": dict(scalar_fields),
            "segments": list(segments),
        }
        system_prompt = self.system_prompt(locale)
        self._log_debug("oracle.request.system_prompt", system_prompt)
        self._log_debug("oracle.request.payload", user_payload)

        content = self._invoke_model(
            system_prompt=system_prompt,
            user_payload=user_payload,
        )
        self._log_debug("oracle.response.content", content)

        parsed = self._parse_content(content)
        result = self._to_result(parsed, scalar_fields)
        self._log_debug(
            "oracle.response.result",
            {
                "fields": dict(result.scalar_fields),
                "segments_translated": list(result.segments_translated),
            },
        )
        return result

    def _invoke_model(self, *, system_prompt: str, user_payload: dict) -> str:
        """Call the Responses API and return the raw text output."""

        try:
            response = self._client.responses.create(
                model=self.model,
                input=[
                    {
                        "role": "system",
                        "content": [
                            {"type": "input_text", "text": system_prompt},
                        ],
                    },
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "input_text",
                                "text": json.dumps(user_payload, ensure_ascii=False),
                            }
                        ],
                    },
                ],
            )
        except OpenAIError as exc:
            raise OracleUnavailable(
                f"Translation service unavailable: {exc}",
                details={"status": getattr(exc, "status_code", None)},
            ) from exc
        self._log_debug("oracle.response.raw", self._safe_dump_response(response))

        output_text = getattr(response, "output_text", None)
        if hasattr(output_text, "value"):
            output_text = output_text.value
        if output_text:
            return str(output_text)

        for item in getattr(response, "output", None) or []:
            for part in getattr(item, "content", None) or []:
                text_value = getattr(part, "text", None)
                if hasattr(text_value, "value"):
                    text_value = text_value.value
                if text_value:
                    return str(text_value)

        raise OracleMalformedResponse(
            "Translation service response empty or unrecognised."
        )

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not self.debug:
            return
        if isinstance(payload, (dict, list)):
            message = json.dumps(payload, ensure_ascii=False, indent=2)
        else:
            message = str(payload)
        logger.debug("%s:\n%s", label, message)

    def _safe_dump_response(self, response: Any) -> Any:
        """Best-effort conversion of SDK response objects into JSON-friendly data."""

        dump = getattr(response, "model_dump", None)
        if callable(dump):
            try:
                return dump()
            except (TypeError, ValueError):
                pass
        return str(response)

    def _strip_code_fence(self, text: str) -> str:
        """Remove leading/trailing markdown code fences if present."""

        stripped = text.strip()
        if not stripped.startswith("```"):
            return stripped

        first_newline = stripped.find("\n")
        if first_newline == -1:
            return stripped
        body = stripped[first_newline + 1 :]
        closing_index = body.rfind("```")
        if closing_index != -1:
            body = body[:closing_index]
        return body.strip()

    def _parse_content(self, content: str) -> Dict[str, Any]:
        text = self._strip_code_fence(content)
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            raise OracleMalformedResponse(
                f"Translation service returned invalid JSON: {exc}",
                details={"content": content},
            ) from exc
        if not isinstance(parsed, dict):
            raise OracleMalformedResponse(
                "Translation service response malformed: expected a JSON object.",
                details={"content": content},
            )
        return parsed

    def _to_result(
        self,
        parsed: Dict[str, Any],
        scalar_fields: Mapping[str, str],
    ) -> TranslationResult:
        segments = parsed.get("segments_translated")
        if not isinstance(segments, list):
            raise OracleContractViolation(
                "Translation service response missing segments_translated array.",
                details={"response": parsed},
            )
        if not all(isinstance(item, str) for item in segments):
            raise OracleContractViolation(
                "Translation service returned non-string segment translations.",
                details={"response": parsed},
            )

        raw_fields = parsed.get("fields") or {}
        if not isinstance(raw_fields, dict):
            raise OracleMalformedResponse(
                "Translation service response malformed: fields must be an object.",
                details={"response": parsed},
            )
        fields: Dict[str, Optional[str]] = {}
        for name in scalar_fields:
            value = raw_fields.get(name)
            if value is not None and not isinstance(value, str):
                raise OracleMalformedResponse(
                    f"Translation service returned a non-string value for '{name}'.",
                    details={"response": parsed},
                )
            fields[name] = value

        for index, text in enumerate(segments):
            if "<" in text or ">" in text:
                logger.warning(
                    "Translated segment %d contains angle brackets; inserting as-is.",
                    index,
                )

        return TranslationResult(
            scalar_fields=fields,
            segments_translated=tuple(segments),
        )


class ChatCompletionsOracle(OpenAIOracle):
    """Oracle that uses the Chat Completions API in JSON mode."""

    def _invoke_model(self, *, system_prompt: str, user_payload: dict) -> str:
        """Call the Chat Completions API and return the message content."""

        try:
            response = self._client.chat.completions.create(
                model=self.model,
                temperature=self.settings.OPENAI_TEMPERATURE,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_prompt},
                    {
                        "role": "user",
                        "content": json.dumps(user_payload, ensure_ascii=False),
                    },
                ],
            )
        except OpenAIError as exc:
            raise OracleUnavailable(
                f"Translation service unavailable: {exc}",
                details={"status": getattr(exc, "status_code", None)},
            ) from exc
        self._log_debug("oracle.response.raw", self._safe_dump_response(response))

        choices = getattr(response, "choices", None) or []
        for choice in choices:
            message = getattr(choice, "message", None)
            content = getattr(message, "content", None) if message is not None else None
            if content:
                return str(content)

        raise OracleMalformedResponse(
            "Translation service response empty or unrecognised."
        )


def build_oracle(
    name: Optional[str],
    settings: TarjamaConfig,
    *,
    model: Optional[str] = None,
    debug: bool = False,
) -> TransformationOracle:
    """Factory to create oracles by name."""

    normalized = (name or "chat").strip().lower()
    if normalized in {"chat", "openai-chat", "chat-completions", "legacy"}:
        return ChatCompletionsOracle(settings, model=model, debug=debug)
    if normalized in {"openai", "responses", "gpt"}:
        return OpenAIOracle(settings, model=model, debug=debug)
    if normalized in {"echo", "noop", "mock"}:
        return EchoOracle()
    raise ConfigurationError(f"Unknown translation provider '{name}'.")
