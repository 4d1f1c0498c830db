"""Pydantic-backed configuration loader for Tarjama."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional, Sequence

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigurationError

DigestPolicy = Literal["off", "optional", "required"]


class TarjamaConfig(BaseModel):
    """Schema describing all supported configuration options."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    SHOPIFY_STORE_DOMAIN: Optional[str] = Field(default=None)
    SHOPIFY_ADMIN_TOKEN: Optional[str] = Field(default=None, repr=False)
    SHOPIFY_API_VERSION: str = Field(default="2024-07")
    SHOPIFY_TIMEOUT: float = Field(default=30.0, gt=0)

    LLM_PROVIDER: Literal["azure_openai", "openai"] = Field(
        default="openai",
        description="Large language model provider selection.",
    )
    OPENAI_API_KEY: Optional[str] = Field(default=None, repr=False)
    OPENAI_MODEL: str = Field(default="gpt-4.1-mini")
    OPENAI_TEMPERATURE: float = Field(default=0.3, ge=0, le=2)
    AZURE_OPENAI_API_KEY: Optional[str] = Field(default=None, repr=False)
    AZURE_OPENAI_ENDPOINT: Optional[str] = Field(default=None)
    AZURE_OPENAI_API_VERSION: Optional[str] = Field(default=None)
    AZURE_OPENAI_DEPLOYMENT_NAME: Optional[str] = Field(default=None)

    TARJAMA_TARGET_LOCALE: str = Field(default="ar", min_length=2)
    TARJAMA_DIGEST_POLICY: DigestPolicy = Field(default="optional")
    TARJAMA_TRANSLATION_CONTEXT: str = Field(
        default="a premium watch e-commerce website in the GCC",
        description="Audience description inserted into the translation prompt.",
    )
    TARJAMA_PROVIDER_DEBUG: bool = Field(default=False)

    @model_validator(mode="before")
    @classmethod
    def _normalise_values(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        raw_value = data.get("LLM_PROVIDER")
        if isinstance(raw_value, str):
            normalized = raw_value.strip().lower().replace("-", "_")
            synonyms = {
                "azure_open_ai": "azure_openai",
                "azureopenai": "azure_openai",
                "azure": "azure_openai",
            }
            data["LLM_PROVIDER"] = synonyms.get(normalized, normalized) or "openai"
        policy = data.get("TARJAMA_DIGEST_POLICY")
        if isinstance(policy, str):
            data["TARJAMA_DIGEST_POLICY"] = policy.strip().lower()
        domain = data.get("SHOPIFY_STORE_DOMAIN")
        if isinstance(domain, str):
            cleaned = domain.strip()
            for prefix in ("https://", "http://"):
                if cleaned.startswith(prefix):
                    cleaned = cleaned[len(prefix):]
            data["SHOPIFY_STORE_DOMAIN"] = cleaned.rstrip("/") or None
        return data


def _collect_sources(
    *,
    app_dir: Path,
    environ: Mapping[str, str],
) -> Dict[str, Any]:
    """Merge .env values and environment variables; the environment wins."""

    allowed = set(TarjamaConfig.model_fields)
    combined: Dict[str, Any] = {}

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        for key, value in dotenv_values(dotenv_path).items():
            if value and key in allowed:
                combined[key] = value

    for key, value in environ.items():
        if key in allowed and isinstance(value, str) and value != "":
            combined[key] = value

    return combined


def load_settings(
    app_dir: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> TarjamaConfig:
    """Build a validated configuration value from .env and the environment."""

    base_dir = app_dir or Path.cwd()
    values = _collect_sources(
        app_dir=base_dir,
        environ=os.environ if environ is None else environ,
    )
    try:
        return TarjamaConfig.model_validate(values)
    except ValidationError as exc:
        raise ConfigurationError(_format_validation_errors(exc.errors())) from exc


def _format_validation_errors(entries: Sequence[Mapping[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        location = ".".join(str(part) for part in entry.get("loc") or () if part != "")
        message = str(entry.get("msg") or "Invalid value")
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}")
    return "Configuration validation errors detected:\n" + "\n".join(details)

