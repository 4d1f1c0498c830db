"""High-level orchestration for catalog translation."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .commerce import ShopifyAdminClient
from .configuration import DigestPolicy, TarjamaConfig
from .errors import (
    ConfigurationError,
    DigestUnavailable,
    InvalidInput,
    RegistrationRejected,
    TarjamaError,
)
from .providers import TransformationOracle
from .segmenter import extract_segments, splice, validate_translation
from .structures import (
    CatalogResource,
    RegistrationOutcome,
    SyncOutcome,
    SyncStatus,
    TranslationInput,
)

logger = logging.getLogger(__name__)

HANDLE_PATTERN = re.compile(r"^\S+$")
LOCALE_PATTERN = re.compile(r"^[A-Za-z]{2,3}(?:-[A-Za-z0-9]{2,8})*$")

BODY_KEY = "body_html"
FIELD_KEYS = {
    "title": "title",
    "seo_title": "meta_title",
    "seo_description": "meta_description",
}


@dataclass(frozen=True)
class TranslatedMarkup:
    """Result of running a markup fragment through the pipeline."""

    markup: str
    fields: Mapping[str, Optional[str]]
    segment_count: int


def validate_request(handle: Any, locale: Any) -> tuple[str, str]:
    """Normalise and check the handle and locale of a sync request."""

    if not isinstance(handle, str) or not handle.strip():
        raise InvalidInput("Missing required field: handle")
    handle = handle.strip()
    if not HANDLE_PATTERN.match(handle):
        raise InvalidInput(f'Malformed handle "{handle}"')
    if not isinstance(locale, str) or not LOCALE_PATTERN.match(locale.strip()):
        raise InvalidInput(f'Malformed locale "{locale}"')
    return handle, locale.strip()


class CatalogTranslator:
    """Coordinates fetch, extraction, translation, splicing and registration."""

    def __init__(
        self,
        *,
        settings: TarjamaConfig,
        client: Optional[ShopifyAdminClient],
        oracle: TransformationOracle,
        digest_policy: Optional[DigestPolicy] = None,
    ) -> None:
        self.settings = settings
        self.client = client
        self.oracle = oracle
        self.digest_policy: DigestPolicy = digest_policy or settings.TARJAMA_DIGEST_POLICY

    def translate_markup(
        self,
        markup: str,
        *,
        locale: str,
        scalar_fields: Optional[Mapping[str, str]] = None,
    ) -> TranslatedMarkup:
        """Extract, transform, validate and splice one markup fragment."""

        segments = extract_segments(markup)
        result = self.oracle.transform(
            dict(scalar_fields or {}),
            list(segments.texts),
            locale=locale,
        )
        translated = validate_translation(segments, result)
        return TranslatedMarkup(
            markup=splice(markup, segments, translated),
            fields=dict(result.scalar_fields),
            segment_count=len(segments),
        )

    def sync(
        self,
        handle: Any,
        locale: Any = None,
        *,
        resource_type: str = "product",
    ) -> SyncOutcome:
        """Translate one resource and register the translations.

        Never raises: failures, including unexpected ones, are reported on
        the returned outcome, and nothing is registered unless every
        earlier stage succeeded.
        """

        start_time = time.time()
        if locale is None:
            locale = self.settings.TARJAMA_TARGET_LOCALE
        outcome = SyncOutcome(
            status=SyncStatus.FAILED,
            http_status=500,
            handle=str(handle or ""),
            locale=str(locale),
            resource_type=resource_type,
        )

        try:
            handle, locale = validate_request(handle, locale)
            outcome.handle, outcome.locale = handle, locale

            if self.client is None:
                raise ConfigurationError("A commerce client is required to sync resources.")
            resource = self.client.fetch_resource(handle, resource_type)
            outcome.resource_id = resource.id
            outcome.original = resource.as_dict()
            digests = self._collect_digests(resource)

            translated = self.translate_markup(
                resource.description_html,
                locale=locale,
                scalar_fields=resource.scalar_fields(),
            )
            outcome.segment_count = translated.segment_count
            outcome.translated = {
                "title": translated.fields.get("title"),
                "descriptionHtml": translated.markup,
                "seoTitle": translated.fields.get("seo_title"),
                "seoDescription": translated.fields.get("seo_description"),
            }

            inputs = self._build_inputs(resource, translated, locale, digests)
            registration = self._register(resource, inputs)
        except TarjamaError as exc:
            logger.error("Sync of %s failed: %s", outcome.handle or "<missing>", exc)
            outcome.http_status = exc.http_status
            outcome.error_kind = exc.kind
            outcome.error = exc.message
            outcome.details = exc.details
            outcome.elapsed_seconds = time.time() - start_time
            return outcome
        except Exception as exc:
            logger.exception("Unexpected error while syncing %s", outcome.handle or "<missing>")
            outcome.http_status = 500
            outcome.error_kind = type(exc).__name__
            outcome.error = f"Unexpected error: {exc}"
            outcome.elapsed_seconds = time.time() - start_time
            return outcome

        outcome.registered = registration.translations
        outcome.user_errors = registration.user_errors
        if registration.accepted:
            outcome.status = SyncStatus.SAVED
            outcome.http_status = 200
        else:
            rejection = RegistrationRejected(registration.user_errors)
            outcome.status = SyncStatus.REJECTED
            outcome.http_status = rejection.http_status
            outcome.error_kind = rejection.kind
            outcome.error = rejection.message
            outcome.details = rejection.details
        outcome.elapsed_seconds = time.time() - start_time
        logger.info(
            "Sync of %s into %s finished: %s (%d segments, %.2fs)",
            handle,
            locale,
            outcome.status.value,
            outcome.segment_count,
            outcome.elapsed_seconds,
        )
        return outcome

    def _source_values(self, resource: CatalogResource) -> Dict[str, str]:
        values = {FIELD_KEYS[name]: value for name, value in resource.scalar_fields().items()}
        values[BODY_KEY] = resource.description_html
        return values

    def _collect_digests(self, resource: CatalogResource) -> Dict[str, str]:
        if self.digest_policy == "off":
            return {}
        digests = self.client.fetch_digests(resource.id)
        if self.digest_policy == "required":
            missing = [
                key
                for key, value in self._source_values(resource).items()
                if value and key not in digests
            ]
            if missing:
                raise DigestUnavailable(
                    "Translatable content digests unavailable for: " + ", ".join(missing),
                    details={"missing": missing},
                )
        return digests

    def _build_inputs(
        self,
        resource: CatalogResource,
        translated: TranslatedMarkup,
        locale: str,
        digests: Mapping[str, str],
    ) -> List[TranslationInput]:
        values: Dict[str, Optional[str]] = {
            FIELD_KEYS[name]: translated.fields.get(name) for name in FIELD_KEYS
        }
        values[BODY_KEY] = translated.markup
        sources = self._source_values(resource)

        inputs: List[TranslationInput] = []
        for key in ("title", BODY_KEY, "meta_title", "meta_description"):
            value = values.get(key)
            # Empty sources have nothing to translate and the platform rejects empty values.
            if not value or not sources.get(key):
                continue
            inputs.append(
                TranslationInput(
                    key=key,
                    value=value,
                    locale=locale,
                    digest=digests.get(key),
                )
            )
        return inputs

    def _register(
        self,
        resource: CatalogResource,
        inputs: List[TranslationInput],
    ) -> RegistrationOutcome:
        if not inputs:
            logger.info("Nothing to register for %s.", resource.handle)
            return RegistrationOutcome()
        return self.client.register_translations(resource.id, inputs)
