"""Core data structures for the Tarjama catalog translator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class TextSegment:
    """A maximal run of text lying outside any tag, with its source offsets."""

    start: int
    end: int
    text: str


@dataclass(frozen=True)
class SegmentSet:
    """Ordered, immutable collection of segments extracted from one markup string."""

    segments: Tuple[TextSegment, ...] = ()

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[TextSegment]:
        return iter(self.segments)

    def __getitem__(self, index: int) -> TextSegment:
        return self.segments[index]

    @property
    def texts(self) -> Tuple[str, ...]:
        return tuple(segment.text for segment in self.segments)


@dataclass(frozen=True)
class TranslationResult:
    """Oracle output: translated scalar fields plus translated segments."""

    scalar_fields: Mapping[str, Optional[str]]
    segments_translated: Tuple[str, ...]


@dataclass(frozen=True)
class CatalogResource:
    """A translatable catalog resource fetched by handle."""

    resource_type: str
    id: str
    handle: str
    title: str
    description_html: str
    seo_title: str
    seo_description: str

    def scalar_fields(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "seo_title": self.seo_title,
            "seo_description": self.seo_description,
        }

    def as_dict(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "descriptionHtml": self.description_html,
            "seoTitle": self.seo_title,
            "seoDescription": self.seo_description,
        }


@dataclass(frozen=True)
class TranslationInput:
    """One translated field submitted to the registration call."""

    key: str
    value: str
    locale: str
    digest: Optional[str] = None

    def to_payload(self) -> Dict[str, str]:
        payload = {"key": self.key, "value": self.value, "locale": self.locale}
        if self.digest:
            payload["translatableContentDigest"] = self.digest
        return payload


@dataclass
class RegistrationOutcome:
    """Accepted translations or field-level rejections from the platform."""

    translations: List[Dict[str, Any]] = field(default_factory=list)
    user_errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return not self.user_errors


@dataclass
class UpdateOutcome:
    """Resource returned by an in-place SEO update, or its field-level rejections."""

    resource: Optional[Dict[str, Any]] = None
    user_errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return not self.user_errors


class SyncStatus(Enum):
    FAILED = "failed"
    REJECTED = "rejected"
    SAVED = "saved"


@dataclass
class SyncOutcome:
    """Report returned by the public entry point."""

    status: SyncStatus
    http_status: int
    handle: str
    locale: str
    resource_type: str
    resource_id: Optional[str] = None
    original: Dict[str, Any] = field(default_factory=dict)
    translated: Dict[str, Any] = field(default_factory=dict)
    registered: List[Dict[str, Any]] = field(default_factory=list)
    user_errors: List[Dict[str, Any]] = field(default_factory=list)
    error_kind: Optional[str] = None
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    segment_count: int = 0
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is SyncStatus.SAVED

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "ok": self.ok,
            "status": self.status.value,
            "httpStatus": self.http_status,
            "handle": self.handle,
            "locale": self.locale,
            "resourceType": self.resource_type,
            "resourceId": self.resource_id,
        }
        if self.error_kind:
            payload["error"] = {
                "kind": self.error_kind,
                "message": self.error,
                "details": self.details,
            }
        if self.original:
            payload["original"] = self.original
        if self.translated:
            payload["translated"] = self.translated
        if self.status is not SyncStatus.FAILED:
            payload["registered"] = self.registered
            payload["userErrors"] = self.user_errors
        return payload

