"""Error definitions for the Tarjama catalog translator."""

from __future__ import annotations

from enum import Enum, auto
from typing import Any, Dict, List, Mapping, Optional


class ErrorCategory(Enum):
    """Categorises failures into HTTP-style status classes."""

    ARGUMENT = auto()
    NOT_FOUND = auto()
    UPSTREAM = auto()
    CONTRACT = auto()
    REJECTED = auto()
    CONFIGURATION = auto()

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorCategory.ARGUMENT: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.UPSTREAM: 502,
    ErrorCategory.CONTRACT: 500,
    ErrorCategory.REJECTED: 400,
    ErrorCategory.CONFIGURATION: 500,
}


class TarjamaError(Exception):
    """Base exception for all custom errors."""

    category: ErrorCategory = ErrorCategory.CONTRACT

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def http_status(self) -> int:
        return self.category.http_status


class InvalidInput(TarjamaError):
    """Raised when the handle or locale is missing or malformed."""

    category = ErrorCategory.ARGUMENT


class NotFound(TarjamaError):
    """Raised when the resource lookup succeeds but yields nothing."""

    category = ErrorCategory.NOT_FOUND


class UpstreamUnavailable(TarjamaError):
    """Raised when a commerce API call fails at the transport or status level."""

    category = ErrorCategory.UPSTREAM


class DigestUnavailable(UpstreamUnavailable):
    """Raised when the digest policy is strict and a source digest is missing."""


class OracleUnavailable(UpstreamUnavailable):
    """Raised when the translation oracle cannot be reached or refuses the call."""


class OracleMalformedResponse(TarjamaError):
    """Raised when the oracle output cannot be parsed as the expected object."""

    category = ErrorCategory.CONTRACT


class OracleContractViolation(TarjamaError):
    """Raised when the oracle output breaks the segment contract."""

    category = ErrorCategory.CONTRACT


class SegmentCountMismatch(OracleContractViolation):
    """Raised when the translated segment count differs from the source count."""

    def __init__(self, expected: int, got: int) -> None:
        super().__init__(
            f"Mismatch between source segments and translated segments: "
            f"expected {expected}, got {got}.",
            details={"expected": expected, "got": got},
        )
        self.expected = expected
        self.got = got


class RegistrationRejected(TarjamaError):
    """Raised when the commerce platform rejects translated fields."""

    category = ErrorCategory.REJECTED

    def __init__(self, user_errors: List[Dict[str, Any]]) -> None:
        super().__init__(
            "The commerce platform rejected the translations.",
            details={"userErrors": user_errors},
        )
        self.user_errors = user_errors


class ConfigurationError(TarjamaError):
    """Raised when settings are missing or invalid."""

    category = ErrorCategory.CONFIGURATION
