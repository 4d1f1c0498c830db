from __future__ import annotations

import logging
import os
import sys
from typing import Optional

THIRD_PARTY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3", "requests")


def _parse_level(raw: Optional[str], default: int) -> int:
    if not raw:
        return default
    value = raw.strip().upper()
    level = getattr(logging, value, default)
    return level if isinstance(level, int) else default


def configure_logging(*, verbose: bool = False, debug: bool = False) -> None:
    """Central logging config for the CLI.

    Env:
    - LOG_LEVEL=DEBUG|INFO|WARNING (default: INFO when verbose, WARNING otherwise)
    - LOG_FORMAT=... (standard logging format string)
    - SHOW_THIRD_PARTY_LOGS=1 to keep INFO/DEBUG from HTTP and SDK libraries
    """

    default_level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    root_level = _parse_level(os.getenv("LOG_LEVEL"), default_level)

    # Reset existing handlers to avoid duplicates on repeated calls.
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stderr)
    fmt = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s %(levelname)s %(name)s | %(message)s",
    )
    handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)
    root.setLevel(root_level)

    show_third_party = (os.getenv("SHOW_THIRD_PARTY_LOGS", "0") or "").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }
    if not show_third_party:
        for name in THIRD_PARTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
