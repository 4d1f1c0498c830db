"""Markup segmentation, translation validation and reinsertion."""

from __future__ import annotations

from enum import Enum, auto
from typing import List, Optional, Sequence, Tuple

from .errors import SegmentCountMismatch
from .structures import SegmentSet, TextSegment, TranslationResult

TAG_OPEN = "<"
TAG_CLOSE = ">"


class _ScanState(Enum):
    TEXT = auto()
    TAG = auto()


def extract_segments(markup: str) -> SegmentSet:
    """Collect the text runs of ``markup`` that lie outside ``<...>`` regions.

    The scan is tolerant: unbalanced brackets never raise. A ``>`` met while
    scanning text closes the open run and counts as structure, so every
    segment satisfies ``segment.text == markup[segment.start:segment.end]``.
    Whitespace-only runs are emitted like any other run.
    """

    segments: List[TextSegment] = []
    state = _ScanState.TEXT
    run_start: Optional[int] = None

    for index, char in enumerate(markup):
        if char == TAG_OPEN:
            if state is _ScanState.TEXT and run_start is not None:
                segments.append(
                    TextSegment(run_start, index, markup[run_start:index])
                )
                run_start = None
            state = _ScanState.TAG
        elif char == TAG_CLOSE:
            if run_start is not None:
                segments.append(
                    TextSegment(run_start, index, markup[run_start:index])
                )
                run_start = None
            state = _ScanState.TEXT
        elif state is _ScanState.TEXT and run_start is None:
            run_start = index

    if state is _ScanState.TEXT and run_start is not None:
        segments.append(
            TextSegment(run_start, len(markup), markup[run_start:])
        )

    return SegmentSet(tuple(segments))


def validate_translation(
    original: SegmentSet,
    result: TranslationResult,
) -> Tuple[str, ...]:
    """Return the translated segments once they match the source cardinality."""

    translated = tuple(result.segments_translated)
    if len(translated) != len(original):
        raise SegmentCountMismatch(expected=len(original), got=len(translated))
    return translated


def splice(
    markup: str,
    segments: SegmentSet,
    translated: Sequence[str],
) -> str:
    """Rebuild ``markup`` with each segment replaced by its translation.

    Bytes outside the segment boundaries are copied verbatim and in order.
    """

    if len(translated) != len(segments):
        raise SegmentCountMismatch(expected=len(segments), got=len(translated))

    parts: List[str] = []
    cursor = 0
    for segment, replacement in zip(segments, translated):
        parts.append(markup[cursor:segment.start])
        parts.append(replacement)
        cursor = segment.end
    parts.append(markup[cursor:])
    return "".join(parts)


def structural_ranges(markup: str, segments: SegmentSet) -> List[Tuple[int, int]]:
    """Return the ``[start, end)`` ranges of ``markup`` not covered by segments."""

    ranges: List[Tuple[int, int]] = []
    cursor = 0
    for segment in segments:
        if segment.start > cursor:
            ranges.append((cursor, segment.start))
        cursor = segment.end
    if cursor < len(markup):
        ranges.append((cursor, len(markup)))
    return ranges
