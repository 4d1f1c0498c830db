import pytest

from tarjama.errors import SegmentCountMismatch
from tarjama.segmenter import (
    extract_segments,
    splice,
    structural_ranges,
    validate_translation,
)
from tarjama.structures import TranslationResult

SAMPLES = [
    "",
    "<p></p>",
    "plain text only",
    "<p>Hello <strong>World</strong></p>",
    "<ul>\n  <li>One</li>\n  <li>Two</li>\n</ul>",
    "<br/>Line<br />break<img src='a.png'/>",
    "a > b < c",
    "<p>unterminated <b",
    "stray > close",
    ">>leading",
    "<<nested <tags>> text",
    "<p>مرحبا</p> tail",
    "   ",
]


def test_scenario_extracts_and_splices_in_place():
    markup = "<p>Hello <strong>World</strong></p>"
    segments = extract_segments(markup)

    assert segments.texts == ("Hello ", "World")
    assert [(s.start, s.end) for s in segments] == [(3, 9), (17, 22)]

    rebuilt = splice(markup, segments, ["مرحبا ", "العالم"])
    assert rebuilt == "<p>مرحبا <strong>العالم</strong></p>"


def test_text_without_tags_is_one_segment():
    segments = extract_segments("plain text only")

    assert len(segments) == 1
    assert segments[0].start == 0
    assert segments[0].end == len("plain text only")


def test_tag_only_markup_has_no_segments():
    segments = extract_segments("<p></p>")

    assert len(segments) == 0
    assert splice("<p></p>", segments, []) == "<p></p>"


def test_whitespace_between_tags_is_a_segment():
    segments = extract_segments("<li>One</li>\n  <li>Two</li>")

    assert segments.texts == ("One", "\n  ", "Two")


def test_unclosed_tag_drops_trailing_text():
    segments = extract_segments("<p>unterminated <b")

    assert segments.texts == ("unterminated ",)


def test_bare_close_bracket_is_structural():
    markup = "stray > close"
    segments = extract_segments(markup)

    assert segments.texts == ("stray ", " close")
    assert splice(markup, segments, ["A", "B"]) == "A>B"


@pytest.mark.parametrize("markup", SAMPLES)
def test_segments_and_structure_partition_the_markup(markup):
    segments = extract_segments(markup)
    covered = [(s.start, s.end) for s in segments] + structural_ranges(markup, segments)
    covered.sort()

    cursor = 0
    for start, end in covered:
        assert start == cursor
        assert start < end
        cursor = end
    assert cursor == len(markup)

    for segment in segments:
        assert segment.text == markup[segment.start:segment.end]
        assert "<" not in segment.text and ">" not in segment.text


@pytest.mark.parametrize("markup", SAMPLES)
def test_splicing_original_text_reproduces_markup(markup):
    segments = extract_segments(markup)

    assert splice(markup, segments, segments.texts) == markup


def test_splice_keeps_order_for_identical_translations():
    markup = "<a>x</a><b>y</b><c>z</c>"
    segments = extract_segments(markup)

    rebuilt = splice(markup, segments, ["same", "same", "other"])

    assert rebuilt == "<a>same</a><b>same</b><c>other</c>"


def test_splice_output_length_follows_replacements():
    markup = "<h1>Title</h1><p>Body copy</p>"
    segments = extract_segments(markup)
    translated = ["T", "A much longer body copy"]

    rebuilt = splice(markup, segments, translated)

    expected = (
        len(markup)
        - sum(len(s.text) for s in segments)
        + sum(len(t) for t in translated)
    )
    assert len(rebuilt) == expected


def test_validate_translation_rejects_count_mismatch():
    segments = extract_segments("<p>Hello <strong>World</strong></p>")
    result = TranslationResult(scalar_fields={}, segments_translated=("مرحبا",))

    with pytest.raises(SegmentCountMismatch) as excinfo:
        validate_translation(segments, result)

    assert excinfo.value.expected == 2
    assert excinfo.value.got == 1
    assert excinfo.value.details == {"expected": 2, "got": 1}


def test_validate_translation_accepts_uneven_lengths():
    segments = extract_segments("<p>a</p><p>b</p>")
    result = TranslationResult(
        scalar_fields={},
        segments_translated=("", "a much longer translation"),
    )

    assert validate_translation(segments, result) == ("", "a much longer translation")


def test_splice_refuses_mismatched_translations():
    markup = "<p>one</p><p>two</p>"

    with pytest.raises(SegmentCountMismatch):
        splice(markup, extract_segments(markup), ["only one"])
