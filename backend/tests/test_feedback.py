import json
import logging

import pytest

from app.coach.feedback import TIP_PLACEHOLDER, FeedbackRecord, coerce_score, normalize, parse_feedback
from app.errors import ParseError


@pytest.mark.parametrize(
    "raw_score,expected",
    [
        (-10, 0),
        (150, 100),
        ("85", 85),
        (85.6, 86),
        (84.5, 85),
        (" 72 ", 72),
        (None, None),
        ("abc", None),
        ("", None),
        (True, None),
        ([85], None),
        (float("nan"), None),
        (float("inf"), None),
        ("1e400", None),
        (10**400, None),
        (-(10**400), None),
    ],
)
def test_coerce_score_rounds_and_clamps(raw_score, expected):
    assert coerce_score(raw_score) == expected


def test_missing_score_field_is_absent():
    record = parse_feedback('{"transcript_en": "hello", "tips_es": []}')
    assert record.score is None


@pytest.mark.parametrize("tip_count", [0, 1, 2, 5])
def test_tips_always_have_exactly_three_entries(tip_count):
    tips = [f"tip {i}" for i in range(tip_count)]
    raw = json.dumps({"score": 70, "transcript_en": "hi", "tips_es": tips})

    record = parse_feedback(raw)

    assert len(record.tips) == 3
    assert list(record.tips[:min(tip_count, 3)]) == tips[:3]
    assert all(tip == TIP_PLACEHOLDER for tip in record.tips[tip_count:])


def test_tips_drop_blank_and_non_string_entries():
    raw = json.dumps({"score": 70, "transcript_en": "hi", "tips_es": ["  ", 3, "stress the first syllable", None]})

    record = parse_feedback(raw)

    assert record.tips == ("stress the first syllable", TIP_PLACEHOLDER, TIP_PLACEHOLDER)


def test_tips_not_a_list_yields_placeholders():
    record = parse_feedback('{"score": 70, "transcript_en": "hi", "tips_es": "just one"}')
    assert record.tips == (TIP_PLACEHOLDER,) * 3


def test_transcript_must_be_a_string():
    record = parse_feedback('{"score": 70, "transcript_en": 42}')
    assert record.transcript == ""


def test_code_fences_are_stripped():
    raw = '  ```json\n{"score": 90, "transcript_en": "I am here", "tips_es": ["a", "b", "c"]}\n```  '

    record = normalize(raw)

    assert record == FeedbackRecord(score=90, transcript="I am here", tips=("a", "b", "c"))


def test_uppercase_fence_marker_is_stripped():
    record = normalize('```JSON{"score": 50, "transcript_en": "x"}```')
    assert record is not None
    assert record.score == 50


def test_parse_feedback_rejects_invalid_json():
    with pytest.raises(ParseError):
        parse_feedback("{not json")


def test_parse_feedback_rejects_non_object():
    with pytest.raises(ParseError):
        parse_feedback('["score", 80]')


def test_normalize_logs_and_returns_none_on_parse_error(caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.WARNING, logger="app.coach.feedback"):
        assert normalize("{not json") is None
    assert any("parse error" in message for message in caplog.messages)


def test_normalize_blank_buffer_returns_none():
    assert normalize("   ") is None


def test_normalize_discards_incomplete_record_by_default(caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.WARNING, logger="app.coach.feedback"):
        assert normalize('{"score": 80, "transcript_en": ""}') is None
        assert normalize('{"transcript_en": "I am here"}') is None
    assert len([m for m in caplog.messages if "incomplete" in m]) == 2


def test_normalize_tolerant_policy_publishes_partial_record():
    record = normalize('{"transcript_en": "I am here"}', require_complete=False)

    assert record is not None
    assert record.score is None
    assert record.transcript == "I am here"
    assert record.tips == (TIP_PLACEHOLDER,) * 3


def test_to_payload_uses_published_shape():
    record = FeedbackRecord(score=85, transcript="I am here", tips=("a", "b", "c"))

    assert record.to_payload() == {"score": 85, "transcript_en": "I am here", "tips_es": ["a", "b", "c"]}


@pytest.mark.parametrize("digits", [400, 5000])
def test_oversized_integer_score_is_dropped_not_raised(digits):
    raw = '{"score": ' + "9" * digits + ', "transcript_en": "hi", "tips_es": ["a", "b", "c"]}'

    assert normalize(raw) is None
    tolerant = normalize(raw, require_complete=False)
    assert tolerant is None or tolerant.score is None
