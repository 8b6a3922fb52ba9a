from __future__ import annotations

import pytest

from gitaudit.analyze.llm.response_parser import ResponseParser
from gitaudit.errors import MalformedResponse


def test_extract_bare_object() -> None:
    assert ResponseParser().extract_json('{"a": 1}') == {"a": 1}


def test_extract_from_code_fence() -> None:
    text = 'Here you go:\n```json\n{"category": "feature"}\n```\nThanks'
    assert ResponseParser().extract_json(text) == {"category": "feature"}


def test_extract_from_surrounding_prose() -> None:
    text = 'The answer is {"importance": 3, "nested": {"k": "v"}} as requested.'
    assert ResponseParser().extract_json(text) == {"importance": 3, "nested": {"k": "v"}}


@pytest.mark.parametrize(
    "text",
    ["", "   ", "no json here", "{not: valid}", "```json\n[1, 2]\n```"],
)
def test_extract_raises_malformed(text: str) -> None:
    with pytest.raises(MalformedResponse):
        ResponseParser().extract_json(text)


def test_parse_classification_normalizes_fields() -> None:
    parsed = ResponseParser().parse_classification(
        {"category": " Feature ", "description": "  Added export  ", "importance": "4"}
    )
    assert parsed.category == "feature"
    assert parsed.description == "Added export"
    assert parsed.importance == 4


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(9, 5), (0, None), (-2, None), (True, None), ("high", None), (None, None), (2.7, 2)],
)
def test_parse_classification_importance(raw, expected) -> None:
    assert ResponseParser().parse_classification({"importance": raw}).importance == expected


def test_parse_classification_rejects_unknown_category() -> None:
    parsed = ResponseParser().parse_classification({"category": "misc", "description": ""})
    assert parsed.category is None
    assert parsed.description is None
