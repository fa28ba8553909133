import json
import logging

import pytest

from carmarket.services.prompts import REQUIRED_FIELDS, build_extraction_prompt
from carmarket.services.response_parser import (
    parse_extraction_response, strip_code_fences, find_missing_fields,
)
from tests.factories import FULL_DETAILS


def test_fenced_response_parses():
    text = "```json\n" + json.dumps(FULL_DETAILS) + "\n```"
    result = parse_extraction_response(text)

    assert result.success is True
    assert result.error is None
    assert result.data.make == "Toyota"
    assert result.data.year == 2020
    assert result.data.body_type == "Sedan"
    assert isinstance(result.data.confidence, float)
    assert result.data.confidence == pytest.approx(0.87)


def test_result_serialises_with_camel_case_field_names():
    result = parse_extraction_response(json.dumps(FULL_DETAILS))
    dumped = result.model_dump(by_alias=True, exclude_none=True)

    assert dumped["success"] is True
    assert "error" not in dumped
    assert set(dumped["data"]) == set(REQUIRED_FIELDS)


@pytest.mark.parametrize("fence", ["```json\n{}\n```", "```\n{}\n```", "```json{}```"])
def test_strip_code_fences_is_idempotent(fence):
    wrapped = fence.replace("{}", json.dumps(FULL_DETAILS))
    once = strip_code_fences(wrapped)

    assert strip_code_fences(once) == once
    assert json.loads(once) == FULL_DETAILS


def test_fenced_and_plain_give_same_result():
    plain = json.dumps(FULL_DETAILS)
    fenced = f"```json\n{plain}\n```"

    assert parse_extraction_response(fenced) == parse_extraction_response(plain)


@pytest.mark.parametrize("field", REQUIRED_FIELDS)
def test_missing_field_is_named(field):
    payload = {k: v for k, v in FULL_DETAILS.items() if k != field}
    result = parse_extraction_response(json.dumps(payload))

    assert result.success is False
    assert result.data is None
    assert result.error == f"AI response missing required fields: {field}"


def test_single_field_names_every_missing_one():
    result = parse_extraction_response('{"make":"Toyota"}')

    assert result.success is False
    missing = result.error.split(": ", 1)[1].split(", ")
    assert missing == [f for f in REQUIRED_FIELDS if f != "make"]


def test_find_missing_fields_keeps_declared_order():
    assert find_missing_fields({"year": 2001, "make": "Ford"}) == [
        f for f in REQUIRED_FIELDS if f not in ("year", "make")
    ]


def test_unparseable_text_is_a_parse_failure(caplog):
    caplog.set_level(logging.WARNING)
    result = parse_extraction_response("Sorry, I can't tell what car this is.")

    assert result.success is False
    assert result.error.startswith("Failed to parse AI response")
    assert "Sorry, I can't tell what car this is." in caplog.text


def test_json_array_is_rejected():
    result = parse_extraction_response("[1, 2, 3]")

    assert result.success is False
    assert "expected a JSON object" in result.error


def test_wrong_types_are_reported_separately():
    payload = dict(FULL_DETAILS, year="unknown", confidence=1.7)
    result = parse_extraction_response(json.dumps(payload))

    assert result.success is False
    assert result.error == "AI response has invalid fields: confidence, year"


def test_numeric_price_and_mileage_become_text():
    payload = dict(FULL_DETAILS, price=18500, mileage=42000.5, year="2019")
    result = parse_extraction_response(json.dumps(payload))

    assert result.success is True
    assert result.data.price == "18500"
    assert result.data.mileage == "42000.5"
    assert result.data.year == 2019


def test_prompt_mentions_every_field():
    prompt = build_extraction_prompt()
    for field in REQUIRED_FIELDS:
        assert f'"{field}"' in prompt
