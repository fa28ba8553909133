"""Turn raw model output into a validated ``ExtractedCarDetails``.

Parsing happens in two steps: the text is decoded into an untyped JSON
object, then checked for the required keys and converted into the typed
model. Every failure comes back as ``ExtractionResult(success=False)`` with a
message telling which step failed; the raw text is logged so it can be
inspected by hand.
"""
import json
import logging
import re

from pydantic import ValidationError

from carmarket.schemas.car import ExtractedCarDetails, ExtractionResult
from carmarket.services.prompts import REQUIRED_FIELDS

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\n?")


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def find_missing_fields(payload: dict) -> list[str]:
    return [field for field in REQUIRED_FIELDS if field not in payload]


def parse_extraction_response(text: str) -> ExtractionResult:
    cleaned = strip_code_fences(text)

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        return _failure(f"Failed to parse AI response: {e.msg}", text)

    if not isinstance(payload, dict):
        return _failure(
            f"Failed to parse AI response: expected a JSON object, got {type(payload).__name__}",
            text,
        )

    missing = find_missing_fields(payload)
    if missing:
        return _failure(f"AI response missing required fields: {', '.join(missing)}", text)

    try:
        details = ExtractedCarDetails.model_validate(payload)
    except ValidationError as e:
        invalid = sorted({_field_name(err) for err in e.errors()})
        return _failure(f"AI response has invalid fields: {', '.join(invalid)}", text)

    return ExtractionResult(success=True, data=details)


def _field_name(error: dict) -> str:
    loc = error.get("loc") or ("?",)
    return str(loc[0])


def _failure(message: str, raw_text: str) -> ExtractionResult:
    logger.warning(f"{message}\nRaw response: {raw_text}")
    return ExtractionResult(success=False, error=message)
