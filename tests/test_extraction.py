import base64
import json

import httpx
import pytest

from carmarket.services.ai_client import GeminiClient, AIConfigurationError, AIServiceError
from carmarket.services.extraction import process_car_image_with_ai
from carmarket.services.image_encoder import encode_image
from tests.factories import FULL_DETAILS, PNG_BYTES, gemini_reply


def make_client(handler, api_key="test-key") -> GeminiClient:
    return GeminiClient(api_key=api_key, model="gemini-1.5-flash", transport=httpx.MockTransport(handler))


def test_encode_image_keeps_media_type():
    encoded = encode_image(PNG_BYTES, "image/png")

    assert encoded.media_type == "image/png"
    assert base64.b64decode(encoded.data) == PNG_BYTES
    assert encoded.as_inline_data() == {"inline_data": {"mime_type": "image/png", "data": encoded.data}}


async def test_generate_sends_image_and_prompt():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=gemini_reply("hello"))

    client = make_client(handler)
    text = await client.generate(encode_image(PNG_BYTES, "image/png"), "describe")

    assert text == "hello"
    assert seen["url"].endswith("/models/gemini-1.5-flash:generateContent")
    assert seen["key"] == "test-key"
    parts = seen["body"]["contents"][0]["parts"]
    assert parts[0]["inline_data"]["mime_type"] == "image/png"
    assert base64.b64decode(parts[0]["inline_data"]["data"]) == PNG_BYTES
    assert parts[1] == {"text": "describe"}


async def test_missing_api_key_fails_before_any_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=gemini_reply("{}"))

    client = make_client(handler, api_key="")
    with pytest.raises(AIConfigurationError, match="GEMINI_API_KEY is not configured"):
        await client.generate(encode_image(PNG_BYTES, "image/png"), "prompt")
    assert calls == []


async def test_http_error_is_wrapped():
    client = make_client(lambda request: httpx.Response(503, json={"error": {"message": "overloaded"}}))

    with pytest.raises(AIServiceError, match="^Gemini API error:"):
        await client.generate(encode_image(PNG_BYTES, "image/png"), "prompt")


async def test_transport_error_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AIServiceError, match="connection refused"):
        await make_client(handler).generate(encode_image(PNG_BYTES, "image/png"), "prompt")


async def test_blocked_response_is_an_error():
    client = make_client(lambda request: httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}))

    with pytest.raises(AIServiceError, match="SAFETY"):
        await client.generate(encode_image(PNG_BYTES, "image/png"), "prompt")


async def test_non_object_body_is_wrapped():
    client = make_client(lambda request: httpx.Response(200, json=[{"text": "hi"}]))
    with pytest.raises(AIServiceError, match="unexpected response shape"):
        await client.generate(encode_image(PNG_BYTES, "image/png"), "prompt")


async def test_malformed_candidate_is_wrapped():
    client = make_client(lambda request: httpx.Response(200, json={"candidates": ["oops"]}))
    with pytest.raises(AIServiceError, match="unexpected response shape"):
        await client.generate(encode_image(PNG_BYTES, "image/png"), "prompt")


async def test_process_car_image_success():
    text = "```json\n" + json.dumps(FULL_DETAILS) + "\n```"
    client = make_client(lambda request: httpx.Response(200, json=gemini_reply(text)))

    result = await process_car_image_with_ai(PNG_BYTES, "image/png", client=client)

    assert result.success is True
    assert result.data.model == "Camry"
    assert isinstance(result.data.confidence, float)


async def test_process_car_image_reports_bad_json_as_result():
    client = make_client(lambda request: httpx.Response(200, json=gemini_reply('{"make":"Toyota"}')))

    result = await process_car_image_with_ai(PNG_BYTES, "image/png", client=client)

    assert result.success is False
    assert "missing required fields" in result.error
