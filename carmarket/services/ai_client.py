import logging

import httpx

from carmarket.config import settings
from carmarket.services.image_encoder import EncodedImage

logger = logging.getLogger(__name__)


class AIConfigurationError(RuntimeError):
    pass


class AIServiceError(RuntimeError):
    pass


class GeminiClient:
    """Single-shot client for the Gemini generateContent endpoint."""

    def __init__(
        self,
        api_key: str | None,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, transport: httpx.AsyncBaseTransport | None = None) -> "GeminiClient":
        return cls(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            base_url=settings.GEMINI_API_BASE,
            timeout=settings.GEMINI_TIMEOUT_SECONDS,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, image: EncodedImage, prompt: str) -> str:
        """Send the image and prompt, return the raw text completion."""
        if not self.api_key:
            raise AIConfigurationError("GEMINI_API_KEY is not configured")

        body = {
            "contents": [
                {"role": "user", "parts": [image.as_inline_data(), {"text": prompt}]}
            ]
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.endpoint,
                    json=body,
                    headers={"x-goog-api-key": self.api_key},
                )
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Gemini returned HTTP {e.response.status_code}: {e.response.text[:500]}")
            raise AIServiceError(f"Gemini API error: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Gemini request failed: {e}")
            raise AIServiceError(f"Gemini API error: {e}") from e

        text = _extract_text(payload)
        if not text:
            reason = _finish_reason(payload)
            raise AIServiceError(f"Gemini API error: empty response (finish_reason={reason})")
        return text


def _first_candidate(payload) -> dict | None:
    if not isinstance(payload, dict):
        raise AIServiceError("Gemini API error: unexpected response shape")
    candidates = payload.get("candidates") or []
    if not isinstance(candidates, list) or (candidates and not isinstance(candidates[0], dict)):
        raise AIServiceError("Gemini API error: unexpected response shape")
    return candidates[0] if candidates else None


def _extract_text(payload) -> str:
    candidate = _first_candidate(payload)
    if candidate is None:
        return ""
    content = candidate.get("content") or {}
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return "".join(p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str))


def _finish_reason(payload: dict) -> str:
    candidate = _first_candidate(payload)
    if candidate is not None:
        return str(candidate.get("finishReason", "unknown"))
    feedback = payload.get("promptFeedback") or {}
    if not isinstance(feedback, dict):
        return "unknown"
    return str(feedback.get("blockReason", "unknown"))
