import logging

from carmarket.schemas.car import ExtractionResult
from carmarket.services.ai_client import GeminiClient
from carmarket.services.image_encoder import encode_image
from carmarket.services.prompts import build_extraction_prompt
from carmarket.services.response_parser import parse_extraction_response

logger = logging.getLogger(__name__)


async def process_car_image_with_ai(
    data: bytes,
    media_type: str,
    client: GeminiClient | None = None,
) -> ExtractionResult:
    """Extract car details from one image.

    Configuration and remote errors are raised; a reply that cannot be
    turned into ``ExtractedCarDetails`` is returned as a failed result.
    """
    if client is None:
        client = GeminiClient.from_settings()

    image = encode_image(data, media_type)
    prompt = build_extraction_prompt()

    logger.info(f"Sending {len(data)} byte {media_type} image to {client.model}")
    text = await client.generate(image, prompt)

    result = parse_extraction_response(text)
    if result.success:
        logger.info(
            f"Extracted {result.data.year} {result.data.make} {result.data.model} "
            f"(confidence {result.data.confidence:.2f})"
        )
    return result
