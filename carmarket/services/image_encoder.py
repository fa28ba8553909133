import base64
from dataclasses import dataclass

from fastapi import UploadFile


@dataclass(frozen=True)
class EncodedImage:
    data: str  # base64 text
    media_type: str

    def as_inline_data(self) -> dict:
        return {"inline_data": {"mime_type": self.media_type, "data": self.data}}


def encode_image(data: bytes, media_type: str) -> EncodedImage:
    """Base64-encode raw image bytes. The content itself is not inspected."""
    return EncodedImage(data=base64.b64encode(data).decode("utf-8"), media_type=media_type)


async def encode_upload(upload: UploadFile) -> EncodedImage:
    data = await upload.read()
    return encode_image(data, upload.content_type or "application/octet-stream")
