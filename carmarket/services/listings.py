import base64
import binascii
import logging
import re
import time
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carmarket.auth import AuthIdentity
from carmarket.db import crud
from carmarket.services import listing_cache
from carmarket.services.storage import ObjectStorage, StorageError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image/"
DEFAULT_EXTENSION = "jpeg"

_MIME_RE = re.compile(r"^data:image/([a-zA-Z0-9.+-]+)")


class Unauthorized(Exception):
    pass


class ListingError(RuntimeError):
    pass


class NoValidImagesError(ListingError):
    pass


def image_extension(data_url: str) -> str:
    match = _MIME_RE.match(data_url)
    if not match:
        return DEFAULT_EXTENSION
    # image/svg+xml -> svg
    return match.group(1).split("+")[0].lower()


def decode_data_url(data_url: str) -> tuple[bytes, str]:
    """Return (bytes, media type) for a base64 image data URL."""
    header, sep, payload = data_url.partition(",")
    if not sep:
        raise ValueError("data URL has no payload")
    media_type = header[len("data:"):].split(";")[0] or "image/jpeg"
    return base64.b64decode(payload, validate=True), media_type


def storage_folder(car_id: str) -> str:
    return f"cars/{car_id}"


async def upload_car_images(
    storage: ObjectStorage, car_id: str, images: list[str]
) -> list[str]:
    """Upload data-URL images one by one, in order. Malformed entries are skipped."""
    folder = storage_folder(car_id)
    urls = []

    for i, image in enumerate(images):
        if not isinstance(image, str) or not image.startswith(DATA_URL_PREFIX):
            logger.warning(f"Skipping image {i} for car {car_id}: not an image data URL")
            continue

        try:
            data, media_type = decode_data_url(image)
        except (ValueError, binascii.Error) as e:
            logger.warning(f"Skipping image {i} for car {car_id}: {e}")
            continue

        timestamp = int(time.time() * 1000)
        path = f"{folder}/image-{timestamp}-{i}.{image_extension(image)}"

        try:
            url = await storage.upload(path, data, media_type)
        except StorageError as e:
            raise ListingError(str(e)) from e
        urls.append(url)

    return urls


async def add_car(
    db: AsyncSession,
    identity: AuthIdentity | None,
    car_data: dict,
    images: list[str],
    storage: ObjectStorage,
) -> dict:
    """Upload the images and create the listing.

    The first failed upload aborts the whole operation and removes the
    images already stored for it. Nothing is written to the database
    unless at least one image made it to storage.
    """
    if identity is None:
        raise Unauthorized("User not authenticated")

    user = await crud.get_user_by_clerk_id(db, identity.sub)
    if not user:
        raise Unauthorized("User not found")

    car_id = str(uuid.uuid4())

    try:
        urls = await upload_car_images(storage, car_id, images)
    except ListingError:
        await _discard_uploads(storage, car_id)
        raise
    if not urls:
        raise NoValidImagesError("No valid images were uploaded")

    try:
        await crud.create_car(db, car_id, car_data, urls)
    except SQLAlchemyError as e:
        await db.rollback()
        await _discard_uploads(storage, car_id)
        raise ListingError(f"Error adding car: {e}") from e

    logger.info(f"Car {car_id} created by {user.id} with {len(urls)} images")
    await listing_cache.invalidate(db)
    return {"success": True, "car_id": car_id}


async def update_car(
    db: AsyncSession,
    car_id: str,
    status: str | None = None,
    featured: bool | None = None,
):
    try:
        car = await crud.update_car_status(db, car_id, status=status, featured=featured)
    except SQLAlchemyError as e:
        await db.rollback()
        raise ListingError(f"Error updating car: {e}") from e
    if car is not None:
        await listing_cache.invalidate(db)
    return car


async def remove_car(db: AsyncSession, car_id: str, storage: ObjectStorage) -> bool:
    """Delete the images, then the listing row.

    A storage failure leaves the row in place so the delete can be retried.
    """
    if await crud.get_car(db, car_id) is None:
        return False

    try:
        await storage.delete_folder(storage_folder(car_id))
    except StorageError as e:
        raise ListingError(str(e)) from e

    try:
        deleted = await crud.delete_car(db, car_id)
    except SQLAlchemyError as e:
        await db.rollback()
        raise ListingError(f"Error deleting car: {e}") from e

    await listing_cache.invalidate(db)
    return deleted


async def _discard_uploads(storage: ObjectStorage, car_id: str):
    # the upload or insert error is what gets reported
    try:
        await storage.delete_folder(storage_folder(car_id))
    except StorageError as e:
        logger.error(f"Images of aborted car {car_id} were left in storage: {e}")
