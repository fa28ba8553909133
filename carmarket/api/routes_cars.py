import logging
import math
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from carmarket.auth import AuthIdentity, require_identity
from carmarket.config import settings
from carmarket.db.database import get_db
from carmarket.db.crud import search_cars, get_car, get_car_filters
from carmarket.schemas.car import (
    CarSearchParams, CarListResponse, CarResponse, CarFiltersResponse, ExtractionResult, Pagination,
)
from carmarket.services import listing_cache
from carmarket.services.ai_client import AIServiceError, GeminiClient
from carmarket.services.extraction import process_car_image_with_ai

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/cars", tags=["cars"])


def get_ai_client() -> GeminiClient:
    return GeminiClient.from_settings()


@router.get("", response_model=CarListResponse)
async def list_cars(params: Annotated[CarSearchParams, Query()], db: AsyncSession = Depends(get_db)):
    limit = params.limit or settings.DEFAULT_PAGE_SIZE
    query = params.model_dump(exclude={"limit"})
    query["limit"] = limit

    cache_key = listing_cache.build_cache_key(query)
    cached = await listing_cache.get_cached(db, cache_key)
    if cached is not None:
        return CarListResponse.model_validate_json(cached)

    cars, total = await search_cars(db, **query)
    response = CarListResponse(
        data=[CarResponse.model_validate(c) for c in cars],
        pagination=Pagination(
            total=total,
            page=params.page,
            limit=limit,
            pages=math.ceil(total / limit) if total else 0,
        ),
    )
    await listing_cache.set_cache(db, cache_key, response.model_dump_json())
    return response


@router.get("/filters", response_model=CarFiltersResponse)
async def list_filters(db: AsyncSession = Depends(get_db)):
    return await get_car_filters(db)


@router.post("/process-image", response_model=ExtractionResult, response_model_exclude_none=True)
async def process_image(
    file: UploadFile = File(...),
    identity: AuthIdentity = Depends(require_identity),
    client: GeminiClient = Depends(get_ai_client),
):
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")

    data = await file.read()
    if len(data) > settings.MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail="Image size must be less than 5MB")

    logger.info(f"Image extraction requested by {identity.sub}: {file.filename}")
    try:
        return await process_car_image_with_ai(data, file.content_type, client=client)
    except AIServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/{car_id}", response_model=CarResponse)
async def get_car_detail(car_id: str, db: AsyncSession = Depends(get_db)):
    car = await get_car(db, car_id)
    if not car:
        raise HTTPException(status_code=404, detail="Car not found")
    return car
