import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from carmarket.auth import AuthIdentity, get_identity
from carmarket.db.database import get_db
from carmarket.db.crud import get_all_cars
from carmarket.db.models import User
from carmarket.schemas.car import AddCarRequest, AddCarResponse, CarResponse, CarUpdateRequest
from carmarket.schemas.user import AdminCheckResponse
from carmarket.services.admin import get_admin, require_admin
from carmarket.services.aggregator import compute_inventory_stats
from carmarket.services.exporter import export_cars_to_excel
from carmarket.services.listings import (
    add_car, update_car, remove_car, ListingError, NoValidImagesError, Unauthorized,
)
from carmarket.services.storage import ObjectStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.get("/check", response_model=AdminCheckResponse, response_model_exclude_none=True)
async def check_admin(
    identity: AuthIdentity | None = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    check = await get_admin(db, identity)
    return AdminCheckResponse.model_validate(check.as_dict(), from_attributes=True)


@router.get("/cars", response_model=list[CarResponse])
async def list_inventory(
    search: str | None = None,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_all_cars(db, search=search)


@router.post("/cars", response_model=AddCarResponse)
async def create_car(
    request: AddCarRequest,
    admin: User = Depends(require_admin),
    identity: AuthIdentity | None = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    try:
        return await add_car(db, identity, request.car_data.model_dump(), request.images, storage)
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=str(e))
    except NoValidImagesError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ListingError as e:
        logger.error(f"Admin {admin.id} could not add car: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/cars/{car_id}", response_model=CarResponse)
async def patch_car(
    car_id: str,
    request: CarUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if request.status is None and request.featured is None:
        raise HTTPException(status_code=400, detail="Nothing to update")
    car = await update_car(db, car_id, status=request.status, featured=request.featured)
    if not car:
        raise HTTPException(status_code=404, detail="Car not found")
    return car


@router.delete("/cars/{car_id}")
async def delete_car(
    car_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    try:
        deleted = await remove_car(db, car_id, storage)
    except ListingError as e:
        logger.error(f"Admin {admin.id} could not delete car {car_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Car not found")
    logger.info(f"Admin {admin.id} deleted car {car_id}")
    return {"success": True}


@router.get("/stats")
async def inventory_stats(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    cars = await get_all_cars(db)
    return compute_inventory_stats(cars)


@router.get("/export")
async def export_inventory(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    cars = await get_all_cars(db)
    if not cars:
        raise HTTPException(status_code=404, detail="No cars to export")

    excel_file = export_cars_to_excel(cars, compute_inventory_stats(cars))
    filename = f"inventory_{datetime.now(timezone.utc):%Y%m%d}.xlsx"

    return StreamingResponse(
        excel_file,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
