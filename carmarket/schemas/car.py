from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


CarStatus = Literal["AVAILABLE", "UNAVAILABLE", "SOLD"]
SortOrder = Literal["newest", "price_asc", "price_desc"]


class ExtractedCarDetails(BaseModel):
    """Car metadata suggested by the AI from a single photo."""

    model_config = ConfigDict(populate_by_name=True)

    make: str
    model: str
    year: int
    color: str
    body_type: str = Field(alias="bodyType")
    # Free text: the model returns guesses like "about 40,000 miles"
    price: str
    mileage: str
    fuel_type: str = Field(alias="fuelType")
    transmission: str
    description: str
    confidence: float = Field(ge=0, le=1)

    @field_validator("price", "mileage", mode="before")
    @classmethod
    def _numbers_to_text(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class ExtractionResult(BaseModel):
    success: bool
    data: ExtractedCarDetails | None = None
    error: str | None = None


class CarCreateRequest(BaseModel):
    make: str = Field(min_length=1)
    model: str = Field(min_length=1)
    year: int = Field(ge=1900, le=2100)
    price: Decimal = Field(ge=0)
    mileage: int = Field(ge=0)
    color: str = Field(min_length=1)
    fuel_type: str = Field(min_length=1)
    transmission: str = Field(min_length=1)
    body_type: str = Field(min_length=1)
    seats: int | None = None
    description: str = Field(min_length=10)
    status: CarStatus = "AVAILABLE"
    featured: bool = False


class AddCarRequest(BaseModel):
    car_data: CarCreateRequest
    images: list[str]  # data URLs, in display order


class AddCarResponse(BaseModel):
    success: bool
    car_id: str


class CarUpdateRequest(BaseModel):
    status: CarStatus | None = None
    featured: bool | None = None


class CarResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    make: str
    model: str
    year: int
    price: float
    mileage: int
    color: str
    fuel_type: str
    transmission: str
    body_type: str
    seats: int | None
    description: str
    status: str
    featured: bool
    images: list[str]
    created_at: datetime | None
    updated_at: datetime | None


class CarSearchParams(BaseModel):
    search: str | None = None
    make: str | None = None
    body_type: str | None = None
    fuel_type: str | None = None
    transmission: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    sort_by: SortOrder = "newest"
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1, le=100)


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class CarListResponse(BaseModel):
    success: bool = True
    data: list[CarResponse]
    pagination: Pagination


class PriceRange(BaseModel):
    min: float
    max: float


class CarFiltersResponse(BaseModel):
    makes: list[str]
    body_types: list[str]
    fuel_types: list[str]
    transmissions: list[str]
    price_range: PriceRange
