import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Boolean, Numeric, JSON, Index
)
from carmarket.db.database import Base


CAR_STATUSES = ("AVAILABLE", "UNAVAILABLE", "SOLD")
USER_ROLES = ("USER", "ADMIN")


def _utcnow():
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    clerk_user_id = Column(String(255), unique=True, nullable=False)  # external auth id
    email = Column(String(320), unique=True, nullable=False)
    name = Column(String(255))
    image_url = Column(String(1000))
    phone = Column(String(50))
    role = Column(String(20), default="USER", nullable=False)  # "USER" or "ADMIN"
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Car(Base):
    __tablename__ = "cars"

    # Also the storage folder name: cars/<id>/
    id = Column(String(36), primary_key=True, default=new_id)
    make = Column(String(100), nullable=False)
    model = Column(String(200), nullable=False)
    year = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    mileage = Column(Integer, nullable=False)
    color = Column(String(50), nullable=False)
    fuel_type = Column(String(50), nullable=False)
    transmission = Column(String(50), nullable=False)
    body_type = Column(String(50), nullable=False)
    seats = Column(Integer)
    description = Column(Text, nullable=False)
    status = Column(String(20), default="AVAILABLE", nullable=False)
    featured = Column(Boolean, default=False, nullable=False)
    images = Column(JSON, default=list, nullable=False)  # public URLs, upload order
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_car_make_model", "make", "model"),
        Index("ix_car_body_type", "body_type"),
        Index("ix_car_status", "status"),
        Index("ix_car_price", "price"),
    )


class ListingCache(Base):
    __tablename__ = "listing_cache"

    id = Column(Integer, primary_key=True, autoincrement=True)
    cache_key = Column(String(64), unique=True, nullable=False, index=True)
    payload = Column(Text, nullable=False)  # JSON of a CarListResponse
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)
