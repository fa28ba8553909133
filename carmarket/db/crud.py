from sqlalchemy import select, func, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from carmarket.db.models import Car, User


# --- Users ---

async def get_user_by_clerk_id(db: AsyncSession, clerk_user_id: str) -> User | None:
    result = await db.execute(select(User).where(User.clerk_user_id == clerk_user_id))
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, data: dict) -> User:
    user = User(
        clerk_user_id=data["clerk_user_id"],
        email=data["email"],
        name=data.get("name"),
        image_url=data.get("image_url"),
        role=data.get("role", "USER"),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


# --- Cars ---

async def create_car(db: AsyncSession, car_id: str, data: dict, images: list[str]) -> Car:
    car = Car(
        id=car_id,
        make=data["make"],
        model=data["model"],
        year=data["year"],
        price=data["price"],
        mileage=data["mileage"],
        color=data["color"],
        fuel_type=data["fuel_type"],
        transmission=data["transmission"],
        body_type=data["body_type"],
        seats=data.get("seats"),
        description=data["description"],
        status=data.get("status", "AVAILABLE"),
        featured=data.get("featured", False),
        images=list(images),
    )
    db.add(car)
    await db.commit()
    await db.refresh(car)
    return car


async def get_car(db: AsyncSession, car_id: str) -> Car | None:
    return await db.get(Car, car_id)


def _search_clause(term: str):
    pattern = f"%{term.strip()}%"
    return or_(
        Car.make.ilike(pattern),
        Car.model.ilike(pattern),
        Car.body_type.ilike(pattern),
        Car.color.ilike(pattern),
        Car.description.ilike(pattern),
    )


async def search_cars(
    db: AsyncSession,
    search: str | None = None,
    make: str | None = None,
    body_type: str | None = None,
    fuel_type: str | None = None,
    transmission: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    sort_by: str = "newest",
    page: int = 1,
    limit: int = 6,
    status: str | None = "AVAILABLE",
) -> tuple[list[Car], int]:
    """Filter, sort and paginate cars. Returns (cars, total matching)."""
    query = select(Car)

    if status:
        query = query.where(Car.status == status)
    if search and search.strip():
        query = query.where(_search_clause(search))
    if make:
        query = query.where(func.lower(Car.make) == make.lower())
    if body_type:
        query = query.where(func.lower(Car.body_type) == body_type.lower())
    if fuel_type:
        query = query.where(func.lower(Car.fuel_type) == fuel_type.lower())
    if transmission:
        query = query.where(func.lower(Car.transmission) == transmission.lower())
    if min_price is not None:
        query = query.where(Car.price >= min_price)
    if max_price is not None:
        query = query.where(Car.price <= max_price)

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar_one()

    if sort_by == "price_asc":
        query = query.order_by(Car.price.asc(), Car.created_at.desc())
    elif sort_by == "price_desc":
        query = query.order_by(Car.price.desc(), Car.created_at.desc())
    else:
        query = query.order_by(Car.created_at.desc())

    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def get_all_cars(db: AsyncSession, search: str | None = None) -> list[Car]:
    query = select(Car)
    if search and search.strip():
        query = query.where(_search_clause(search))
    result = await db.execute(query.order_by(Car.created_at.desc()))
    return list(result.scalars().all())


async def get_car_filters(db: AsyncSession) -> dict:
    available = Car.status == "AVAILABLE"

    async def distinct(column) -> list[str]:
        result = await db.execute(select(column).where(available).distinct().order_by(column))
        return [row[0] for row in result.all() if row[0]]

    price_result = await db.execute(
        select(func.min(Car.price), func.max(Car.price)).where(available)
    )
    min_price, max_price = price_result.one()

    return {
        "makes": await distinct(Car.make),
        "body_types": await distinct(Car.body_type),
        "fuel_types": await distinct(Car.fuel_type),
        "transmissions": await distinct(Car.transmission),
        "price_range": {
            "min": float(min_price) if min_price is not None else 0,
            "max": float(max_price) if max_price is not None else 100000,
        },
    }


async def update_car_status(
    db: AsyncSession,
    car_id: str,
    status: str | None = None,
    featured: bool | None = None,
) -> Car | None:
    car = await db.get(Car, car_id)
    if not car:
        return None
    if status is not None:
        car.status = status
    if featured is not None:
        car.featured = featured
    await db.commit()
    await db.refresh(car)
    return car


async def delete_car(db: AsyncSession, car_id: str) -> bool:
    result = await db.execute(delete(Car).where(Car.id == car_id))
    await db.commit()
    return result.rowcount > 0
