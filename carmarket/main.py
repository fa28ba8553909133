import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from carmarket.config import settings
from carmarket.db.database import init_db, async_session
from carmarket.api.routes_cars import router as cars_router
from carmarket.api.routes_admin import router as admin_router
from carmarket.api.routes_users import router as users_router
from carmarket.services.ai_client import AIConfigurationError

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(title="CarMarket", version="0.1.0", lifespan=lifespan)

logger = logging.getLogger(__name__)


@app.exception_handler(AIConfigurationError)
async def ai_configuration_handler(request: Request, exc: AIConfigurationError):
    logger.error(f"AI service misconfigured on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exc()
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}\n{tb}")
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc)},
    )


@app.get("/api/v1/health")
async def health_check():
    """Check DB connectivity."""
    try:
        async with async_session() as db:
            await db.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected"}
    except Exception as e:
        return {"status": "error", "database": str(e)}


app.include_router(cars_router)
app.include_router(admin_router)
app.include_router(users_router)
