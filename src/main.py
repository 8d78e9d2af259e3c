from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routers import reservations as reservation_routes
from src.api.routers import parking_spaces as parking_space_routes
from src.config.settings_env import settings
from src.infrastructure.persistence.database import init_db
from src.shared.utils import logger

# pylint: disable=redefined-outer-name,unused-argument


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting parking reservation API")
    await init_db()
    yield
    logger.info("Parking reservation API stopped")


app = FastAPI(
    title="Patio API",
    description="Reservations and space inventory for logistics parking lots.",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reservation_routes.router)
app.include_router(parking_space_routes.router)


@app.get("/health", tags=["Health Check"])
def health_check():
    """
    Reports whether the application is up.
    """
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("src.main:app", host=settings.FASTAPI_HOST, port=settings.FASTAPI_PORT, reload=settings.DEV_MODE)
