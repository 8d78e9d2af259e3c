from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file="../.env", extra="ignore")

    # Development
    DEV_MODE: bool = Field(default=True, description="Enable debug mode")

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./patio.db", description="Database connection URL")
    ASYNC_DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./patio.db", description="Async database URL")
    SQL_ECHO: bool = Field(default=False, description="Echo SQL statements")
    TRANSACTION_MAX_RETRIES: int = Field(default=3, ge=1, description="Attempts per unit of work on isolation conflicts")

    # FastAPI
    FASTAPI_HOST: str = Field(default="localhost", description="FastAPI host")
    FASTAPI_PORT: int = Field(default=8080, description="FastAPI port")
    CORS_ORIGINS: list[str] = Field(default=["http://localhost:5173"], description="Allowed CORS origins")

    # Reservations
    MANUAL_OCCUPANCY_HORIZON_HOURS: int = Field(
        default=24, ge=1, description="Provisional length of a walk-up occupancy"
    )
    VEHICLE_SEARCH_LIMIT: int = Field(default=10, ge=1, description="Max vehicles returned by plate search")


# Create settings instance
settings = Settings()
