from functools import lru_cache
from typing import List, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "LiftLab"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # API
    API_V1_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS
    CORS_ORIGINS: Union[List[str], str] = []

    # Experiments
    DEFAULT_CONFIDENCE_LEVEL: float = 0.95
    ALLOCATION_TOLERANCE: float = 0.01
    MAX_TEST_DURATION_DAYS: int = 30
    MINIMUM_POWER: float = 0.8
    UNDERPERFORMANCE_RATIO: float = 0.5  # Variant ROI below this share of the best

    # Attribution
    ATTRIBUTION_FIRST_TOUCH_WEIGHT: float = 0.4
    ATTRIBUTION_LAST_TOUCH_WEIGHT: float = 0.3

    # Forecasting
    FORECAST_GROWTH_RATE: float = 0.05  # Per period, linear in the period index
    FORECAST_CONFIDENCE_DECAY: float = 0.02
    FORECAST_CONFIDENCE_FLOOR: float = 0.7

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            # Handle both comma-separated and JSON array strings
            if v.strip().startswith("["):
                import json

                return json.loads(v)
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
