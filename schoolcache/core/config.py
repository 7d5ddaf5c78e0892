from pydantic_settings import BaseSettings
from typing import Optional, Dict

class Settings(BaseSettings):
    PROJECT_NAME: str = "School Cache"
    VERSION: str = "1.0.0"

    # Cache
    CACHE_MAX_ENTRIES: int = 500
    CACHE_SWEEP_INTERVAL: int = 60  # seconds
    CACHE_DEFAULT_TTL: int = 300  # 5 minutes
    CACHE_SINGLE_FLIGHT: bool = True
    CACHE_TTL_OVERRIDES: Dict[str, int] = {}

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    TESTING: bool = False

    class Config:
        env_file = ".env"

settings = Settings()
