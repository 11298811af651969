from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "quizpath"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./quizpath.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Live quiz sessions
    REDIS_URL: Optional[str] = None
    SESSION_TTL: int = 60 * 60 * 2  # 2 hours
    SESSION_LOCK_TIMEOUT: float = 5.0

    # AI scoring oracle
    AI_SERVICE_URL: Optional[str] = None
    AI_API_KEY: Optional[str] = None
    AI_TIMEOUT_SECONDS: float = 10.0
    AI_MAX_RETRIES: int = 2
    AI_RETRY_BACKOFF_SECONDS: float = 0.5
    AI_DEFAULT_SENSITIVITY: float = 0.7
    FEEDBACK_UNAVAILABLE_TEXT: str = "Feedback generation is currently unavailable"

    # Logging
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
