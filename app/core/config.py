from pydantic_settings import BaseSettings
from typing import List
from dotenv import load_dotenv
import os

load_dotenv()


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", True)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_KEY: str = os.getenv("SUPABASE_SERVICE_KEY", "")

    # JWT (tokens are issued by the identity provider, only verified here)
    SECRET_KEY: str = os.getenv("SECRET_KEY", "")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")

    # CORS
    ALLOWED_ORIGINS: str = os.getenv("ALLOWED_ORIGINS", "*")

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Redis
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")

    @property
    def redis_connection_url(self) -> str:
        return self.REDIS_URL.strip()

    # Polling / leaderboard cache
    POLL_INTERVAL_SECONDS: float = os.getenv("POLL_INTERVAL_SECONDS", 5.0)
    LEADERBOARD_CACHE_TTL_SECONDS: int = os.getenv("LEADERBOARD_CACHE_TTL_SECONDS", 30)
    ROSTER_FETCH_BATCH_SIZE: int = os.getenv("ROSTER_FETCH_BATCH_SIZE", 50)

    # Validation limits (weights in the unit they were entered in)
    MIN_WEIGHT: float = os.getenv("MIN_WEIGHT", 20.0)
    MAX_WEIGHT: float = os.getenv("MAX_WEIGHT", 500.0)
    DEFAULT_PARTICIPANT_LIMIT: int = os.getenv("DEFAULT_PARTICIPANT_LIMIT", 10)
    MAX_PARTICIPANT_LIMIT: int = os.getenv("MAX_PARTICIPANT_LIMIT", 10)
    MAX_FUTURE_LOG_DAYS: int = os.getenv("MAX_FUTURE_LOG_DAYS", 1)

    class Config:
        env_file = [".env.local", ".env"]
        case_sensitive = True
        extra = "ignore"


# Create settings instance
settings = Settings()
