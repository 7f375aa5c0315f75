"""
Configuration management for the Condo Assembly engine
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Condo Assembly Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./condo_assembly.db"

    # One-time codes
    ASSEMBLY_OTP_EXPIRY_MINUTES: int = 10  # check-in code shown at the door
    VOTING_OTP_EXPIRY_MINUTES: int = 5     # per agenda item ballot code

    # Opaque tokens (bytes of entropy, hex encoded)
    CHECKIN_TOKEN_BYTES: int = 32
    SESSION_TOKEN_BYTES: int = 32

    # Minutes rendering
    MINUTES_DATE_FORMAT: str = "%d/%m/%Y"
    MINUTES_TIME_FORMAT: str = "%H:%M:%S"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
