from typing import List

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Doctors Portal"

    # Server
    PORT: int = 5000
    ENVIRONMENT: str = "development"
    CORS_ORIGINS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    ERROR_LOG_PATH: str = "logs/errors.log"

    # Supabase (empty -> in-memory store)
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # Security
    ACCESS_SECRET: str = "dev_secret_key"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24

    # Booking guard
    # "patient": one booking per (treatment, date, patient)
    # "slot": one booking per (treatment, date, slot)
    DUPLICATE_GUARD: str = "patient"
    ATOMIC_DUPLICATE_GUARD: bool = False

    # Clinic
    CLINIC_CONFIG_PATH: str = "data/clinic_config.json"

    # Notifications
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_TIMEOUT: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
