"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./events.db"
    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    # Tokens
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "event-app"
    JWT_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 10

    # Outbound mail
    SMTP_HOST: str = "smtp.ethereal.email"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_STARTTLS: bool = True
    MAIL_FROM: str = "Event Management App <noreply@eventapp.com>"
    MAIL_ENABLED: bool = True
    NOTIFY_TIMEOUT_SECONDS: float = 10.0
    NOTIFY_MAX_WORKERS: int = 2

    class Config:
        env_file = ".env"


settings = Settings()
