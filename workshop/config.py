from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./workshop.db"

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert sqlite:// to sqlite+aiosqlite:// for async support."""
        if v and v.startswith('sqlite://'):
            return v.replace('sqlite://', 'sqlite+aiosqlite://', 1)
        return v

    # CORS
    FRONTEND_URL: str = "http://localhost:5173"
    CORS_ORIGINS: str = ""  # Extra comma-separated origins

    # Notifications
    NOTIFICATION_RETENTION_DAYS: int = 60
    NOTIFICATION_PURGE_ENABLED: bool = True

    # Email (Brevo)
    BREVO_API_KEY: str | None = None
    EMAIL_FROM_ADDRESS: str = "invoices@workshop.local"
    EMAIL_FROM_NAME: str = "Workshop"

    # Invoice branding
    BUSINESS_NAME: str = "Workshop"
    BUSINESS_CONTACT: str = ""
    CURRENCY_CODE: str = "LKR"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def sqlalchemy_echo(self) -> bool:
        """Only echo SQL in local debugging sessions."""
        return self.DEBUG and not self.is_production

    @property
    def DOCS_ENABLED(self) -> bool:
        return not self.is_production

    @property
    def cors_origins(self) -> list[str]:
        extra = [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
        return [self.FRONTEND_URL, *extra]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
