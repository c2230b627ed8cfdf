from pydantic_settings import BaseSettings
from typing import List
from datetime import datetime, timezone

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./ticketdesk.db"
    DATABASE_ECHO: bool = False
    
    # Application
    PROJECT_NAME: str = "Ticket Desk Booking Tracker"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    
    # Usage statistics
    ACCOUNT_USAGE_WINDOW_DAYS: int = 30
    HANDLER_USAGE_SINCE: datetime = datetime(2026, 1, 1, tzinfo=timezone.utc)
    
    # Booking feed
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100
    
    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")
    
    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
