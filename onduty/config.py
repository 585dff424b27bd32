"""Application configuration settings."""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Database Configuration
    database_url: str = "sqlite:///./onduty.db"
    db_pool_recycle: int = 3600
    
    # Application Settings
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api"
    seed_demo_data: bool = False
    
    # CORS Settings
    cors_origins: List[str] = ["*"]
    
    # Client / Remote Store Settings
    api_base_url: str = "http://localhost:5000/api"
    remote_timeout: float = 10.0
    local_cache_dir: str = ".onduty_cache"
    sync_interval_seconds: int = 5
    
    # Attachments
    max_image_bytes: int = 5 * 1024 * 1024
    
    class Config:
        env_file = ".env"
        env_prefix = "ONDUTY_"
        case_sensitive = False
    
    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")


# Global settings instance
settings = Settings()
