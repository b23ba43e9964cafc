"""
Configuration settings for the Netwatch Monitor
"""

from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    """Application settings"""

    # Database
    db_host: str = "postgres"
    db_port: str = "5432"
    db_name: str = "netwatch_db"
    db_user: str = "netwatch_user"
    db_password: str = "netwatch_password"
    database_url: str = ""

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    # RouterOS REST access
    routeros_use_ssl: bool = True
    routeros_port: Optional[int] = None
    routeros_verify_ssl: bool = False

    # Polling
    snapshot_timeout: float = 10.0  # seconds
    poll_interval: float = 5.0  # seconds
    poller_enabled: bool = False

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Build database_url from components unless given explicitly
        if not self.database_url:
            self.database_url = f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

# Global settings instance
settings = Settings()
