"""
Application settings loaded from environment variables or a ``.env`` file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Application
    app_name: str = "Ride Repository API"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 4000

    # Database
    db_backend: str = "mysql"  # "mysql" or "sqlite"
    mysql_host: str = "localhost"
    mysql_port: int = 3306
    mysql_user: str = "root"
    mysql_password: str = ""
    # Also the catalog scope for schema introspection; None means DATABASE().
    db_name: Optional[str] = None
    # 0 lets the service start while the database is down; requests then get 503.
    mysql_pool_minsize: int = 0
    mysql_pool_maxsize: int = 10
    sqlite_path: str = "./rides.db"

    # Schema
    rides_table: str = "data"
    prices_table: str = "prices"
    strict_schema: bool = False
    search_snapshot_reads: bool = False

    # Authentication gate
    api_token: str = "CHANGE-ME-IN-DOTENV"

    # CORS
    cors_origins: List[str] = ["http://localhost:5173"]
    cors_allow_credentials: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
