"""Configuration loader for Calendar Hub."""

import os
from pathlib import Path
from typing import Optional
import yaml
from pydantic import BaseModel


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False
    # Browser origin of the UI (CORS allow-origin and post-login redirect)
    client_url: str = "http://localhost:5173"
    # Forces the secure flag on the session cookie
    production: bool = False


class DatabaseConfig(BaseModel):
    path: str = "./data/calendar-hub.db"
    # Full async SQLAlchemy URL; takes precedence over path when set
    url: str = ""


class SessionConfig(BaseModel):
    ttl_hours: int = 24


class LoggingConfig(BaseModel):
    level: str = "info"


class GoogleConfig(BaseModel):
    """OAuth client and Calendar API settings."""
    client_id: str = ""
    client_secret: str = ""
    callback_url: str = "http://localhost:5000/api/auth/google/callback"
    # OIDC discovery URL; when set, overrides the manual endpoints below
    discovery_url: str = ""
    authorization_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    token_url: str = "https://oauth2.googleapis.com/token"
    userinfo_url: str = "https://openidconnect.googleapis.com/v1/userinfo"
    scopes: list[str] = [
        "openid",
        "profile",
        "email",
        "https://www.googleapis.com/auth/calendar",
        "https://www.googleapis.com/auth/calendar.events",
    ]
    calendar_id: str = "primary"


class Config(BaseModel):
    server: ServerConfig = ServerConfig()
    database: DatabaseConfig = DatabaseConfig()
    session: SessionConfig = SessionConfig()
    logging: LoggingConfig = LoggingConfig()
    google: GoogleConfig = GoogleConfig()


_config: Optional[Config] = None


def _env_flag(name: str) -> bool:
    return os.environ[name].lower() in ("1", "true", "yes")


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file and environment variables."""
    global _config

    if _config is not None:
        return _config

    # Determine config path
    if config_path is None:
        config_path = os.environ.get("CALENDAR_HUB_CONFIG", "config.yml")

    config_data = {}

    # Load from file if exists
    if Path(config_path).exists():
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}

    config = Config(**config_data)

    # Override with environment variables
    if os.environ.get("CALENDAR_HUB_CLIENT_URL"):
        config.server.client_url = os.environ["CALENDAR_HUB_CLIENT_URL"]

    if os.environ.get("CALENDAR_HUB_PRODUCTION"):
        config.server.production = _env_flag("CALENDAR_HUB_PRODUCTION")

    if os.environ.get("CALENDAR_HUB_DB_PATH"):
        config.database.path = os.environ["CALENDAR_HUB_DB_PATH"]

    if os.environ.get("CALENDAR_HUB_DATABASE_URL"):
        config.database.url = os.environ["CALENDAR_HUB_DATABASE_URL"]

    if os.environ.get("CALENDAR_HUB_LOG_LEVEL"):
        config.logging.level = os.environ["CALENDAR_HUB_LOG_LEVEL"]

    # Google OAuth client credentials
    if os.environ.get("GOOGLE_CLIENT_ID"):
        config.google.client_id = os.environ["GOOGLE_CLIENT_ID"]

    if os.environ.get("GOOGLE_CLIENT_SECRET"):
        config.google.client_secret = os.environ["GOOGLE_CLIENT_SECRET"]

    if os.environ.get("GOOGLE_CALLBACK_URL"):
        config.google.callback_url = os.environ["GOOGLE_CALLBACK_URL"]

    _config = config
    return config


def get_config() -> Config:
    """Get the loaded configuration."""
    global _config
    if _config is None:
        return load_config()
    return _config


def reset_config(config: Optional[Config] = None) -> None:
    """Replace (or clear) the cached configuration."""
    global _config
    _config = config
