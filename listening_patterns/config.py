"""Application configuration and environment settings"""
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Storage
    DATABASE_URL: str = Field("sqlite:///listening_patterns.db", description="SQLAlchemy database URL")

    # Spotify
    SPOTIFY_TOKEN: Optional[str] = Field(None, description="Spotify API access token")
    SPOTIFY_API_URL: str = Field("https://api.spotify.com/v1", description="Spotify Web API base URL")

    # Aggregation defaults
    INGEST_LIMIT: int = Field(50, description="Recently played tracks pulled from Spotify before each view")
    TIMEZONE: str = Field("UTC", description="IANA timezone used for local-time bucketing")
    HOURLY_LIMIT: int = Field(100, description="Default number of plays sampled for the hourly view")
    CALENDAR_LIMIT: int = Field(500, description="Number of plays sampled for the calendar heatmap")
    CALENDAR_WEEKS: int = Field(12, description="Number of weeks shown in the calendar heatmap")
    MONTHLY_LIMIT: int = Field(500, description="Default number of plays sampled for the monthly trend")

    # Output
    OUTPUT_DIR: str = Field("/output", description="Directory for the JSON report")
    LOG_LEVEL: str = Field("INFO", description="Root logging level")

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True
    )

settings = Settings()

# Constants
MAX_MONTHLY_LIMIT = 1000
