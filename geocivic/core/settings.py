"""
Core settings and environment variables for GeoCivic.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "GeoCivic"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:5174"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON
    FIREBASE_STORAGE_BUCKET: Optional[str] = None

    # Mock DB mode for local development without Firebase credentials
    USE_MOCK_DB: bool = False
    MOCK_DB_PATH: Optional[str] = "./mock_db.json"

    # Evidence storage
    # - EVIDENCE_PROVIDER: "local" (default, files on disk) or "firebase" (Storage bucket)
    EVIDENCE_PROVIDER: str = "local"
    EVIDENCE_UPLOAD_DIR: str = "./uploads"
    EVIDENCE_MAX_BYTES: int = 10 * 1024 * 1024

    # Geofences (meters, boundary inclusive)
    STAFF_GEOFENCE_METERS: float = 200.0
    CITIZEN_GEOFENCE_METERS: float = 100.0
    EARTH_RADIUS_METERS: float = 6371000.0

    # Civic coin rewards
    REPORT_FILED_REWARD: int = 0
    ISSUE_RESOLVED_REWARD: int = 25
    RESOLUTION_VERIFIED_REWARD: int = 50

    # Notification fan-out
    NOTIFICATION_MAX_ATTEMPTS: int = 3
    NOTIFICATION_RETRY_DELAY_SECONDS: float = 0.5

    # Geocoding (fills a blank report location from coordinates)
    # - GEOCODING_PROVIDER: "nominatim" (default, no API key) or "google"
    # - GOOGLE_MAPS_API_KEY: optional; only used when provider is "google"
    GEOCODING_ENABLED: bool = True
    GEOCODING_PROVIDER: str = "nominatim"
    GOOGLE_MAPS_API_KEY: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"


# Global settings instance
settings = Settings()
