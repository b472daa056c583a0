"""Process-wide settings for the external services, read from the environment."""

import os

from pydantic import BaseModel, Field

DEFAULT_BACKEND_URL = "http://localhost:8000/"
DEFAULT_DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"
DEFAULT_NOMINATIM_URL = "https://nominatim.openstreetmap.org"
USER_AGENT = "tour-navigator/1.0"


class Settings(BaseModel):
    backend_url: str = DEFAULT_BACKEND_URL
    maps_api_key: str = ""
    directions_url: str = DEFAULT_DIRECTIONS_URL
    nominatim_url: str = DEFAULT_NOMINATIM_URL
    http_timeout_s: float = Field(default=30.0, gt=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        return cls(
            backend_url=env.get("TOUR_BACKEND_URL", DEFAULT_BACKEND_URL),
            maps_api_key=env.get("GOOGLE_MAPS_API_KEY", ""),
            directions_url=env.get("DIRECTIONS_URL", DEFAULT_DIRECTIONS_URL),
            nominatim_url=env.get("NOMINATIM_URL", DEFAULT_NOMINATIM_URL),
            http_timeout_s=float(env.get("HTTP_TIMEOUT_S", "30")),
            log_level=env.get("TOUR_NAVIGATOR_LOG_LEVEL", "INFO").upper(),
        )


settings = Settings.from_env()
