import json
import os
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration using Pydantic Settings.
    Reads from environment variables and an optional JSON location file.
    """

    # Application Config
    log_level: str = "INFO"
    log_file: str = "/var/log/coconut_risk/coconut_risk.log"

    # External services
    forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    ip_location_url: str = "http://ip-api.com/json/"
    http_timeout: float = Field(default=10.0, gt=0)
    user_agent: str = "CoconutRisk/0.1 (falling coconut estimator)"

    # Acquisition
    tree_search_radius_m: int = Field(default=1000, gt=0)
    default_tree_count: int = Field(default=5, ge=0)
    history_days: int = Field(default=5, ge=1)

    # Scoring
    default_exposure_minutes: int = Field(default=30, ge=0)
    scoring_policy: Literal["power_law", "linear"] = "power_law"
    linear_jitter: bool = False

    # Fun facts
    fact_interval_seconds: float = Field(default=10.0, gt=0)

    # Location
    location_source: Literal["ip", "config"] = "ip"
    config_path: str = "/config/settings.json"
    default_latitude: float = Field(default=7.29, ge=-90, le=90)
    default_longitude: float = Field(default=80.63, ge=-180, le=180)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def get_location(self) -> tuple[float, float]:
        """
        Get location from JSON file if available, otherwise return defaults.
        """
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path) as f:
                    data = json.load(f)
                    loc = data.get("location", {})
                    lat = float(loc.get("latitude", self.default_latitude))
                    lon = float(loc.get("longitude", self.default_longitude))
                    return lat, lon
        except (OSError, ValueError, TypeError, AttributeError):
            pass  # Fallback to defaults on unreadable or malformed file

        return self.default_latitude, self.default_longitude


# Global settings instance
settings = Settings()
