"""
Configuration for the Locais map client.
Override the defaults through environment variables or fill them in directly.

API: the Locais backend (locations, votes, favorites, login).
Positioning: a fixed origin from the environment, or an IP geolocation
lookup when no origin is configured.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_float(name: str) -> Optional[float]:
    value = os.getenv(name, "")
    try:
        return float(value) if value else None
    except ValueError:
        return None


@dataclass
class APIConfig:
    """Where the Locais backend lives."""
    base_url: str = os.getenv("LOCAIS_API_URL", "https://locals-v5-api.onrender.com")
    timeout_seconds: float = 30.0


@dataclass
class FilterDefaults:
    """Category vocabulary and distance slider bounds."""
    categories: tuple = ("Cultura", "Natureza", "Praia", "Trilho", "Merendas")
    amenity_label: str = "WC"
    default_title: str = "Locais"
    min_distance_km: float = 0.0
    max_distance_km: float = 200.0
    default_distance_km: float = 50.0


@dataclass
class GeoConfig:
    """How a position fix is obtained."""
    origin_lat: Optional[float] = _env_float("LOCAIS_ORIGIN_LAT")
    origin_lon: Optional[float] = _env_float("LOCAIS_ORIGIN_LON")
    origin_accuracy_m: float = _env_float("LOCAIS_ORIGIN_ACCURACY_M") or 50.0
    geoip_url: str = os.getenv("LOCAIS_GEOIP_URL", "https://ipapi.co/json/")
    geoip_accuracy_m: float = 5000.0   # IP fixes are city-level at best
    timeout_seconds: float = 12.0


@dataclass
class AppConfig:
    """Top-level configuration."""
    api: APIConfig = field(default_factory=APIConfig)
    filters: FilterDefaults = field(default_factory=FilterDefaults)
    geo: GeoConfig = field(default_factory=GeoConfig)

    # Persisted bearer credential
    session_file: str = os.path.expanduser(
        os.getenv("LOCAIS_SESSION_FILE", "~/.locais/session.json")
    )

    # Output
    output_dir: str = os.path.expanduser("~/locais/output")
    dashboard_filename: str = "locais.html"
    favorites_filename: str = "favorites.html"
    data_filename: str = "locations.json"

    # Marker clustering on the rendered map
    cluster_radius_px: int = 25
    disable_clustering_at_zoom: int = 15
