from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_out_dir() -> str:
    # Keep logs in backend/out by default to avoid polluting source assets.
    return str(Path(__file__).resolve().parents[1] / "out")


class Settings(BaseSettings):
    """Validated settings (env-driven), keeping config out of code for easy extension."""

    model_config = SettingsConfigDict(
        # Support both "repo root/.env" and "backend/.env" (local dev)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    osrm_base_url: str = Field(default="https://router.project-osrm.org", alias="OSRM_BASE_URL")
    # Wall-clock abort for one online routing request, retries included.
    osrm_timeout_s: float = Field(default=8.0, gt=0.0, le=120.0, alias="OSRM_TIMEOUT_S")
    osrm_max_retries: int = Field(default=1, ge=1, le=8, alias="OSRM_MAX_RETRIES")

    out_dir: str = Field(default_factory=_default_out_dir, alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    road_graph_path: str = Field(default="", alias="ROAD_GRAPH_PATH")
    road_geometry_path: str = Field(default="", alias="ROAD_GEOMETRY_PATH")

    offline_detour_factor: float = Field(default=1.4, ge=1.0, le=5.0, alias="OFFLINE_DETOUR_FACTOR")
    last_mile_threshold_m: float = Field(default=10.0, ge=0.0, alias="LAST_MILE_THRESHOLD_M")
    fallback_line_steps: int = Field(default=20, ge=1, le=1000, alias="FALLBACK_LINE_STEPS")

    bird_flight_speed_kmh: float = Field(default=4.0, gt=0.0, alias="BIRD_FLIGHT_SPEED_KMH")
    speed_car_kmh: float = Field(default=40.0, gt=0.0, alias="SPEED_CAR_KMH")
    speed_walk_kmh: float = Field(default=4.0, gt=0.0, alias="SPEED_WALK_KMH")
    speed_bike_kmh: float = Field(default=12.0, gt=0.0, alias="SPEED_BIKE_KMH")

    @model_validator(mode="after")
    def _normalise_paths(self) -> "Settings":
        self.osrm_base_url = str(self.osrm_base_url or "").strip().rstrip("/")
        self.road_graph_path = str(self.road_graph_path or "").strip()
        self.road_geometry_path = str(self.road_geometry_path or "").strip()
        return self

    def transport_speed_kmh(self, mode: str) -> float:
        """Nominal travel speed for a transport mode; aerial lines have none."""
        speeds = {
            "car": self.speed_car_kmh,
            "walk": self.speed_walk_kmh,
            "bike": self.speed_bike_kmh,
        }
        return float(speeds.get(str(mode), 0.0))


settings = Settings()
