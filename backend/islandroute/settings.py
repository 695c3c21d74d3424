from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_graph_source() -> str:
    # Built graphs land in backend/out by default to avoid polluting source assets.
    return str(Path(__file__).resolve().parents[1] / "out" / "island_graph.json")


class Settings(BaseSettings):
    """Router configuration read from the environment, with bounds checked on load."""

    model_config = SettingsConfigDict(
        # .env is looked up in the working directory, then one level up
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    out_dir: str = Field(default="out", alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Either an http(s) URL of the statically hosted graph or a local file path.
    routing_graph_source: str = Field(default_factory=_default_graph_source, alias="ROUTING_GRAPH_SOURCE")
    routing_graph_fetch_timeout_s: float = Field(
        default=10.0,
        ge=0.5,
        le=120.0,
        alias="ROUTING_GRAPH_FETCH_TIMEOUT_S",
    )

    # 5 decimal places is roughly 1.1 m at the equator.
    coordinate_precision: int = Field(default=5, ge=0, le=9, alias="COORDINATE_PRECISION")
    snap_max_distance_m: float = Field(default=500.0, ge=0.0, le=50_000.0, alias="SNAP_MAX_DISTANCE_M")

    @model_validator(mode="after")
    def _normalise(self) -> "Settings":
        self.routing_graph_source = str(self.routing_graph_source or "").strip()
        self.log_level = str(self.log_level or "INFO").strip().upper() or "INFO"
        return self


settings = Settings()
