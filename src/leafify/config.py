"""Configuration management for the Leafify backend."""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    environment: str = Field("development", alias="LEAFIFY_ENV")
    cors_origins_raw: str = Field(
        "http://localhost:5173,http://127.0.0.1:5173", alias="CORS_ORIGINS"
    )
    checkpoint_path: str = Field(
        "models/plant-disease-model.pth", alias="LEAFIFY_CHECKPOINT"
    )
    device: str = Field("cpu", alias="LEAFIFY_DEVICE")
    image_size: int = Field(256, alias="LEAFIFY_IMAGE_SIZE")
    treatment_file: Optional[str] = Field(None, alias="LEAFIFY_TREATMENT_FILE")

    # Cosmetic overlay defaults; 0.6/0.4 over a jet ramp matches earlier output.
    overlay_image_weight: float = Field(0.6, alias="LEAFIFY_OVERLAY_IMAGE_WEIGHT")
    overlay_heatmap_weight: float = Field(0.4, alias="LEAFIFY_OVERLAY_HEATMAP_WEIGHT")
    colormap: str = Field("jet", alias="LEAFIFY_COLORMAP")
    heatmap_format: str = Field("PNG", alias="LEAFIFY_HEATMAP_FORMAT")

    log_dir: str = Field("logs", alias="LEAFIFY_LOG_DIR")
    log_level: str = Field("INFO", alias="LEAFIFY_LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins_raw.split(",") if origin]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


settings = get_settings()
