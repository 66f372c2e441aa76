import logging
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ServiceSettings:
    port: int
    log_level: str
    source_url: str
    timeout: float
    retries: int
    cache_ttl: float
    cache_size: int
    presets_path: str
    max_pixels: int
    default_algorithm: str
    default_palette: str
    default_intensity: float

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        return cls(
            port=int(os.getenv("PORT", "5500")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            source_url=os.getenv("SOURCE_URL", ""),
            timeout=float(os.getenv("SOURCE_TIMEOUT", "10.0")),
            retries=int(os.getenv("SOURCE_RETRIES", "2")),
            cache_ttl=float(os.getenv("CACHE_TTL", "30")),
            cache_size=int(os.getenv("CACHE_SIZE", "16")),
            presets_path=os.getenv("PRESETS_PATH", "dithertone-presets.json"),
            max_pixels=int(os.getenv("MAX_PIXELS", "4000000")),
            default_algorithm=os.getenv("DEFAULT_ALGORITHM", "Floyd-Steinberg"),
            default_palette=os.getenv("DEFAULT_PALETTE", "Grayscale"),
            default_intensity=float(os.getenv("DEFAULT_INTENSITY", "100")),
        )


SETTINGS = ServiceSettings.from_env()


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=SETTINGS.log_level)
    return logging.getLogger("dithertone")
