import logging
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ServiceSettings:
    port: int
    log_level: str
    max_upload_mb: int
    cache_ttl: float
    cache_entries: int
    timeout: float
    retries: int
    presets_path: str

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        return cls(
            port=int(os.getenv("PORT", "5500")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            max_upload_mb=int(os.getenv("MAX_UPLOAD_MB", "16")),
            cache_ttl=float(os.getenv("CACHE_TTL", "300")),
            cache_entries=int(os.getenv("CACHE_ENTRIES", "16")),
            timeout=float(os.getenv("SOURCE_TIMEOUT", "10.0")),
            retries=int(os.getenv("SOURCE_RETRIES", "2")),
            presets_path=os.getenv("PRESETS_PATH", ""),
        )


SETTINGS = ServiceSettings.from_env()


def configure_logging(settings: ServiceSettings = SETTINGS) -> logging.Logger:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return logging.getLogger("dither-studio")
