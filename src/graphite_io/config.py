from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .codecs import GraphiteProtocol
from .models import EventLevel


class GraphiteSettings(BaseSettings):
    """Connection settings, read from GRAPHITE_* environment variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="GRAPHITE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Carbon
    host: str = "localhost"
    port: int = Field(2003, gt=0, lt=65536)
    protocol: GraphiteProtocol = GraphiteProtocol.PLAINTEXT
    publishers: int = Field(1, gt=0)
    batch_size: int = Field(100, gt=0)
    prefix: str = ""
    connect_timeout: float = Field(10.0, gt=0)

    # Render API
    render_url: str = "http://localhost:8080"
    basic_auth: Optional[str] = None
    http_timeout: float = Field(10.0, gt=0)
    poll_delay: float = Field(10.0, ge=0)
    results_capacity: int = Field(1, gt=0)

    events_min_level: EventLevel = EventLevel.INFO


@lru_cache()
def get_settings() -> GraphiteSettings:
    return GraphiteSettings()
