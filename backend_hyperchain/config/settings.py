"""
Application settings.

Typed settings built from the environment (and .env) once per call of
get_settings(); every component takes the values it needs as plain arguments
so tests can construct components without touching the environment.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_hyperchain.config.env import (
    INGESTION_SYNTHETIC,
    env_float,
    env_int,
    env_str,
    get_ingestion_mode,
    get_rpc_url,
    get_ws_url,
    load_env,
)

DEFAULT_SYNTHETIC_INTERVAL_SEC = 8.0
DEFAULT_FEED_REQUEST_TIMEOUT_SEC = 15.0
DEFAULT_VOLUME_ANOMALY_THRESHOLD = 1000.0
DEFAULT_WHALE_THRESHOLD = 500.0
DEFAULT_ALERT_THRESHOLD = 70
DEFAULT_SUBSCRIBER_BUFFER_SIZE = 256
DEFAULT_API_HOST = "0.0.0.0"
DEFAULT_API_PORT = 4000


@dataclass(frozen=True)
class Settings:
    """Service configuration; env var names are listed in config.env and get_settings()."""

    ingestion_mode: str = INGESTION_SYNTHETIC
    rpc_url: str = "http://localhost:8545"
    ws_url: str = "ws://localhost:8545"
    synthetic_interval_sec: float = DEFAULT_SYNTHETIC_INTERVAL_SEC
    feed_request_timeout_sec: float = DEFAULT_FEED_REQUEST_TIMEOUT_SEC
    volume_anomaly_threshold: float = DEFAULT_VOLUME_ANOMALY_THRESHOLD
    whale_threshold: float = DEFAULT_WHALE_THRESHOLD
    alert_threshold: int = DEFAULT_ALERT_THRESHOLD
    subscriber_buffer_size: int = DEFAULT_SUBSCRIBER_BUFFER_SIZE
    api_host: str = DEFAULT_API_HOST
    api_port: int = DEFAULT_API_PORT

    def __post_init__(self) -> None:
        if self.synthetic_interval_sec <= 0:
            raise ValueError("synthetic_interval_sec must be positive")
        if self.feed_request_timeout_sec <= 0:
            raise ValueError("feed_request_timeout_sec must be positive")
        if not (0 <= self.alert_threshold <= 100):
            raise ValueError("alert_threshold must be between 0 and 100")
        if self.subscriber_buffer_size < 1:
            raise ValueError("subscriber_buffer_size must be >= 1")


def get_settings() -> Settings:
    """
    Return the current application settings.

    Loads .env first; explicit environment variables take precedence.
    """
    load_env()
    return Settings(
        ingestion_mode=get_ingestion_mode(),
        rpc_url=get_rpc_url(),
        ws_url=get_ws_url(),
        synthetic_interval_sec=env_float("SYNTHETIC_INTERVAL_SEC", DEFAULT_SYNTHETIC_INTERVAL_SEC),
        feed_request_timeout_sec=env_float("FEED_REQUEST_TIMEOUT_SEC", DEFAULT_FEED_REQUEST_TIMEOUT_SEC),
        volume_anomaly_threshold=env_float("VOLUME_ANOMALY_THRESHOLD", DEFAULT_VOLUME_ANOMALY_THRESHOLD),
        whale_threshold=env_float("WHALE_THRESHOLD", DEFAULT_WHALE_THRESHOLD),
        alert_threshold=env_int("ALERT_THRESHOLD", DEFAULT_ALERT_THRESHOLD),
        subscriber_buffer_size=env_int("SUBSCRIBER_BUFFER_SIZE", DEFAULT_SUBSCRIBER_BUFFER_SIZE),
        api_host=env_str("API_HOST", DEFAULT_API_HOST),
        api_port=env_int("API_PORT", DEFAULT_API_PORT),
    )
