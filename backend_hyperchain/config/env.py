"""
Environment variable loading for Hyperchain Insights.

- INGESTION_MODE: synthetic | live | both (default: synthetic)
- HYPERION_RPC: HTTP JSON-RPC endpoint of the block feed
- HYPERION_WS: WebSocket endpoint; derived from HYPERION_RPC when unset
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from backend_hyperchain.hyperchain_logging import get_logger

logger = get_logger(__name__)

# Project root: config is backend_hyperchain/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_RPC_URL = "http://localhost:8545"

INGESTION_SYNTHETIC = "synthetic"
INGESTION_LIVE = "live"
INGESTION_BOTH = "both"
INGESTION_MODES = (INGESTION_SYNTHETIC, INGESTION_LIVE, INGESTION_BOTH)


def load_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip()
    return raw or default


def env_float(name: str, default: float) -> float:
    """Read a float env var; fall back to default (with a warning) when invalid."""
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("config_invalid_value", name=name, value=raw, default=default)
        return default


def env_int(name: str, default: int) -> int:
    """Read an int env var; fall back to default (with a warning) when invalid."""
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("config_invalid_value", name=name, value=raw, default=default)
        return default


def rpc_url_to_ws(rpc_url: str) -> str:
    """Convert https:// or http:// to wss:// or ws:// for the head subscription."""
    s = rpc_url.strip()
    if s.startswith("https://"):
        return "wss://" + s[8:]
    if s.startswith("http://"):
        return "ws://" + s[7:]
    return s


def get_ingestion_mode() -> str:
    """Return INGESTION_MODE: synthetic | live | both. Unknown values -> synthetic."""
    raw = env_str("INGESTION_MODE", INGESTION_SYNTHETIC).lower()
    if raw in INGESTION_MODES:
        return raw
    logger.warning("config_invalid_ingestion_mode", value=raw, default=INGESTION_SYNTHETIC)
    return INGESTION_SYNTHETIC


def get_rpc_url() -> str:
    return env_str("HYPERION_RPC", DEFAULT_RPC_URL)


def get_ws_url() -> str:
    """HYPERION_WS if set, else the WebSocket form of HYPERION_RPC."""
    return env_str("HYPERION_WS", rpc_url_to_ws(get_rpc_url()))
