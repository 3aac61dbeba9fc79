"""
Centralized configuration with environment variable overrides.

Business rates, timezone, model names and provider endpoints are all
configurable here. Ledger, billing and session logic read from
``settings`` instead of hardcoding values.
"""

import logging
import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from dispatch.logging_context import attach_session_filter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] [%(session_id)s] %(levelname)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class BusinessConfig:
    """Business identity, timezone and billing rates."""

    name: str = os.getenv("BUSINESS_NAME", "ArcticFlow AI HVAC Solutions")
    address: str = os.getenv("BUSINESS_ADDRESS", "101 Innovation Way, Canberra ACT 2601")
    phone: str = os.getenv("BUSINESS_PHONE", "1300 ARCTIC")
    email: str = os.getenv("BUSINESS_EMAIL", "service@arcticflow.ai")
    tax_id: str = os.getenv("BUSINESS_TAX_ID", "ABN 12 345 678 910")
    timezone: str = os.getenv("BUSINESS_TIMEZONE", "Australia/Sydney")
    hourly_rate: float = _safe_float("HOURLY_RATE", "110")
    gst_rate: float = _safe_float("GST_RATE", "10")


@dataclass(frozen=True)
class ModelConfig:
    """Conversational and extraction model settings."""

    chat_model: str = os.getenv("CHAT_MODEL", "gpt-4o")
    extraction_model: str = os.getenv("EXTRACTION_MODEL", "gpt-4o-mini")
    chat_temperature: float = _safe_float("CHAT_TEMPERATURE", "0.3")
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")


@dataclass(frozen=True)
class GatekeeperConfig:
    """Checkpoint cadence for the voice channel."""

    voice_checkpoint_interval_sec: float = _safe_float("VOICE_CHECKPOINT_INTERVAL", "12.0")
    voice_min_turns: int = _safe_int("VOICE_MIN_TURNS", "5")


@dataclass(frozen=True)
class CallConfig:
    """Outbound voice-call provider (Vapi) settings."""

    api_url: str = os.getenv("VAPI_API_URL", "https://api.vapi.ai")
    api_key: str = os.getenv("VAPI_KEY", "")
    timeout_sec: float = _safe_float("VAPI_TIMEOUT", "30.0")
    voice: str = os.getenv("VAPI_VOICE", "jennifer-playht")
    model: str = os.getenv("VAPI_MODEL", "gpt-4")


@dataclass(frozen=True)
class StoreConfig:
    """Where the JSON document store keeps its files."""

    data_dir: str = os.getenv("DISPATCH_DATA_DIR", ".dispatch-data")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    gatekeeper: GatekeeperConfig = field(default_factory=GatekeeperConfig)
    calls: CallConfig = field(default_factory=CallConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "hvac-dispatch")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.business.hourly_rate < 0:
        raise ValueError(
            f"HOURLY_RATE must be >= 0, got {config.business.hourly_rate}"
        )
    if not 0.0 <= config.business.gst_rate <= 100.0:
        raise ValueError(
            f"GST_RATE must be between 0 and 100, got {config.business.gst_rate}"
        )
    if not 0.0 <= config.model.chat_temperature <= 2.0:
        raise ValueError(
            f"CHAT_TEMPERATURE must be between 0.0 and 2.0, got {config.model.chat_temperature}"
        )
    if config.gatekeeper.voice_checkpoint_interval_sec <= 0:
        raise ValueError(
            "VOICE_CHECKPOINT_INTERVAL must be > 0, "
            f"got {config.gatekeeper.voice_checkpoint_interval_sec}"
        )
    if config.gatekeeper.voice_min_turns < 0:
        raise ValueError(
            f"VOICE_MIN_TURNS must be >= 0, got {config.gatekeeper.voice_min_turns}"
        )
    if config.calls.timeout_sec <= 0:
        raise ValueError(
            f"VAPI_TIMEOUT must be > 0, got {config.calls.timeout_sec}"
        )

    try:
        ZoneInfo(config.business.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"BUSINESS_TIMEZONE is not a known timezone: {config.business.timezone!r}"
        ) from None


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
    for handler in logging.getLogger().handlers:
        attach_session_filter(handler)
    logger.info("Configuration loaded for '%s'", config.business.name)
    return config


# Singleton instance
settings = load_config()
