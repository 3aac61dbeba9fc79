"""Tests for configuration loading and validation."""

from dataclasses import replace

import pytest

from dispatch.config import (
    AppConfig,
    BusinessConfig,
    CallConfig,
    GatekeeperConfig,
    ModelConfig,
    _safe_float,
    _safe_int,
    _validate_config,
)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(AppConfig())  # should not raise

    def test_default_business_rates(self):
        config = AppConfig()
        assert config.business.timezone == "Australia/Sydney"
        assert config.gatekeeper.voice_min_turns >= 0

    def test_negative_hourly_rate_rejected(self):
        config = replace(AppConfig(), business=replace(BusinessConfig(), hourly_rate=-1.0))
        with pytest.raises(ValueError, match="HOURLY_RATE"):
            _validate_config(config)

    def test_gst_rate_above_hundred_rejected(self):
        config = replace(AppConfig(), business=replace(BusinessConfig(), gst_rate=150.0))
        with pytest.raises(ValueError, match="GST_RATE"):
            _validate_config(config)

    def test_unknown_timezone_rejected(self):
        config = replace(AppConfig(), business=replace(BusinessConfig(), timezone="Mars/Olympus"))
        with pytest.raises(ValueError, match="BUSINESS_TIMEZONE"):
            _validate_config(config)

    def test_invalid_temperature_too_high(self):
        config = replace(AppConfig(), model=replace(ModelConfig(), chat_temperature=3.0))
        with pytest.raises(ValueError, match="CHAT_TEMPERATURE"):
            _validate_config(config)

    def test_zero_checkpoint_interval_rejected(self):
        config = replace(
            AppConfig(),
            gatekeeper=replace(GatekeeperConfig(), voice_checkpoint_interval_sec=0.0),
        )
        with pytest.raises(ValueError, match="VOICE_CHECKPOINT_INTERVAL"):
            _validate_config(config)

    def test_negative_min_turns_rejected(self):
        config = replace(AppConfig(), gatekeeper=replace(GatekeeperConfig(), voice_min_turns=-1))
        with pytest.raises(ValueError, match="VOICE_MIN_TURNS"):
            _validate_config(config)

    def test_zero_call_timeout_rejected(self):
        config = replace(AppConfig(), calls=replace(CallConfig(), timeout_sec=0.0))
        with pytest.raises(ValueError, match="VAPI_TIMEOUT"):
            _validate_config(config)


class TestEnvParsing:
    def test_safe_int_parsing(self):
        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_safe_float_parsing(self):
        assert _safe_float("NONEXISTENT_VAR_12345", "3.14") == pytest.approx(3.14)

    def test_safe_int_bad_value(self, monkeypatch):
        monkeypatch.setenv("DISPATCH_TEST_INT", "twelve")
        with pytest.raises(ValueError, match="DISPATCH_TEST_INT"):
            _safe_int("DISPATCH_TEST_INT", "1")

    def test_safe_float_bad_value(self, monkeypatch):
        monkeypatch.setenv("DISPATCH_TEST_FLOAT", "ten%")
        with pytest.raises(ValueError, match="DISPATCH_TEST_FLOAT"):
            _safe_float("DISPATCH_TEST_FLOAT", "1.0")
