"""Tests for configuration loading and validation."""

import pytest

from booking_engine.config import (
    AppConfig,
    CacheConfig,
    ConcurrencyConfig,
    SchedulingConfig,
    _validate_config,
)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        config = AppConfig()
        _validate_config(config)  # should not raise

    def test_default_timezone_is_madrid(self):
        assert SchedulingConfig().default_timezone == "Europe/Madrid"

    def test_unknown_timezone(self):
        config = AppConfig(scheduling=SchedulingConfig(default_timezone="Mars/Olympus_Mons"))
        with pytest.raises(ValueError, match="DEFAULT_TIMEZONE"):
            _validate_config(config)

    def test_negative_slot_step(self):
        config = AppConfig(scheduling=SchedulingConfig(default_slot_step_minutes=-15))
        with pytest.raises(ValueError, match="DEFAULT_SLOT_STEP_MINUTES"):
            _validate_config(config)

    def test_search_days_zero(self):
        config = AppConfig(scheduling=SchedulingConfig(max_search_days=0))
        with pytest.raises(ValueError, match="MAX_SEARCH_DAYS"):
            _validate_config(config)

    def test_search_days_above_one_year(self):
        config = AppConfig(scheduling=SchedulingConfig(max_search_days=400))
        with pytest.raises(ValueError, match="MAX_SEARCH_DAYS"):
            _validate_config(config)

    def test_negative_alternatives_limit(self):
        config = AppConfig(scheduling=SchedulingConfig(alternatives_limit=-1))
        with pytest.raises(ValueError, match="ALTERNATIVES_LIMIT"):
            _validate_config(config)

    def test_negative_cache_ttl(self):
        config = AppConfig(cache=CacheConfig(template_cache_ttl_seconds=-1))
        with pytest.raises(ValueError, match="TEMPLATE_CACHE_TTL_SECONDS"):
            _validate_config(config)

    def test_zero_booking_timeout(self):
        config = AppConfig(concurrency=ConcurrencyConfig(booking_timeout_seconds=0))
        with pytest.raises(ValueError, match="BOOKING_TIMEOUT_SECONDS"):
            _validate_config(config)

    def test_config_is_frozen(self):
        config = AppConfig()
        with pytest.raises(Exception):
            config.log_level = "DEBUG"


class TestEnvParsing:
    def test_safe_int_parsing(self):
        from booking_engine.config import _safe_int

        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_safe_int_rejects_garbage(self, monkeypatch):
        from booking_engine.config import _safe_int

        monkeypatch.setenv("BOOKING_TEST_INT", "forty")
        with pytest.raises(ValueError, match="BOOKING_TEST_INT"):
            _safe_int("BOOKING_TEST_INT", "1")

    def test_safe_float_parsing(self):
        from booking_engine.config import _safe_float

        assert _safe_float("NONEXISTENT_VAR_12345", "3.14") == pytest.approx(3.14)

    @pytest.mark.parametrize("raw,expected", [
        ("true", True), ("1", True), ("YES", True), ("off", False), ("0", False),
    ])
    def test_safe_bool_parsing(self, monkeypatch, raw, expected):
        from booking_engine.config import _safe_bool

        monkeypatch.setenv("BOOKING_TEST_FLAG", raw)
        assert _safe_bool("BOOKING_TEST_FLAG", "true") is expected

    def test_safe_bool_rejects_garbage(self, monkeypatch):
        from booking_engine.config import _safe_bool

        monkeypatch.setenv("BOOKING_TEST_FLAG", "maybe")
        with pytest.raises(ValueError, match="BOOKING_TEST_FLAG"):
            _safe_bool("BOOKING_TEST_FLAG", "true")
