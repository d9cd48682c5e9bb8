"""
Tests for configuration management.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from slpmerit.config import MeritConfig, Settings
from slpmerit.constants import PSF_TOKEN_ID


class TestMeritConfig:
    def test_default_values(self) -> None:
        config = MeritConfig()
        assert config.aging_enabled is True
        assert config.verbose_logging is False
        assert config.legacy_token_match is False
        assert config.pacing_delay == 0.0
        assert config.max_hops is None
        assert config.tolerate_walk_errors is False

    def test_negative_pacing_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MeritConfig(pacing_delay=-1)

    def test_max_hops_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            MeritConfig(max_hops=0)


class TestSettings:
    def test_default_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MERIT_AGE", raising=False)
        monkeypatch.delenv("VERBOSE_LOG", raising=False)
        settings = Settings(_env_file=None)
        assert settings.merit_age is True
        assert settings.verbose_log is False
        assert settings.token_id == PSF_TOKEN_ID
        assert settings.log_level == "INFO"

    def test_env_switches(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MERIT_AGE", "0")
        monkeypatch.setenv("VERBOSE_LOG", "1")
        monkeypatch.setenv("UTXO_DELAY", "0.25")
        monkeypatch.setenv("MAX_HOPS", "50")
        settings = Settings(_env_file=None)
        assert settings.merit_age is False
        assert settings.verbose_log is True

        config = settings.to_merit_config()
        assert config.aging_enabled is False
        assert config.verbose_logging is True
        assert config.pacing_delay == 0.25
        assert config.max_hops == 50

    def test_consumer_api_url_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONSUMER_API_URL", "http://localhost:5015")
        settings = Settings(_env_file=None)
        assert settings.consumer_api_url == "http://localhost:5015"
