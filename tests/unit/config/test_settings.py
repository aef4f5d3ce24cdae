"""Tests for client settings."""

import pytest
from pydantic import ValidationError

from odesli.config import FetchOptions, OdesliSettings, get_settings


class TestOdesliSettings:
    """Test settings defaults, environment loading and validation."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test defaults without environment overrides."""
        monkeypatch.delenv("ODESLI_API_KEY", raising=False)
        settings = OdesliSettings()
        assert settings.api_key is None
        assert settings.version == "v1-alpha.1"
        assert settings.base_url == "https://api.song.link"
        assert settings.cache is True
        assert settings.timeout == 10.0
        assert settings.max_retries == 3
        assert settings.retry_delay == 1.0
        assert settings.headers == {}

    def test_environment_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test ODESLI_ variables are loaded."""
        monkeypatch.setenv("ODESLI_API_KEY", "secret")
        monkeypatch.setenv("ODESLI_TIMEOUT", "2.5")
        monkeypatch.setenv("ODESLI_CACHE", "false")

        settings = OdesliSettings()

        assert settings.api_key == "secret"
        assert settings.timeout == 2.5
        assert settings.cache is False

    def test_empty_api_key_is_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test an empty key counts as no key."""
        monkeypatch.setenv("ODESLI_API_KEY", "")
        assert OdesliSettings().api_key is None

    def test_trailing_slash_stripped(self) -> None:
        """Test the base URL never ends in a slash."""
        assert OdesliSettings(base_url="http://localhost:8080/").base_url == "http://localhost:8080"

    @pytest.mark.parametrize(
        "overrides",
        [{"timeout": 0}, {"max_retries": 0}, {"retry_delay": -1}],
    )
    def test_invalid_values_rejected(self, overrides: dict) -> None:
        """Test out-of-range values fail validation."""
        with pytest.raises(ValidationError):
            OdesliSettings(**overrides)

    def test_get_settings_is_cached(self) -> None:
        """Test get_settings returns one instance."""
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


def test_fetch_options_defaults() -> None:
    """Test per-call option defaults."""
    options = FetchOptions()
    assert options.country == "US"
    assert options.skip_cache is False
    assert options.timeout is None
    assert options.concurrency == 5
