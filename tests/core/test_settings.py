"""Tests for resolvespine.core.settings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from resolvespine.core.settings import ResolverSettings, get_settings


class TestResolverSettings:
    def test_defaults(self):
        s = ResolverSettings()
        assert s.api_prefix == "/api/v1"
        assert s.resync_period_seconds == 300.0
        assert s.catalog_dir is None
        assert s.enable_external_packages is True
        assert s.watch_external_packages is False

    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("RESOLVESPINE_CATALOG_DIR", str(tmp_path))
        monkeypatch.setenv("RESOLVESPINE_RESYNC_PERIOD_SECONDS", "15")
        s = ResolverSettings()
        assert s.catalog_dir == Path(tmp_path)
        assert s.resync_period_seconds == 15.0

    def test_dotenv(self, tmp_path):
        (tmp_path / ".env").write_text("RESOLVESPINE_DEBUG=true\n")
        assert ResolverSettings().debug is True

    def test_positive_periods(self):
        with pytest.raises(ValidationError):
            ResolverSettings(resync_period_seconds=0)

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()
