"""Tests for studiogen.core.config — configuration management.

Tests cover:
- Default values for all configuration fields.
- Credential lookup via STUDIOGEN_FAL_KEY and the bare FAL_KEY.
- Environment variable overrides via the STUDIOGEN_ prefix.
- Automatic data directory creation on initialisation.
- Pydantic validation constraints.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from studiogen.core.config import StudiogenConfig


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any credential the developer's shell might carry."""
    monkeypatch.delenv("FAL_KEY", raising=False)
    monkeypatch.delenv("STUDIOGEN_FAL_KEY", raising=False)
    return monkeypatch


class TestConfigDefaults:
    """Verify that StudiogenConfig provides the documented defaults."""

    def test_defaults(self, clean_env, temp_dir: Path):
        cfg = StudiogenConfig(_env_file=None, data_dir=temp_dir)
        assert cfg.fal_key is None
        assert cfg.upstream_url == "https://fal.run/bria/fibo/generate"
        assert cfg.upstream_timeout == 60.0
        assert cfg.rate_limit_capacity == 10
        assert cfg.rate_limit_window_seconds == 3600.0
        assert cfg.retry_after_seconds == 3600
        assert cfg.history_enabled is True
        assert cfg.server_port == 8000

    def test_no_credential_is_unconfigured(self, clean_env, temp_dir: Path):
        cfg = StudiogenConfig(_env_file=None, data_dir=temp_dir)
        assert cfg.is_credential_configured is False

    def test_history_path(self, test_config: StudiogenConfig):
        assert test_config.history_path == test_config.data_dir / "history.json"


class TestCredential:
    """The provider key comes from either supported variable."""

    def test_bare_fal_key(self, clean_env, temp_dir: Path):
        clean_env.setenv("FAL_KEY", "from-bare")
        cfg = StudiogenConfig(_env_file=None, data_dir=temp_dir)
        assert cfg.fal_key.get_secret_value() == "from-bare"
        assert cfg.is_credential_configured is True

    def test_prefixed_fal_key(self, clean_env, temp_dir: Path):
        clean_env.setenv("STUDIOGEN_FAL_KEY", "from-prefixed")
        cfg = StudiogenConfig(_env_file=None, data_dir=temp_dir)
        assert cfg.fal_key.get_secret_value() == "from-prefixed"

    def test_blank_key_is_unconfigured(self, clean_env, temp_dir: Path):
        cfg = StudiogenConfig(_env_file=None, data_dir=temp_dir, fal_key="   ")
        assert cfg.is_credential_configured is False

    def test_key_hidden_from_repr(self, test_config: StudiogenConfig):
        assert "test-key" not in repr(test_config)
        assert "test-key" not in str(test_config.fal_key)


class TestEnvironmentOverrides:
    """STUDIOGEN_* variables override defaults."""

    def test_prefixed_overrides(self, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("STUDIOGEN_UPSTREAM_TIMEOUT", "45")
        monkeypatch.setenv("STUDIOGEN_RATE_LIMIT_CAPACITY", "3")
        monkeypatch.setenv("STUDIOGEN_HISTORY_ENABLED", "false")
        cfg = StudiogenConfig(_env_file=None, data_dir=temp_dir)
        assert cfg.upstream_timeout == 45.0
        assert cfg.rate_limit_capacity == 3
        assert cfg.history_enabled is False


class TestDirectoryCreation:
    def test_data_dir_created(self, temp_dir: Path):
        target = temp_dir / "nested" / "data"
        StudiogenConfig(_env_file=None, data_dir=target)
        assert target.is_dir()

    def test_global_config_uses_env_data_dir(self):
        """The import-time instance honours STUDIOGEN_DATA_DIR, not ./data."""
        from studiogen.core.config import config

        assert config.data_dir == Path(os.environ["STUDIOGEN_DATA_DIR"])
        assert config.data_dir.resolve() != (Path.cwd() / "data").resolve()
        assert config.data_dir.is_dir()


class TestValidation:
    """Field constraints are enforced."""

    @pytest.mark.parametrize("port", [80, 70000])
    def test_port_out_of_range(self, temp_dir: Path, port):
        with pytest.raises(ValidationError):
            StudiogenConfig(_env_file=None, data_dir=temp_dir, server_port=port)

    def test_zero_capacity_rejected(self, temp_dir: Path):
        with pytest.raises(ValidationError):
            StudiogenConfig(_env_file=None, data_dir=temp_dir, rate_limit_capacity=0)

    def test_non_positive_timeout_rejected(self, temp_dir: Path):
        with pytest.raises(ValidationError):
            StudiogenConfig(_env_file=None, data_dir=temp_dir, upstream_timeout=0)
