"""Test configuration functionality."""

import tempfile
from pathlib import Path

import pytest

from matchsim.config import (
    MatchsimConfig,
    get_config,
    reset_config,
    update_config,
)


def test_config_defaults(monkeypatch):
    """Test default configuration values."""
    for name in ("MATCHSIM_TRIALS", "MATCHSIM_SEED", "MATCHSIM_VERBOSE", "MATCHSIM_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    config = MatchsimConfig()

    assert config.trial_count == 10_000
    assert config.seed is None
    assert config.verbose is True
    assert config.timeout == 60
    assert config.log_level == "INFO"


def test_config_from_env(monkeypatch):
    """Test configuration from environment variables."""
    monkeypatch.setenv("MATCHSIM_TRIALS", "2500")
    monkeypatch.setenv("MATCHSIM_SEED", "42")
    monkeypatch.setenv("MATCHSIM_VERBOSE", "false")
    monkeypatch.setenv("MATCHSIM_API_KEY", "secret")

    config = MatchsimConfig()

    assert config.trial_count == 2500
    assert config.seed == 42
    assert config.verbose is False
    assert config.api_key == "secret"


def test_get_config():
    """Test getting global configuration."""
    config = get_config()
    assert isinstance(config, MatchsimConfig)


def test_update_config():
    """Test updating configuration."""
    original_verbose = get_config().verbose

    update_config(verbose=not original_verbose)
    assert get_config().verbose == (not original_verbose)

    # Reset for other tests
    reset_config()


def test_update_config_invalid_key():
    """Test updating configuration with invalid key."""
    with pytest.raises(ValueError, match="Unknown configuration option"):
        update_config(invalid_key="value")


def test_reset_config(monkeypatch):
    """Test resetting configuration to defaults."""
    monkeypatch.delenv("MATCHSIM_SEED", raising=False)
    update_config(seed=99)
    assert get_config().seed == 99

    reset_config()
    assert get_config().seed is None


def test_config_dir_override():
    """Test pointing the configuration directory elsewhere."""
    with tempfile.TemporaryDirectory() as temp_dir:
        config = MatchsimConfig(config_dir=Path(temp_dir) / "matchsim")

        assert isinstance(config.config_dir, Path)
        assert config.config_dir.name == "matchsim"
