"""Unit tests for configuration validation."""

import os

import pytest

from src.config import Config


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the daemon reads."""
    for key in list(os.environ.keys()):
        if key.startswith(("ABUSIX_", "AUTHBL_", "DNS_", "LISTEN_", "REDIS_", "NOTIFY_")):
            monkeypatch.delenv(key, raising=False)
    for key in ("POLICY_ACTION", "WORKERS", "VERBOSE", "VERIFY_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ABUSIX_API_KEY", "abc123")
    return monkeypatch


def test_config_from_env_defaults(clean_env):
    """Test loading configuration with only the API key set."""
    config = Config.from_env()

    assert config.api_key == "abc123"
    assert config.authbl_zone == "authbl.mail.abusix.zone"
    assert config.authbl_rcpt_zone == "authbl-rcpt.mail.abusix.zone"
    assert config.listen_host == "127.0.0.1"
    assert config.listen_port == 9998
    assert config.action == "log"
    assert config.notify_command is None
    assert config.redis_host == "localhost"
    assert config.redis_port == 6379
    assert config.redis_db == 0
    assert config.redis_set_name == "compromised_accts"
    assert config.dns_timeout == 5
    assert config.dns_nameservers == []
    assert config.verify_api_key is True
    assert config.workers >= 1
    assert config.verbose is False


def test_config_from_env_valid(clean_env):
    """Test loading a fully specified configuration."""
    env_vars = {
        "LISTEN_PORT": "10040",
        "POLICY_ACTION": "REJECT",
        "NOTIFY_COMMAND": "/usr/local/bin/lock-account",
        "REDIS_HOST": "redis.internal",
        "REDIS_PORT": "6380",
        "REDIS_DB": "3",
        "REDIS_PASSWORD": "secret",
        "DNS_NAMESERVERS": "192.0.2.53, 192.0.2.54",
        "WORKERS": "4",
        "VERIFY_API_KEY": "no",
        "VERBOSE": "1",
    }
    for key, value in env_vars.items():
        clean_env.setenv(key, value)

    config = Config.from_env()

    assert config.listen_port == 10040
    assert config.action == "reject"
    assert config.is_known_action() is True
    assert config.notify_command == "/usr/local/bin/lock-account"
    assert config.redis_host == "redis.internal"
    assert config.redis_port == 6380
    assert config.redis_db == 3
    assert config.redis_password == "secret"
    assert config.redis_username is None
    assert config.dns_nameservers == ["192.0.2.53", "192.0.2.54"]
    assert config.workers == 4
    assert config.verify_api_key is False
    assert config.verbose is True


def test_config_missing_api_key(clean_env):
    """Test that a missing API key raises ValueError."""
    clean_env.delenv("ABUSIX_API_KEY")

    with pytest.raises(
        ValueError, match="Required environment variable ABUSIX_API_KEY is not set"
    ):
        Config.from_env()


def test_config_unknown_action_is_accepted(clean_env):
    """Test unknown actions load; they are reported per request instead."""
    clean_env.setenv("POLICY_ACTION", "quarantine")

    config = Config.from_env()

    assert config.action == "quarantine"
    assert config.is_known_action() is False


@pytest.mark.parametrize(
    "key, value, message",
    [
        ("LISTEN_PORT", "0", "LISTEN_PORT must be between 1 and 65535"),
        ("LISTEN_PORT", "70000", "LISTEN_PORT must be between 1 and 65535"),
        ("LISTEN_PORT", "abc", "LISTEN_PORT must be an integer"),
        ("DNS_TIMEOUT", "0", "DNS_TIMEOUT must be between 1 and 60 seconds"),
        ("REDIS_TIMEOUT", "61", "REDIS_TIMEOUT must be between 1 and 60 seconds"),
        ("REDIS_DB", "-1", "REDIS_DB must not be negative"),
        ("WORKERS", "0", "WORKERS must be between 1 and 256"),
        ("NOTIFY_TIMEOUT", "0", "NOTIFY_TIMEOUT must be between 1 and 600 seconds"),
    ],
)
def test_config_range_validation(clean_env, key, value, message):
    clean_env.setenv(key, value)

    with pytest.raises(ValueError, match=message):
        Config.from_env()


def test_config_empty_zone(clean_env):
    clean_env.setenv("AUTHBL_ZONE", ".")

    with pytest.raises(ValueError, match="must not be empty"):
        Config.from_env()
