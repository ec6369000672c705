"""Configuration module for the compromised account policy daemon.

Loads and validates environment variables.
"""

import os
from dataclasses import dataclass
from typing import List

from src.services.cache import DEFAULT_SET_NAME
from src.services.dns_checker import AUTHBL_RCPT_ZONE, AUTHBL_ZONE


POLICY_ACTIONS = ("reject", "hold", "log")


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # Reputation Service Configuration
    api_key: str
    authbl_zone: str
    authbl_rcpt_zone: str
    dns_timeout: int
    dns_nameservers: List[str]
    verify_api_key: bool

    # Listener Configuration
    listen_host: str
    listen_port: int
    workers: int

    # Policy Configuration
    action: str
    notify_command: str | None
    notify_timeout: int

    # Redis Configuration
    redis_host: str
    redis_port: int
    redis_db: int
    redis_username: str | None
    redis_password: str | None
    redis_set_name: str
    redis_timeout: int

    # Operational Configuration
    verbose: bool

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Raises:
            ValueError: If required variables are missing or invalid.

        Returns:
            Config: Validated configuration instance.
        """
        # Reputation Service Configuration
        api_key = cls._get_required_env("ABUSIX_API_KEY")
        authbl_zone = os.getenv("AUTHBL_ZONE", AUTHBL_ZONE).strip(".")
        authbl_rcpt_zone = os.getenv("AUTHBL_RCPT_ZONE", AUTHBL_RCPT_ZONE).strip(".")
        if not authbl_zone or not authbl_rcpt_zone:
            raise ValueError("AUTHBL_ZONE and AUTHBL_RCPT_ZONE must not be empty")

        dns_timeout = cls._get_int_env("DNS_TIMEOUT", "5")
        if not 1 <= dns_timeout <= 60:
            raise ValueError("DNS_TIMEOUT must be between 1 and 60 seconds")

        dns_nameservers = [
            ns.strip() for ns in os.getenv("DNS_NAMESERVERS", "").split(",") if ns.strip()
        ]
        verify_api_key = cls._get_bool_env("VERIFY_API_KEY", "true")

        # Listener Configuration
        listen_host = os.getenv("LISTEN_HOST", "127.0.0.1")
        listen_port = cls._get_int_env("LISTEN_PORT", "9998")
        if not 1 <= listen_port <= 65535:
            raise ValueError("LISTEN_PORT must be between 1 and 65535")

        workers = cls._get_int_env("WORKERS", str(os.cpu_count() or 1))
        if not 1 <= workers <= 256:
            raise ValueError("WORKERS must be between 1 and 256")

        # Policy Configuration
        # Unknown actions are not rejected here: they are reported per
        # request and resolved to DUNNO
        action = os.getenv("POLICY_ACTION", "log").strip().lower()
        notify_command = os.getenv("NOTIFY_COMMAND") or None
        notify_timeout = cls._get_int_env("NOTIFY_TIMEOUT", "30")
        if not 1 <= notify_timeout <= 600:
            raise ValueError("NOTIFY_TIMEOUT must be between 1 and 600 seconds")

        # Redis Configuration
        redis_host = os.getenv("REDIS_HOST", "localhost")
        redis_port = cls._get_int_env("REDIS_PORT", "6379")
        redis_db = cls._get_int_env("REDIS_DB", "0")
        if redis_db < 0:
            raise ValueError("REDIS_DB must not be negative")
        redis_username = os.getenv("REDIS_USERNAME") or None
        redis_password = os.getenv("REDIS_PASSWORD") or None
        redis_set_name = os.getenv("REDIS_SET_NAME", DEFAULT_SET_NAME)
        redis_timeout = cls._get_int_env("REDIS_TIMEOUT", "5")
        if not 1 <= redis_timeout <= 60:
            raise ValueError("REDIS_TIMEOUT must be between 1 and 60 seconds")

        # Operational Configuration
        verbose = cls._get_bool_env("VERBOSE", "false")

        return cls(
            api_key=api_key,
            authbl_zone=authbl_zone,
            authbl_rcpt_zone=authbl_rcpt_zone,
            dns_timeout=dns_timeout,
            dns_nameservers=dns_nameservers,
            verify_api_key=verify_api_key,
            listen_host=listen_host,
            listen_port=listen_port,
            workers=workers,
            action=action,
            notify_command=notify_command,
            notify_timeout=notify_timeout,
            redis_host=redis_host,
            redis_port=redis_port,
            redis_db=redis_db,
            redis_username=redis_username,
            redis_password=redis_password,
            redis_set_name=redis_set_name,
            redis_timeout=redis_timeout,
            verbose=verbose,
        )

    @staticmethod
    def _get_required_env(key: str) -> str:
        """Get required environment variable or raise ValueError.

        Args:
            key: Environment variable name.

        Returns:
            str: Environment variable value.

        Raises:
            ValueError: If environment variable is not set or empty.
        """
        value = os.getenv(key)
        if not value:
            raise ValueError(f"Required environment variable {key} is not set")
        return value

    @staticmethod
    def _get_int_env(key: str, default: str) -> int:
        value = os.getenv(key, default)
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"{key} must be an integer, got {value!r}") from None

    @staticmethod
    def _get_bool_env(key: str, default: str) -> bool:
        return os.getenv(key, default).lower() in ("true", "1", "yes")

    def is_known_action(self) -> bool:
        return self.action in POLICY_ACTIONS
