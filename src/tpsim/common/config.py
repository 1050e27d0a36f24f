"""
tpsim Configuration

Dataclass-based settings for capture runs and the simulation server.
Credentials come from the environment only.
"""

import os
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigError

DEFAULT_REPLACEMENT_DOMAIN = "test.tpondemand.com"
DEFAULT_OUTPUT_DIR = "testdata/simulations"

ENV_DOMAIN = "TP_DOMAIN"
ENV_TOKEN = "TP_TOKEN"


def get_token_from_env() -> Optional[str]:
    """
    Read the API access token from the TP_TOKEN environment variable.

    Tokens are never accepted as command-line arguments so they do not end up
    in process lists or shell history.

    Returns:
        The token, or None if the variable is unset or empty
    """
    return os.environ.get(ENV_TOKEN) or None


def get_domain_from_env() -> Optional[str]:
    """Read the live service domain from TP_DOMAIN."""
    return os.environ.get(ENV_DOMAIN) or None


@dataclass
class CaptureConfig:
    """Settings for a capture run against a live service."""

    domain: str
    token: str
    output_dir: str = DEFAULT_OUTPUT_DIR
    replacement_domain: str = DEFAULT_REPLACEMENT_DOMAIN
    timeout: int = 30

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}"

    @classmethod
    def from_env(cls, output_dir: Optional[str] = None) -> 'CaptureConfig':
        """
        Build a capture configuration from TP_DOMAIN and TP_TOKEN.

        Raises:
            ConfigError: If either variable is missing
        """
        domain = get_domain_from_env()
        if not domain:
            raise ConfigError(f"{ENV_DOMAIN} environment variable not set")

        token = get_token_from_env()
        if not token:
            raise ConfigError(f"{ENV_TOKEN} environment variable not set")

        # Accept "https://x.tpondemand.com/" as well as the bare host
        domain = domain.strip().rstrip('/')
        for prefix in ('https://', 'http://'):
            if domain.startswith(prefix):
                domain = domain[len(prefix):]

        return cls(
            domain=domain,
            token=token,
            output_dir=output_dir or DEFAULT_OUTPUT_DIR
        )


@dataclass
class ServerConfig:
    """Configuration for the simulation server."""

    host: str = "127.0.0.1"
    port: int = 0  # 0 picks a free port
    log_level: str = "warning"

    # Admin API
    admin_enabled: bool = False
    admin_prefix: str = "/__admin__"

    # How long start() waits for the listener to come up
    startup_timeout: float = 10.0
