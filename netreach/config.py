"""Runtime configuration loaded from the environment (and an optional .env file)."""

import os
from functools import partial
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from netreach.errors import ConfigurationError
from netreach.probes.ranges import (
    CLOUDFLARE_IPV4_URL,
    CLOUDFLARE_IPV6_URL,
    CloudflareRanges,
    install_default_ranges,
)
from netreach.probes.transport import (
    DEFAULT_USER_AGENT,
    Dialer,
    Network,
    build_http_session,
    default_tls_config,
    install_transport,
)

ENV_PREFIX = "NETREACH_"


class Settings(BaseModel):
    """Collaborator settings for a netreach process.

    Attributes:
        network: Address family for dials ("tcp", "tcp4" or "tcp6")
        dial_timeout: Seconds allowed for each TCP connect / TLS handshake
        http_timeout: Seconds allowed for each range document download
        tls_verify: Verify certificates during the TLS dial
        cloudflare_ipv4_url: Location of the IPv4 range document
        cloudflare_ipv6_url: Location of the IPv6 range document
        user_agent: User-Agent sent with range downloads
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    network: Network = "tcp"
    dial_timeout: float = Field(10.0, gt=0)
    http_timeout: float = Field(10.0, gt=0)
    tls_verify: bool = False
    cloudflare_ipv4_url: str = CLOUDFLARE_IPV4_URL
    cloudflare_ipv6_url: str = CLOUDFLARE_IPV6_URL
    user_agent: str = DEFAULT_USER_AGENT


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Read NETREACH_* variables, after loading ``env_file`` (or ./.env) if present.

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value
        ConfigurationError: If an explicit ``env_file`` does not exist
    """
    if env_file is not None and not os.path.isfile(env_file):
        raise ConfigurationError(f"env file not found: {env_file}")
    load_dotenv(env_file)

    values = {}
    for name in Settings.model_fields:
        raw = os.getenv(ENV_PREFIX + name.upper())
        if raw is not None and raw != "":
            values[name] = raw
    return Settings(**values)


def configure(settings: Settings) -> None:
    """Install the process-wide dialer, TLS config constructor and range cache."""
    install_transport(
        dialer=Dialer(network=settings.network, timeout=settings.dial_timeout),
        tls_config=partial(default_tls_config, verify=settings.tls_verify),
    )
    install_default_ranges(CloudflareRanges(
        session=build_http_session(settings.user_agent),
        ipv4_url=settings.cloudflare_ipv4_url,
        ipv6_url=settings.cloudflare_ipv6_url,
        timeout=settings.http_timeout,
    ))
