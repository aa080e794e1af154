"""Client configuration loader"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8007
DEFAULT_STATE_PATH = "~/.config/ticketauth/state.json"
TICKET_PATH = "/api2/json/access/ticket"


@dataclass
class ServerConfig:
    """Ticket endpoint location"""

    host: str
    port: int = DEFAULT_PORT
    verify_tls: bool = True
    timeout: float = 30.0
    product: str = "PBS"  # ticket prefix, "PBS:!tfa!" marks a pending challenge

    @property
    def ticket_url(self) -> str:
        return f"https://{self.host}:{self.port}{TICKET_PATH}"


@dataclass
class WebAuthnConfig:
    """Settings for the local hardware authenticator"""

    origin: str | None = None  # defaults to https://<host>:<port>


@dataclass
class ClientConfig:
    server: ServerConfig
    webauthn: WebAuthnConfig = field(default_factory=WebAuthnConfig)
    state_path: str = DEFAULT_STATE_PATH
    default_realm: str = "pam"

    @property
    def origin(self) -> str:
        return self.webauthn.origin or f"https://{self.server.host}:{self.server.port}"


def parse_config(data: dict) -> ClientConfig:
    """Parse a config dictionary into ClientConfig"""
    server_data = data.get("server", {})
    if not server_data or not server_data.get("host"):
        raise ConfigError("server.host is required")

    try:
        server = ServerConfig(
            host=server_data["host"],
            port=int(server_data.get("port", DEFAULT_PORT)),
            verify_tls=bool(server_data.get("verify_tls", True)),
            timeout=float(server_data.get("timeout", 30.0)),
            product=server_data.get("product", "PBS"),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid server section: {e}")

    webauthn_data = data.get("webauthn", {})
    webauthn = WebAuthnConfig(origin=webauthn_data.get("origin"))

    return ClientConfig(
        server=server,
        webauthn=webauthn,
        state_path=data.get("state_path", DEFAULT_STATE_PATH),
        default_realm=data.get("default_realm", "pam"),
    )


def load_config(config_path: str | Path = "config.json") -> ClientConfig:
    """Load client configuration from config file

    Args:
        config_path: Path to config.json

    Returns:
        Parsed ClientConfig
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise ConfigError(f"config file not found: {config_path}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a JSON object")

    config = parse_config(data)
    logger.info(f"Loaded config for {config.server.host}:{config.server.port}")
    return config
