"""Tests for configuration loading"""

import json
from dataclasses import fields
from pathlib import Path

import pytest

from ticketauth.config import DEFAULT_PORT, load_config, parse_config
from ticketauth.core.exceptions import ConfigError


def test_defaults():
    config = parse_config({"server": {"host": "backup.example.com"}})

    assert config.server.port == DEFAULT_PORT
    assert config.server.verify_tls is True
    assert config.server.product == "PBS"
    assert config.server.ticket_url == "https://backup.example.com:8007/api2/json/access/ticket"
    assert config.origin == "https://backup.example.com:8007"
    assert config.default_realm == "pam"


def test_explicit_values():
    config = parse_config(
        {
            "server": {"host": "pve.local", "port": 8006, "verify_tls": False, "product": "PVE"},
            "webauthn": {"origin": "https://pve.local"},
            "state_path": "/tmp/state.json",
            "default_realm": "pve",
        }
    )

    assert config.server.port == 8006
    assert config.server.verify_tls is False
    assert config.origin == "https://pve.local"
    assert config.state_path == "/tmp/state.json"
    assert config.default_realm == "pve"


@pytest.mark.parametrize(
    "data",
    [{}, {"server": {}}, {"server": {"host": ""}}, {"server": {"host": "h", "port": "abc"}}],
)
def test_invalid_server_section(data):
    with pytest.raises(ConfigError):
        parse_config(data)


def test_load_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"server": {"host": "backup.example.com"}}), encoding="utf-8")

    assert load_config(path).server.host == "backup.example.com"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.json")


def test_invalid_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_example_config_parses():
    config = load_config(Path(__file__).parent.parent / "config.example.json")

    assert config.server.host == "backup.example.com"
    assert config.origin == "https://backup.example.com:8007"
    assert [f.name for f in fields(config.webauthn)] == ["origin"]
