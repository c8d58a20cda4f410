"""Loading of entity configuration files (``key=value`` lines)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable

_MAX_PURPOSES = 2
_MAX_PORT = 65535


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or is invalid."""


class ConfigKey(IntEnum):
    """Kinds of configuration entries."""

    ENTITY_INFO_NAME = 1
    ENTITY_INFO_PURPOSE = 2
    ENTITY_INFO_NUMKEY = 3
    ENCRYPTION_MODE = 4
    HMAC_MODE = 5
    AUTH_ID = 6
    AUTH_INFO_PUBKEY_PATH = 7
    ENTITY_INFO_PRIVKEY_PATH = 8
    AUTH_INFO_IP_ADDRESS = 9
    AUTH_INFO_PORT = 10
    ENTITY_SERVER_INFO_IP_ADDRESS = 11
    ENTITY_SERVER_INFO_PORT_NUMBER = 12
    FILE_SYSTEM_MANAGER_INFO_IP_ADDRESS = 13
    FILE_SYSTEM_MANAGER_INFO_PORT_NUMBER = 14
    NETWORK_PROTOCOL = 15
    UNKNOWN_CONFIG = 16


_KEY_NAMES = {
    "entityInfo.name": ConfigKey.ENTITY_INFO_NAME,
    "entityInfo.purpose": ConfigKey.ENTITY_INFO_PURPOSE,
    "entityInfo.number_key": ConfigKey.ENTITY_INFO_NUMKEY,
    "encryptionMode": ConfigKey.ENCRYPTION_MODE,
    "HmacMode": ConfigKey.HMAC_MODE,
    "authInfo.id": ConfigKey.AUTH_ID,
    "authInfo.pubkey.path": ConfigKey.AUTH_INFO_PUBKEY_PATH,
    "entityInfo.privkey.path": ConfigKey.ENTITY_INFO_PRIVKEY_PATH,
    "auth.ip.address": ConfigKey.AUTH_INFO_IP_ADDRESS,
    "auth.port.number": ConfigKey.AUTH_INFO_PORT,
    "entity.server.ip.address": ConfigKey.ENTITY_SERVER_INFO_IP_ADDRESS,
    "entity.server.port.number": ConfigKey.ENTITY_SERVER_INFO_PORT_NUMBER,
    "network.protocol": ConfigKey.NETWORK_PROTOCOL,
    "fileSystemManager.ip.address": ConfigKey.FILE_SYSTEM_MANAGER_INFO_IP_ADDRESS,
    "fileSystemManager.port.number": ConfigKey.FILE_SYSTEM_MANAGER_INFO_PORT_NUMBER,
}


class EncryptionMode(Enum):
    """Symmetric cipher modes an entity can use."""

    AES_128_CBC = "AES_128_CBC"
    AES_128_CTR = "AES_128_CTR"
    AES_128_GCM = "AES_128_GCM"


class HmacMode(Enum):
    """Whether messages carry an HMAC."""

    USE_HMAC = "on"
    NO_HMAC = "off"


@dataclass
class Config:
    """Settings of one entity."""

    name: str = ""
    purposes: list[str] = field(default_factory=list)
    purpose_index: int = 0
    numkey: int = 0
    encryption_mode: EncryptionMode = EncryptionMode.AES_128_CBC
    hmac_mode: HmacMode = HmacMode.USE_HMAC
    auth_id: int = 0
    auth_pubkey_path: str | None = None
    entity_privkey_path: str | None = None
    auth_ip_addr: str = ""
    auth_port_num: int = 0
    entity_server_ip_addr: str = ""
    entity_server_port_num: int = 0
    network_protocol: str = ""
    file_system_manager_ip_addr: str = ""
    file_system_manager_port_num: int = 0


def config_key(name: str) -> ConfigKey:
    """Return the kind of entry named ``name``, or ``UNKNOWN_CONFIG``."""
    return _KEY_NAMES.get(name, ConfigKey.UNKNOWN_CONFIG)


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _port(text: str) -> int:
    number = _atoi(text)
    if not 0 <= number <= _MAX_PORT:
        raise ConfigError(f"Invalid port number: {text}.")
    return number


def _hmac_mode(text: str) -> HmacMode:
    if text in ("off", "0"):
        return HmacMode.NO_HMAC
    if text in ("on", "1"):
        return HmacMode.USE_HMAC
    raise ConfigError(
        'Wrong input for hmac_mode: type "off" or "0" to disable HMAC, '
        '"on" or "1" to enable it.'
    )


def parse_config(lines: Iterable[str]) -> Config:
    """Build a :class:`Config` from ``key=value`` lines."""
    config = Config()
    for line in lines:
        stripped = line.lstrip("=")
        if not stripped:
            continue
        key, _, rest = stripped.partition("=")
        kind = config_key(key)
        if kind is ConfigKey.UNKNOWN_CONFIG:
            raise ConfigError(f"Unknown config type {key!r}.")
        tokens = [token for token in re.split(r"[ \n]", rest) if token]
        if not tokens:
            raise ConfigError(f"Config value does not exist for {key}.")
        value = tokens[0]

        if kind is ConfigKey.ENTITY_INFO_NAME:
            config.name = value
        elif kind is ConfigKey.ENTITY_INFO_PURPOSE:
            if len(config.purposes) < _MAX_PURPOSES:
                config.purposes.append(value)
            config.purpose_index = len(config.purposes) - 1
        elif kind is ConfigKey.ENTITY_INFO_NUMKEY:
            config.numkey = _atoi(value)
        elif kind is ConfigKey.ENCRYPTION_MODE:
            try:
                config.encryption_mode = EncryptionMode(value)
            except ValueError:
                pass
        elif kind is ConfigKey.HMAC_MODE:
            config.hmac_mode = _hmac_mode(value)
        elif kind is ConfigKey.AUTH_ID:
            config.auth_id = _atoi(value)
        elif kind is ConfigKey.AUTH_INFO_PUBKEY_PATH:
            config.auth_pubkey_path = value
        elif kind is ConfigKey.ENTITY_INFO_PRIVKEY_PATH:
            config.entity_privkey_path = value
        elif kind is ConfigKey.AUTH_INFO_IP_ADDRESS:
            config.auth_ip_addr = value
        elif kind is ConfigKey.AUTH_INFO_PORT:
            config.auth_port_num = _port(value)
        elif kind is ConfigKey.ENTITY_SERVER_INFO_IP_ADDRESS:
            config.entity_server_ip_addr = value
        elif kind is ConfigKey.ENTITY_SERVER_INFO_PORT_NUMBER:
            config.entity_server_port_num = _port(value)
        elif kind is ConfigKey.NETWORK_PROTOCOL:
            config.network_protocol = value
        elif kind is ConfigKey.FILE_SYSTEM_MANAGER_INFO_IP_ADDRESS:
            config.file_system_manager_ip_addr = value
        elif kind is ConfigKey.FILE_SYSTEM_MANAGER_INFO_PORT_NUMBER:
            config.file_system_manager_port_num = _port(value)
    return config


def load_config(path) -> Config:
    """Read and parse the configuration file at ``path``."""
    try:
        with open(path, encoding="utf-8") as handle:
            return parse_config(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"SST config file not found on path {path}.") from exc
    except PermissionError as exc:
        raise ConfigError(
            f"SST config file permission denied on path {path}."
        ) from exc
    except OSError as exc:
        raise ConfigError(f"SST config file open failed on path {path}.") from exc