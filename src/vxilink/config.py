"""Instrument link configuration.

A `LinkConfig` gathers everything a `SessionManager` or `Instrument` needs
to know about talking to one instrument: where it is, which backend to use,
the timeouts, and how to treat quirky replies. Configurations can be kept in
an INI file, one section per named instrument:

[scope]
address = 192.168.1.20
device_name = inst0
backend = native
timeout_ms = 10000
read_timeout_ms = 2000

[dmm]
address = TCPIP::192.168.1.31::inst0::INSTR
backend = visa
lenient_values = yes
max_retries = 5

The default file is `~/.vxilink/instruments.ini`.
"""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from loguru import logger
from mashumaro import DataClassDictMixin

from vxilink.util.defaults import (
    DEFAULT_BACKEND,
    DEFAULT_DEVICE_NAME,
    DEFAULT_MAX_PAYLOAD,
    DEFAULT_READ_TIMEOUT_MS,
    DEFAULT_TIMEOUT_MS,
)

CONFIG_PATH = Path.home() / ".vxilink" / "instruments.ini"
VALID_BACKENDS = ("native", "visa", "mock")

# ConfigParser getter for each non-string field
_INI_GETTERS = {
    "timeout_ms": "getint",
    "read_timeout_ms": "getint",
    "fallback_max_payload": "getint",
    "lenient_values": "getboolean",
    "max_retries": "getint",
}


class ConfigError(ValueError):
    """Invalid or missing instrument configuration."""

    pass


@dataclass(kw_only=True)
class LinkConfig(DataClassDictMixin):
    """Settings for links to one instrument.

    Attributes
    ----------
    address : str
        Instrument address (host, IP or VISA resource string).
    device_name : str
        Logical device on the instrument, "inst0" for most LAN instruments.
    backend : str
        Transport backend, one of "native", "visa", "mock".
    timeout_ms : int
        Lock/link timeout, and the io timeout used for writes.
    read_timeout_ms : int
        Default io timeout for reads and queries.
    fallback_max_payload : int
        Fragment size used when the instrument advertises a max payload <= 0.
    lenient_values : bool
        If True, numeric queries return 0 on any failure instead of raising.
    max_retries : int or None
        Cap on dropped-call retries in `send_and_receive`. None is unbounded.
    """

    address: str = ""
    device_name: str = DEFAULT_DEVICE_NAME
    backend: str = DEFAULT_BACKEND
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS
    fallback_max_payload: int = DEFAULT_MAX_PAYLOAD
    lenient_values: bool = False
    max_retries: Optional[int] = None

    def __post_init__(self):
        """Validate configuration immediately after initialization."""
        self.validate()

    def validate(self) -> None:
        validators = {
            "backend": (
                self.backend in VALID_BACKENDS,
                f"Backend must be one of {VALID_BACKENDS}",
            ),
            "device_name": (bool(self.device_name), "Device name cannot be empty"),
            "timeout_ms": (self.timeout_ms > 0, "Timeout must be positive"),
            "read_timeout_ms": (
                self.read_timeout_ms > 0,
                "Read timeout must be positive",
            ),
            "fallback_max_payload": (
                self.fallback_max_payload > 0,
                "Fallback max payload must be positive",
            ),
            "max_retries": (
                self.max_retries is None or self.max_retries >= 0,
                "Max retries cannot be negative",
            ),
        }
        for param, (valid, message) in validators.items():
            if not valid:
                raise ConfigError(f"{message} (got {getattr(self, param)!r})")


def _read_ini(path: Optional[Path]) -> tuple[ConfigParser, Path]:
    path = Path(path) if path is not None else CONFIG_PATH
    config = ConfigParser()
    if path.exists():
        config.read(path)
    return config, path


def load_link_config(name: str, path: Optional[Path] = None) -> LinkConfig:
    """Load the named instrument's configuration from an INI file.

    Raises
    ------
    ConfigError
        If the section is missing, has no address, or holds invalid values.
    """
    config, path = _read_ini(path)
    if not config.has_section(name):
        raise ConfigError(f"No instrument named {name!r} in {path}")
    section = config[name]
    if not section.get("address"):
        raise ConfigError(f"Instrument {name!r} in {path} has no address")

    known = {f.name for f in fields(LinkConfig)}
    values = {}
    for key in section:
        if key not in known:
            logger.warning("Ignoring unknown key {!r} for instrument {}", key, name)
            continue
        getter = _INI_GETTERS.get(key)
        try:
            values[key] = (
                getattr(section, getter)(key) if getter else section.get(key)
            )
        except ValueError as e:
            raise ConfigError(f"Invalid value for {name}.{key}: {e}") from e
    logger.debug("Loaded config for {} from {}", name, path)
    return LinkConfig.from_dict(values)


def save_link_config(name: str, link_config: LinkConfig, path: Optional[Path] = None):
    """Write (or overwrite) the named instrument's section."""
    config, path = _read_ini(path)
    if not config.has_section(name):
        config.add_section(name)
    for key, value in link_config.to_dict().items():
        if value is None:
            config.remove_option(name, key)
        else:
            config[name][key] = str(value)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        config.write(f)
    logger.info("Saved config for {} to {}", name, path)


def list_link_configs(path: Optional[Path] = None) -> list[str]:
    config, _ = _read_ini(path)
    return config.sections()
