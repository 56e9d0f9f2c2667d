"""
Configuration utilities for tfproxy.
"""

import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

SECTION = "tfproxy"

_TRUE_STRINGS = ("1", "true", "yes", "on")


@dataclass
class ProxyConfig:
    """
    Settings for runtime discovery and logging.

    Values come from the dataclass defaults, an optional INI file with a
    ``[tfproxy]`` section, and ``TFPROXY_*`` environment variables, in
    increasing order of precedence.

    Example:
        >>> config = ProxyConfig.load("tfproxy.ini")
        >>> config.module
        'tensorflow'
        >>> config.get_int("tfproxy", "retries", default=0)
        0
    """
    module: str = "tensorflow"
    alias: str = "tf"
    log_level: str = "WARNING"
    lazy_submodules: bool = True
    _parser: configparser.ConfigParser = field(
        default_factory=configparser.ConfigParser, repr=False, compare=False
    )

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ProxyConfig":
        """
        Load configuration from an INI file.

        Args:
            path: Path to configuration file

        Returns:
            ProxyConfig instance

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(path).resolve()
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")

        parser = configparser.ConfigParser()
        parser.read(path, encoding="utf-8")

        config = cls(_parser=parser)
        config.module = config.get_string(SECTION, "module", config.module)
        config.alias = config.get_string(SECTION, "alias", config.alias)
        config.log_level = config.get_string(
            SECTION, "log_level", config.log_level
        ).upper()
        config.lazy_submodules = config.get_bool(
            SECTION, "lazy_submodules", config.lazy_submodules
        )
        return config

    @classmethod
    def from_env(cls, base: Optional["ProxyConfig"] = None) -> "ProxyConfig":
        """Overlay ``TFPROXY_*`` environment variables on ``base``."""
        config = base if base is not None else cls()
        if os.environ.get("TFPROXY_MODULE"):
            config.module = os.environ["TFPROXY_MODULE"]
        if os.environ.get("TFPROXY_ALIAS"):
            config.alias = os.environ["TFPROXY_ALIAS"]
        if os.environ.get("TFPROXY_LOG_LEVEL"):
            config.log_level = os.environ["TFPROXY_LOG_LEVEL"].upper()
        if os.environ.get("TFPROXY_LAZY_SUBMODULES"):
            config.lazy_submodules = (
                os.environ["TFPROXY_LAZY_SUBMODULES"].lower() in _TRUE_STRINGS
            )
        return config

    def get_int(self, section: str, key: str, default: int = 0) -> int:
        """
        Get an integer value from the config.

        Args:
            section: Section name (e.g., "tfproxy")
            key: Key name
            default: Default value if not found

        Returns:
            Integer value
        """
        return self._parser.getint(section, key, fallback=default)

    def get_float(self, section: str, key: str, default: float = 0.0) -> float:
        """Get a float value from the config."""
        return self._parser.getfloat(section, key, fallback=default)

    def get_string(self, section: str, key: str, default: str = "") -> str:
        """Get a string value from the config."""
        return self._parser.get(section, key, fallback=default)

    def get_bool(self, section: str, key: str, default: bool = False) -> bool:
        """Get a boolean value from the config."""
        return self._parser.getboolean(section, key, fallback=default)


_config: Optional[ProxyConfig] = None


def get_config() -> ProxyConfig:
    """Return the process-wide config, built from the environment on first use."""
    global _config
    if _config is None:
        _config = ProxyConfig.from_env()
    return _config


def set_config(config: ProxyConfig) -> None:
    """Replace the process-wide config and apply its log level."""
    global _config
    _config = config
    configure_logging(config.log_level)


def configure_logging(level: Union[str, int, None] = None) -> None:
    """Set the level of the ``tfproxy`` logger hierarchy."""
    if level is None:
        level = get_config().log_level
    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level: {level}")
        level = numeric
    logging.getLogger("tfproxy").setLevel(level)
