# spotbar/config.py
# Runtime configuration: defaults <- YAML file <- environment.
#
# The value is built once at startup and handed to both loops; nothing
# mutates it afterwards.

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

import yaml

from .errors import ConfigError

log = logging.getLogger(__name__)

PLAYER_INTERFACE = "org.mpris.MediaPlayer2.Player"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"
PEER_INTERFACE = "org.freedesktop.DBus.Peer"
BUS_NAME_PREFIX = "org.mpris.MediaPlayer2."

PARSE_ERROR_TEXT = "An error occured while parsing"

DEFAULT_PORT = 33333
MIN_PORT = 1024    # exclusive
MAX_PORT = 63335   # exclusive


@dataclass(frozen=True)
class Icons:
    """Glyphs printed on the bar (Font Awesome code points)."""
    app: str = "\uf1bc"
    note: str = "\uf1bc"
    playing: str = "\uf04b"
    paused: str = "\uf04c"
    stopped: str = "\uf04d"


@dataclass(frozen=True)
class BridgeConfig:
    player: str = "spotify"
    object_path: str = "/org/mpris/MediaPlayer2"
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    poll_interval: float = 3.5
    reconnect_delay: float = 3.5
    bind_retry_delay: float = 1.0
    recv_size: int = 2048
    call_timeout: float = 5.0
    exit_on_command_error: bool = False
    icons: Icons = field(default_factory=Icons)

    @property
    def bus_name(self) -> str:
        return BUS_NAME_PREFIX + self.player

    def disconnected_line(self) -> str:
        return f"{self.icons.app} {self.icons.stopped}"

    def playing_line(self, icon: str, song: str) -> str:
        return f"{self.icons.note} {icon} {song}"


# ---- loading -----------------------------------------------------------------

_TRUTHY = ("1", "true", "True", "yes", "YES", "on")


def default_config_path(environ=None) -> str:
    env = os.environ if environ is None else environ
    base = env.get("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return os.path.join(base, "spotbar", "config.yaml")


def read_yaml(path: str) -> dict:
    """
    Read a YAML mapping from path. Raises ConfigError when the file cannot be
    read or does not hold a mapping.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    return data


def _fields(cls) -> set:
    return {f.name for f in dataclasses.fields(cls)}


def _as_str(value) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


def _as_int(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError(f"expected an integer, got {type(value).__name__}")
    return int(value)


def _as_float(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    return float(value)


def _as_bool(value) -> bool:
    # "false" in YAML quotes is a non-empty string, so only real booleans count
    if not isinstance(value, bool):
        raise TypeError(f"expected true or false, got {type(value).__name__}")
    return value


_CONVERTERS = {
    "player": _as_str,
    "object_path": _as_str,
    "host": _as_str,
    "port": _as_int,
    "recv_size": _as_int,
    "poll_interval": _as_float,
    "reconnect_delay": _as_float,
    "bind_retry_delay": _as_float,
    "call_timeout": _as_float,
    "exit_on_command_error": _as_bool,
}


def from_mapping(data: dict, base: Optional[BridgeConfig] = None) -> BridgeConfig:
    base = base or BridgeConfig()
    known = _fields(BridgeConfig)
    changes = {}

    for key, value in data.items():
        if key == "icons":
            if not isinstance(value, dict):
                raise ConfigError("'icons' must be a mapping")
            icon_keys = _fields(Icons)
            unknown = set(value) - icon_keys
            if unknown:
                log.warning("ignoring unknown icon keys: %s", ", ".join(sorted(unknown)))
            changes["icons"] = dataclasses.replace(
                base.icons, **{k: str(v) for k, v in value.items() if k in icon_keys}
            )
        elif key in known:
            try:
                changes[key] = _CONVERTERS[key](value)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"{key}: {e}") from e
        else:
            log.warning("ignoring unknown config key %r", key)

    try:
        return dataclasses.replace(base, **changes)
    except TypeError as e:
        raise ConfigError(str(e)) from e


def apply_env(cfg: BridgeConfig, environ=None) -> BridgeConfig:
    env = os.environ if environ is None else environ
    changes = {}
    if env.get("SPOTBAR_PLAYER"):
        changes["player"] = env["SPOTBAR_PLAYER"]
    if env.get("SPOTBAR_PORT"):
        try:
            changes["port"] = int(env["SPOTBAR_PORT"])
        except ValueError:
            log.warning("SPOTBAR_PORT=%r is not an integer; ignored", env["SPOTBAR_PORT"])
    if "SPOTBAR_EXIT_ON_COMMAND_ERROR" in env:
        changes["exit_on_command_error"] = env["SPOTBAR_EXIT_ON_COMMAND_ERROR"] in _TRUTHY
    return dataclasses.replace(cfg, **changes) if changes else cfg


def load_config(path: Optional[str] = None, environ=None) -> BridgeConfig:
    """
    Build the configuration. An explicit path, then $SPOTBAR_CONFIG, then the
    XDG default (only if it exists). A broken file is logged and skipped.
    """
    env = os.environ if environ is None else environ
    path = path or env.get("SPOTBAR_CONFIG")
    if not path:
        candidate = default_config_path(env)
        path = candidate if os.path.exists(candidate) else None

    cfg = BridgeConfig()
    if path:
        try:
            cfg = from_mapping(read_yaml(path), cfg)
            log.debug("loaded config from %s", path)
        except ConfigError as e:
            log.warning("config load error: %s; using defaults", e)
            cfg = BridgeConfig()

    return apply_env(cfg, env)
