# This file provides the MPRIS side of the bridge (connect/ping/read/control)
#
# What it does in production:
# - open a private session-bus connection per loop
# - ping org.mpris.MediaPlayer2.<player> to prove it is alive
# - read Metadata / PlaybackStatus and call the Player methods

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import dbus
import dbus.exceptions

from .config import (
    BridgeConfig,
    PEER_INTERFACE,
    PLAYER_INTERFACE,
    PROPERTIES_INTERFACE,
)
from .errors import BackendError, MetadataParseError

log = logging.getLogger(__name__)

UNKNOWN_ARTIST = "Unknown"
UNKNOWN_TRACK = "Unknown track"
UNKNOWN_ALBUM = "Unknown album"


class PlaybackStatus(Enum):
    PLAYING = "Playing"
    PAUSED = "Paused"
    STOPPED = "Stopped"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw) -> "PlaybackStatus":
        """
        Case-insensitive mapping of the PlaybackStatus string. Anything we
        don't recognise is UNKNOWN.
        """
        value = str(raw).strip().lower()
        for status in (cls.PLAYING, cls.PAUSED, cls.STOPPED):
            if status.value.lower() == value:
                return status
        return cls.UNKNOWN


@dataclass(frozen=True)
class TrackInfo:
    artists: Tuple[str, ...] = ()
    title: Optional[str] = None
    album: Optional[str] = None

    def display(self) -> str:
        artists = ", ".join(a for a in self.artists if a) or UNKNOWN_ARTIST
        title = self.title or UNKNOWN_TRACK
        album = self.album or UNKNOWN_ALBUM
        return f"{artists}: {title} - {album}"


def _optional_text(metadata, key) -> Optional[str]:
    value = metadata.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MetadataParseError(f"{key} is {type(value).__name__}, expected a string")
    return str(value)


def parse_metadata(metadata) -> TrackInfo:
    """
    Turn an MPRIS Metadata mapping into a TrackInfo.
    Missing fields are fine; fields of the wrong type raise MetadataParseError.
    """
    if not hasattr(metadata, "get"):
        raise MetadataParseError(f"metadata is {type(metadata).__name__}, expected a mapping")

    raw_artists = metadata.get("xesam:artist")
    if raw_artists is None:
        artists = ()
    elif isinstance(raw_artists, str):
        # some players send a bare string instead of a list
        artists = (str(raw_artists),)
    elif isinstance(raw_artists, (list, tuple)):
        if not all(isinstance(a, str) for a in raw_artists):
            raise MetadataParseError("xesam:artist contains a non-string entry")
        artists = tuple(str(a) for a in raw_artists)
    else:
        raise MetadataParseError(f"xesam:artist is {type(raw_artists).__name__}")

    return TrackInfo(
        artists=artists,
        title=_optional_text(metadata, "xesam:title"),
        album=_optional_text(metadata, "xesam:album"),
    )


# ---------- live handle ----------

class Player:
    """
    A proxy to the player object. Every call goes over the bus with a
    timeout; D-Bus failures surface as BackendError.
    """

    def __init__(self, proxy, timeout: float = 5.0):
        self._proxy = proxy
        self.timeout = timeout

    def ping(self):
        try:
            self._proxy.Ping(dbus_interface=PEER_INTERFACE, timeout=self.timeout)
        except dbus.exceptions.DBusException as e:
            raise BackendError(f"ping failed: {e}") from e

    def get_property(self, name: str):
        try:
            return self._proxy.Get(
                PLAYER_INTERFACE, name,
                dbus_interface=PROPERTIES_INTERFACE,
                timeout=self.timeout,
            )
        except dbus.exceptions.DBusException as e:
            raise BackendError(f"reading {name} failed: {e}") from e

    def metadata(self):
        return self.get_property("Metadata")

    def playback_status(self) -> str:
        return str(self.get_property("PlaybackStatus"))

    def call(self, method: str):
        """
        Invoke a no-argument method on org.mpris.MediaPlayer2.Player.
        """
        try:
            fn = self._proxy.get_dbus_method(method, PLAYER_INTERFACE)
            fn(timeout=self.timeout)
        except dbus.exceptions.DBusException as e:
            raise BackendError(f"{method} failed: {e}") from e


def song_string(handle: Player) -> str:
    """
    Raises BackendError if the property read fails and MetadataParseError
    if the record is malformed; callers substitute the fallback text.
    """
    return parse_metadata(handle.metadata()).display()


def get_playback_status(handle: Player) -> PlaybackStatus:
    return PlaybackStatus.parse(handle.playback_status())


# ---------- connection ownership ----------

def _private_session_bus():
    return dbus.SessionBus(private=True)


class BackendConnection:
    """
    One per loop. Owns a private bus connection and the current Player
    handle, which is thrown away and re-acquired whenever a ping fails.
    """

    def __init__(self, config: BridgeConfig, bus_factory=None):
        self.config = config
        self._bus_factory = bus_factory or _private_session_bus
        self._bus = None
        self.handle: Optional[Player] = None

    def _get_bus(self):
        if self._bus is None:
            self._bus = self._bus_factory()
        return self._bus

    def _drop_bus(self):
        bus, self._bus = self._bus, None
        if bus is None:
            return
        try:
            bus.close()
        except dbus.exceptions.DBusException as e:
            log.debug("closing bus failed: %s", e)

    def acquire(self) -> Optional[Player]:
        """
        Open a handle to the player and ping it once. Returns the live
        handle or None; the caller decides when to try again.
        """
        try:
            bus = self._get_bus()
            proxy = bus.get_object(
                self.config.bus_name, self.config.object_path, introspect=False
            )
        except dbus.exceptions.DBusException as e:
            log.debug("cannot reach %s: %s", self.config.bus_name, e)
            # the bus itself may be gone; start from a fresh connection next time
            if self._bus is not None and not _is_connected(self._bus):
                self._drop_bus()
            return None

        handle = Player(proxy, timeout=self.config.call_timeout)
        if not self.is_alive(handle):
            return None
        log.info("connected to %s", self.config.bus_name)
        return handle

    def is_alive(self, handle: Optional[Player]) -> bool:
        if handle is None:
            return False
        try:
            handle.ping()
        except BackendError as e:
            log.debug("ping failed: %s", e)
            return False
        return True

    def connect(self) -> Optional[Player]:
        """
        First acquire, done once before a loop starts so its first
        iteration already has a handle to check.
        """
        self.handle = self.acquire()
        if self.handle is None:
            log.info("%s not reachable yet; will retry", self.config.bus_name)
        return self.handle

    def ensure_live(self) -> bool:
        """
        True if the current handle answers a ping. Otherwise the handle is
        replaced by a fresh acquire() and False is returned, so the caller
        skips the rest of its iteration.
        """
        if self.handle is not None and self.is_alive(self.handle):
            return True
        if self.handle is not None:
            log.info("lost connection to %s", self.config.bus_name)
        self.handle = self.acquire()
        return False

    def close(self):
        self.handle = None
        self._drop_bus()


def _is_connected(bus) -> bool:
    try:
        return bool(bus.get_is_connected())
    except (AttributeError, dbus.exceptions.DBusException):
        return False
