# spotbar/status.py
# The status loop: poll the player, build the bar line, print it only when
# it changed.

import logging
import sys
import threading
from dataclasses import dataclass

from . import mpris
from .config import BridgeConfig, PARSE_ERROR_TEXT
from .errors import BackendError, MetadataParseError
from .mpris import PlaybackStatus

log = logging.getLogger(__name__)

_stdout_lock = threading.Lock()


def emit_line(line: str):
    """
    Write one protocol line to stdout. Both loops share stdout; the lock
    keeps a single line from being torn, ordering between loops is free.
    """
    with _stdout_lock:
        sys.stdout.write(line + "\n")
        sys.stdout.flush()


@dataclass
class DisplayState:
    song: str = ""
    icon: str = ""


class StatusPoller:
    def __init__(self, config: BridgeConfig, connection: mpris.BackendConnection, emit=emit_line):
        self.config = config
        self.connection = connection
        self.emit = emit
        self.state = DisplayState()

    def _icon_for(self, status: PlaybackStatus) -> str:
        icons = self.config.icons
        if status is PlaybackStatus.PLAYING:
            return icons.playing
        if status is PlaybackStatus.PAUSED:
            return icons.paused
        return icons.stopped

    def _read_song(self, handle) -> str:
        try:
            return mpris.song_string(handle)
        except (BackendError, MetadataParseError) as e:
            log.debug("metadata unavailable: %s", e)
            return PARSE_ERROR_TEXT

    def _read_icon(self, handle) -> str:
        try:
            return self._icon_for(mpris.get_playback_status(handle))
        except BackendError as e:
            log.debug("playback status unavailable: %s", e)
            return self.config.icons.stopped

    def tick(self):
        """
        One poll without the sleep. Returns the line it emitted, or None.
        """
        stopped = self.config.icons.stopped

        if not self.connection.ensure_live():
            # edge-triggered: print the disconnected line once, not every tick
            if self.state.icon != stopped:
                self.state.icon = stopped
                line = self.config.disconnected_line()
                self.emit(line)
                return line
            return None

        handle = self.connection.handle
        song = self._read_song(handle)
        icon = self._read_icon(handle)

        if song == self.state.song and icon == self.state.icon:
            return None

        self.state.song = song
        self.state.icon = icon
        if icon == stopped:
            line = self.config.disconnected_line()
        else:
            line = self.config.playing_line(icon, song)
        self.emit(line)
        return line

    def run(self, stop_event=None):
        stop_event = stop_event or threading.Event()
        self.connection.connect()
        log.debug("status loop started (every %.1fs)", self.config.poll_interval)
        while not stop_event.wait(self.config.poll_interval):
            self.tick()
