# spotbar/server.py
# UDP command channel: bar buttons -> datagram -> Player method.
import logging
import socket
import threading
import time
from typing import Optional

from . import commands, mpris
from .commands import Command
from .config import MIN_PORT, BridgeConfig
from .errors import BackendError, CommandDecodeError, CommandExecutionError
from .mpris import PlaybackStatus

log = logging.getLogger(__name__)

HIGHEST_PORT = 65535


class CommandServer:
    def __init__(self, config: BridgeConfig, connection: mpris.BackendConnection,
                 port: Optional[int] = None, sleep=time.sleep):
        self.config = config
        self.connection = connection
        self.requested_port = port if port is not None else config.port
        self.port: Optional[int] = None
        self.sock: Optional[socket.socket] = None
        self._sleep = sleep

    # ---------- binding ----------

    def bind(self) -> socket.socket:
        """
        Bind host:port, walking upward one port at a time until a bind
        succeeds. Several bars (one per monitor) each start their own bridge,
        so the first one keeps the configured port and the rest move up.
        """
        port = self.requested_port
        while True:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                sock.bind((self.config.host, port))
            except (OSError, OverflowError) as e:
                sock.close()
                next_port = port + 1 if port < HIGHEST_PORT else MIN_PORT + 1
                log.info("cannot bind %s:%d (%s); trying %d", self.config.host, port, e, next_port)
                port = next_port
                self._sleep(self.config.bind_retry_delay)
                continue

            self.sock = sock
            self.port = port
            if port != self.requested_port:
                log.warning("port %d busy; listening on %d instead", self.requested_port, port)
            else:
                log.info("listening on %s:%d", self.config.host, port)
            return sock

    def close(self):
        if self.sock is not None:
            self.sock.close()
            self.sock = None

    # ---------- per-datagram handling ----------

    def handle_datagram(self, data: bytes) -> Optional[Command]:
        """
        Decode, check preconditions, dispatch. Returns the command that was
        executed, or None when the datagram was dropped.
        """
        try:
            command = commands.decode(data)
        except CommandDecodeError as e:
            log.debug("dropping datagram: %s", e)
            return None

        if not self.connection.ensure_live():
            log.debug("player not reachable; dropping %s", command)
            self._sleep(self.config.reconnect_delay)
            return None

        handle = self.connection.handle
        try:
            status = mpris.get_playback_status(handle)
        except BackendError as e:
            log.debug("no playback status (%s); dropping %s", e, command)
            return None
        if status is PlaybackStatus.STOPPED:
            log.debug("player stopped; dropping %s", command)
            return None

        try:
            commands.execute(command, handle)
        except CommandExecutionError as e:
            log.error("%s", e)
            if self.config.exit_on_command_error:
                raise
            return None

        log.debug("executed %s", command)
        return command

    def serve_forever(self, stop_event=None):
        if self.sock is None:
            self.bind()
        stop_event = stop_event or threading.Event()
        self.connection.connect()
        while not stop_event.is_set():
            data, addr = self.sock.recvfrom(self.config.recv_size)
            log.debug("datagram from %s:%d (%d bytes)", addr[0], addr[1], len(data))
            self.handle_datagram(data)


def send_command(command: Command, host: str, port: int):
    """
    Fire one command at a running bridge. No reply is ever sent back.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.sendto(commands.encode(command), (host, port))
