# spotbar/commands.py
# The six control commands a bar button can send, their wire encoding,
# and how each maps onto a Player method.
#
# Wire format: one UDP datagram holding a JSON string, e.g. b'"Next"'.

import json
from enum import Enum

from .errors import BackendError, CommandDecodeError, CommandExecutionError


class Command(Enum):
    NEXT = "Next"
    PREVIOUS = "Previous"
    PAUSE = "Pause"
    PLAY_PAUSE = "PlayPause"
    STOP = "Stop"
    PLAY = "Play"

    def __str__(self):
        return self.value


# command -> org.mpris.MediaPlayer2.Player method
_PLAYER_METHODS = {
    Command.NEXT: "Next",            # no-op when there is no next track
    Command.PREVIOUS: "Previous",    # rewinds when there is no previous track
    Command.PAUSE: "Pause",
    Command.PLAY_PAUSE: "PlayPause",
    Command.STOP: "Stop",
    Command.PLAY: "Play",
}

_BY_NAME = {c.value: c for c in Command}


def from_name(name: str) -> Command:
    try:
        return _BY_NAME[name]
    except (KeyError, TypeError):
        raise CommandDecodeError(f"unknown command {name!r}") from None


def decode(payload: bytes) -> Command:
    """
    Parse a datagram. Only a JSON string naming one of the commands is
    accepted; anything else raises CommandDecodeError.
    """
    try:
        value = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise CommandDecodeError(f"undecodable payload: {e}") from e
    if not isinstance(value, str):
        raise CommandDecodeError(f"expected a JSON string, got {type(value).__name__}")
    return from_name(value)


def encode(command: Command) -> bytes:
    return json.dumps(command.value).encode("utf-8")


def execute(command: Command, handle):
    """
    Send the command to the player. One bus call, nothing else.
    """
    method = _PLAYER_METHODS[command]
    try:
        handle.call(method)
    except BackendError as e:
        raise CommandExecutionError(command, e) from e
