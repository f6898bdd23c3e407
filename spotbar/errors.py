# spotbar/errors.py
# Exceptions shared by the status poller, the command server and the CLI.


class BridgeError(Exception):
    """Base class for everything spotbar raises on purpose."""


class BackendError(BridgeError):
    """
    The player could not be reached over D-Bus (not running, bus gone,
    call timed out). Loops recover by re-acquiring the connection.
    """


class MetadataParseError(BridgeError):
    """A metadata field came back with an unexpected shape."""


class CommandDecodeError(BridgeError, ValueError):
    """A datagram did not name one of the known commands."""


class CommandExecutionError(BridgeError):
    def __init__(self, command, cause=None):
        super().__init__(f"could not execute {command}: {cause}")
        self.command = command
        self.cause = cause


class InvalidPortError(BridgeError, ValueError):
    pass


class ConfigError(BridgeError):
    pass
