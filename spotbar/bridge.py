# spotbar/bridge.py
# Wires the two loops together. Each loop gets its own BackendConnection
# (and so its own bus connection); they never talk to each other.

import logging
import signal
import threading

from .config import BridgeConfig
from .mpris import BackendConnection
from .server import CommandServer
from .status import StatusPoller

log = logging.getLogger(__name__)


class Supervisor:
    """
    Runs the loops as daemon threads and waits until one of them dies or
    the process is asked to stop. The first crash ends the process right
    away instead of waiting to join the healthy loop.
    """

    def __init__(self):
        self.stop_event = threading.Event()
        self.failures = []
        self.threads = []

    def _run_task(self, name, target):
        try:
            target()
        except Exception:
            log.exception("%s loop crashed", name)
            self.failures.append(name)
        else:
            if not self.stop_event.is_set():
                log.error("%s loop exited unexpectedly", name)
                self.failures.append(name)
        finally:
            self.stop_event.set()

    def spawn(self, name, target):
        t = threading.Thread(target=self._run_task, args=(name, target), name=name, daemon=True)
        self.threads.append(t)
        t.start()
        return t

    def request_stop(self, signum=None, frame=None):
        if signum is not None:
            log.info("received signal %d; shutting down", signum)
        self.stop_event.set()

    def wait(self) -> int:
        self.stop_event.wait()
        return 1 if self.failures else 0


def run(config: BridgeConfig, port=None, install_signals=True) -> int:
    """
    Start the status loop and the command server. Returns the process exit
    status: 0 after SIGINT/SIGTERM, 1 if a loop crashed.
    """
    supervisor = Supervisor()
    if install_signals:
        signal.signal(signal.SIGINT, supervisor.request_stop)
        signal.signal(signal.SIGTERM, supervisor.request_stop)

    poller = StatusPoller(config, BackendConnection(config))
    server = CommandServer(config, BackendConnection(config), port=port)

    supervisor.spawn("command-server", lambda: server.serve_forever(supervisor.stop_event))
    supervisor.spawn("status-poller", lambda: poller.run(supervisor.stop_event))

    code = supervisor.wait()
    server.close()
    return code
