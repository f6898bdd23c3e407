# The bar redraws on every line we print, so the poller must stay quiet unless
# the (song, icon) pair actually changed, and must not spam the disconnected
# line while the player is gone.
import pytest

from spotbar.config import BridgeConfig, PARSE_ERROR_TEXT
from spotbar.mpris import BackendConnection
from spotbar.status import StatusPoller, emit_line

from conftest import FakeConnection, FakePlayer

SONG = "Daft Punk: Digital Love - Discovery"


def make_poller(config, connection):
    lines = []
    return StatusPoller(config, connection, emit=lines.append), lines


def test_first_tick_prints_combined_line(config, connection):
    poller, lines = make_poller(config, connection)
    poller.tick()
    assert lines == [f"{config.icons.note} {config.icons.playing} {SONG}"]


def test_unchanged_state_prints_nothing(config, connection):
    poller, lines = make_poller(config, connection)
    poller.tick()
    assert poller.tick() is None
    assert len(lines) == 1


def test_new_track_prints_again(config, connection, player):
    poller, lines = make_poller(config, connection)
    poller.tick()
    player.metadata_value = {"xesam:artist": ["Daft Punk"], "xesam:title": "One More Time"}
    poller.tick()
    assert lines[-1].endswith("Daft Punk: One More Time - Unknown album")
    assert len(lines) == 2


def test_icon_transitions_are_counted_once(config, connection, player):
    poller, lines = make_poller(config, connection)
    sequence = ["Playing", "Playing", "Paused", "Stopped", "Stopped", "Playing"]
    emitted_at = []
    for i, status in enumerate(sequence):
        player.status = status
        if poller.tick() is not None:
            emitted_at.append(i)

    # index 0 only establishes the initial state
    assert emitted_at == [0, 2, 3, 5]
    assert lines[1:] == [
        f"{config.icons.note} {config.icons.paused} {SONG}",
        config.disconnected_line(),
        f"{config.icons.note} {config.icons.playing} {SONG}",
    ]


@pytest.mark.parametrize("status", ["Stopped", "Buffering"])
def test_stopped_or_unknown_hides_song(config, connection, player, status):
    player.status = status
    poller, lines = make_poller(config, connection)
    poller.tick()
    assert lines == [f"{config.icons.app} {config.icons.stopped}"]


def test_status_error_maps_to_stopped(config, connection, player):
    player.fail_status = True
    poller, lines = make_poller(config, connection)
    poller.tick()
    assert lines == [config.disconnected_line()]
    assert poller.state.icon == config.icons.stopped


def test_metadata_error_uses_fallback_text(config, connection, player):
    player.metadata_value = {"xesam:title": 123}
    poller, lines = make_poller(config, connection)
    poller.tick()
    assert lines == [f"{config.icons.note} {config.icons.playing} {PARSE_ERROR_TEXT}"]


def test_metadata_read_error_uses_fallback_text(config, connection, player):
    player.fail_metadata = True
    poller, lines = make_poller(config, connection)
    poller.tick()
    assert poller.state.song == PARSE_ERROR_TEXT


def test_disconnected_line_is_edge_triggered(config):
    conn = FakeConnection(handle=FakePlayer())
    poller, lines = make_poller(config, conn)
    poller.tick()

    conn.live = False
    for _ in range(5):
        poller.tick()
    assert lines[1:] == [config.disconnected_line()]

    conn.live = True
    poller.tick()
    assert len(lines) == 3
    assert lines[-1] == f"{config.icons.note} {config.icons.playing} {SONG}"


def test_never_connected_prints_disconnected_once(config):
    poller, lines = make_poller(config, FakeConnection(handle=None))
    poller.tick()
    poller.tick()
    assert lines == [config.disconnected_line()]


def test_run_stops_with_event(config, connection, mocker):
    event = mocker.MagicMock()
    event.wait.side_effect = [False, False, True]
    poller, lines = make_poller(config, connection)
    poller.run(event)
    event.wait.assert_called_with(config.poll_interval)
    assert len(lines) == 1


def test_emit_line_writes_whole_line(capsys):
    emit_line("hello")
    assert capsys.readouterr().out == "hello\n"


def test_first_tick_after_connect_shows_playing_track(mocker):
    proxy = mocker.MagicMock()
    proxy.Get.side_effect = lambda _iface, name, **_kw: {
        "PlaybackStatus": "Playing",
        "Metadata": {"xesam:artist": ["Daft Punk"], "xesam:title": "Digital Love",
                     "xesam:album": "Discovery"},
    }[name]
    bus = mocker.MagicMock()
    bus.get_object.return_value = proxy
    config = BridgeConfig()
    connection = BackendConnection(config, bus_factory=mocker.MagicMock(return_value=bus))
    poller, lines = make_poller(config, connection)

    connection.connect()
    poller.tick()
    assert lines == [f"{config.icons.note} {config.icons.playing} {SONG}"]


def test_run_connects_before_first_poll(config, mocker):
    conn = FakeConnection(handle=FakePlayer())
    event = mocker.MagicMock()

    def wait(_timeout):
        assert conn.connect_calls == 1
        return True

    event.wait.side_effect = wait
    poller, _ = make_poller(config, conn)
    poller.run(event)
    event.wait.assert_called_once_with(config.poll_interval)
