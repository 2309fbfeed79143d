"""Test the command-line entry point"""
import json
import signal
import threading

import pytest

import animator
from conftest import FakeTransport


@pytest.fixture
def environment(monkeypatch, tmp_path, effects):
    for name in ("DEV", "HUE_BRIDGE_LOCAL_IP", "REQUEST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    animation_file = tmp_path / "animation.json"
    animation_file.write_text(json.dumps(effects))
    monkeypatch.setenv("HUE_BRIDGE_REMOTE_IP", "192.168.0.105")
    monkeypatch.setenv("HUE_TOKEN", "mytoken")
    monkeypatch.setenv("LIGHTS", "1|2")
    monkeypatch.setenv("MIN_DURATION", "1")
    monkeypatch.setenv("MAX_DURATION", "1")
    monkeypatch.setenv("ANIMATION_FILE", str(animation_file))
    return tmp_path


def run_main(environment, *args, transport=None):
    argv = ["--env-file", "", "--logging-conf", str(environment / "missing.conf")]
    return animator.main(argv + list(args), transport=transport or FakeTransport())


def test_once_plays_one_effect(environment):
    transport = FakeTransport()
    assert run_main(environment, "--once", transport=transport) == 0
    puts = transport.light_calls()
    assert puts[:2] == [("PUT", "/lights/1/state", {"on": True}),
                        ("PUT", "/lights/2/state", {"on": True})]
    assert len(puts) == 4


def test_list_lights(environment, capsys):
    transport = FakeTransport({("GET", "/lights"): {
        "1": {"name": "Hue Lamp 1", "state": {"on": True}},
        "2": {"name": "Hue Lamp 2", "state": {"on": False}},
    }})
    assert run_main(environment, "--list-lights", transport=transport) == 0
    out = capsys.readouterr().out
    assert "Hue Lamp 1" in out and "Hue Lamp 2" in out
    assert transport.light_calls() == [("GET", "/lights", None)]


def test_list_lights_in_numeric_order(environment, capsys):
    transport = FakeTransport({("GET", "/lights"): {
        "10": {"name": "Porch", "state": {"on": True}},
        "2": {"name": "Kitchen", "state": {"on": True}},
        "hall": {"name": "Hallway", "state": {"on": False}},
        "1": {"name": "Desk", "state": {"on": False}},
    }})
    assert run_main(environment, "--list-lights", transport=transport) == 0
    rows = capsys.readouterr().out.splitlines()[2:]
    assert [row.split()[0] for row in rows] == ["1", "2", "10", "hall"]


class ClosingTransport(FakeTransport):
    instances = []

    def __init__(self, timeout):
        super().__init__()
        self.timeout = timeout
        self.closed = False
        ClosingTransport.instances.append(self)

    def close(self):
        self.closed = True


@pytest.fixture
def default_transport(monkeypatch):
    ClosingTransport.instances = []
    monkeypatch.setattr(animator.huebridge, "HTTPTransport", ClosingTransport)
    return ClosingTransport.instances


@pytest.mark.parametrize("args", [["--once"], ["--list-lights"]])
def test_default_transport_is_closed(environment, default_transport, args):
    argv = ["--env-file", "", "--logging-conf", str(environment / "missing.conf")]
    assert animator.main(argv + args) == 0
    assert len(default_transport) == 1
    assert default_transport[0].closed


def test_default_transport_is_closed_after_startup_failure(environment, default_transport):
    argv = ["--env-file", "", "--logging-conf", str(environment / "missing.conf"),
            "--animation-file", str(environment / "nope.json"), "--once"]
    assert animator.main(argv) == 1
    assert default_transport[0].closed


def test_supplied_transport_is_left_open(environment):
    transport = ClosingTransport(timeout=2)
    assert run_main(environment, "--once", transport=transport) == 0
    assert not transport.closed


def test_missing_setting_aborts_startup(environment, monkeypatch, capsys):
    monkeypatch.delenv("HUE_TOKEN")
    assert run_main(environment, "--once") == 1
    assert "HUE_TOKEN is not set" in capsys.readouterr().err


def test_unidentified_bridge_aborts_startup(environment, capsys):
    transport = FakeTransport({("GET", "/config"): {}})
    assert run_main(environment, "--once", transport=transport) == 1
    assert "bridge validation failed" in capsys.readouterr().err
    assert transport.light_calls() == []


def test_missing_animation_file_aborts_startup(environment, capsys):
    transport = FakeTransport()
    assert run_main(environment, "--once", "--animation-file",
                    str(environment / "nope.json"), transport=transport) == 1
    assert "unable to load animation configuration file" in capsys.readouterr().err
    assert transport.light_calls() == []


def test_invalid_animation_file_aborts_startup(environment, capsys):
    (environment / "animation.json").write_text('{"fire": {},}')
    assert run_main(environment, "--once") == 1
    assert "invalid JSON" in capsys.readouterr().err


def test_signal_stops_after_current_effect():
    stop = threading.Event()
    previous = {s: signal.getsignal(s) for s in (signal.SIGINT, signal.SIGTERM)}
    try:
        animator.install_signal_handlers(stop)
        signal.getsignal(signal.SIGTERM)(signal.SIGTERM, None)
        assert stop.is_set()
        assert signal.getsignal(signal.SIGTERM) is signal.SIG_DFL
    finally:
        for s, handler in previous.items():
            signal.signal(s, handler)
