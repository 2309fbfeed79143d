"""Pytest configuration and shared fixtures"""
import random
import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import errorcodes
import huebridge


BRIDGE_CONFIG = {
    "name": "Philips hue",
    "mac": "00:17:88:11:f9:c2",
    "ipaddress": "192.168.0.105",
    "apiversion": "1.16.0",
}

EFFECTS = {
    "ocean": {
        "speed": {"min": 10, "max": 20},
        "hue": {"min": 40000, "max": 47000},
        "bri": {"min": 80, "max": 200},
        "sat": {"min": 200, "max": 254},
    },
    "fire": {
        "speed": {"min": 5, "max": 15},
        "hue": {"min": 0, "max": 6000},
        "bri": {"min": 120, "max": 254},
        "sat": {"min": 220, "max": 254},
    },
}


class FakeTransport:
    """Records every request and answers from a canned table.

    ``responses`` maps (method, path) to either a value to return or
    an exception to raise; unknown requests get ``[{"success": {}}]``.
    """

    def __init__(self, responses=None):
        self.responses = {("GET", "/config"): BRIDGE_CONFIG}
        self.responses.update(responses or {})
        self.calls = []

    def _answer(self, method, url, body=None):
        path = url.split("/api/mytoken", 1)[1]
        self.calls.append((method, path, body))
        res = self.responses.get((method, path), [{"success": {}}])
        if isinstance(res, Exception):
            raise res
        return res

    def get(self, url):
        return self._answer("GET", url)

    def put(self, url, data):
        return self._answer("PUT", url, data)

    def light_calls(self):
        return [c for c in self.calls if c[1] != "/config"]


@pytest.fixture
def connection():
    return huebridge.BridgeConnection("192.168.0.105", "mytoken")


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def bridge(connection, transport):
    return huebridge.Bridge(connection, transport)


@pytest.fixture
def effects():
    return EFFECTS


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def transport_error():
    return errorcodes.TransportError(errorcodes.E_REQUEST_FAILED, method="PUT",
                                     url="http://192.168.0.105/api/mytoken/lights/1/state",
                                     reason="connection refused")
