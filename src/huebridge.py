# Hue Animator: Cycling Philips Hue lights through randomized effects.
# Copyright (C) 2014  John Eriksson, Arvid Fahlström Myrman, Jonas Höglund,
#                     Hannes Leskelä, Christian Lidström, Mattias Palo,
#                     Markus Videll, Tomas Wickman, Emil Öhman.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

"""A small blocking Python library for controlling lights through a Philips Hue bridge.

The Hue API is a JSON API served over plain HTTP. `HTTPTransport` sends the requests
using Tornado's blocking `tornado.httpclient.HTTPClient`, while `Bridge` turns light
operations into validated, address-qualified calls on such a transport. Example usage::

    connection = BridgeConnection("192.168.0.105", "mysecretusername")
    bridge = Bridge(connection)
    bridge.turn_on("1")
    bridge.set_color("1", hue=46920, brightness=254, saturation=254)

Any object with ``get(url)`` and ``put(url, data)`` methods returning decoded JSON
(and raising `errorcodes.TransportError` on failure) can stand in for `HTTPTransport`.
"""
import collections
import logging
import urllib.parse

import tornado.escape
import tornado.httpclient

import errorcodes

HUE_RANGE = (0, 65535)
BRIGHTNESS_RANGE = (0, 254)
SATURATION_RANGE = (0, 254)


class BridgeConnection(collections.namedtuple("BridgeConnection", ["address", "token"])):
    """Immutable bridge identity: the address (host, optionally with a port)
    and the API token (the Hue 'username').

    :raises: :exc:`errorcodes.ConfigError` if either field is empty.
    """
    __slots__ = ()

    def __new__(cls, address, token):
        for field, value in (("address", address), ("token", token)):
            if not isinstance(value, str) or not value:
                raise errorcodes.ConfigError(errorcodes.E_INVALID_CONNECTION, field=field)
        return super().__new__(cls, address, token)

    def url(self, path):
        """Return the full URL for an API path such as ``/lights``."""
        return "http://{}/api/{}{}".format(self.address, self.token, path)

    def __repr__(self):
        # keep the token out of log files
        return "BridgeConnection(address={!r}, token='***')".format(self.address)


class HTTPTransport:
    """Sends GET and JSON PUT requests and decodes the JSON responses.

    :param float timeout: The time in seconds to wait for any request to complete.
    :param client: A `tornado.httpclient.HTTPClient`; one is created if not supplied.
    """

    def __init__(self, timeout=2, client=None):
        self.timeout = timeout
        self.client = client if client is not None else tornado.httpclient.HTTPClient()

    def get(self, url):
        return self.request("GET", url)

    def put(self, url, data):
        if not isinstance(data, dict) or len(data) == 0:
            raise errorcodes.TransportError(errorcodes.E_INVALID_PAYLOAD, payload=data)
        return self.request("PUT", url, data)

    def request(self, method, url, body=None):
        """Send an HTTP request, automatically parsing the returned JSON.

        :param str method: HTTP request method (GET/PUT).
        :param str url: The absolute URL to send this request to.
        :param dict body: Request body as a Python dictionary. The dictionary
                          will be converted to a JSON string.
        :return: The decoded response body.
        :raises: :exc:`errorcodes.TransportError` if the request could not be sent,
                 the bridge answered with an HTTP error status, or the response
                 was not valid JSON.
        """
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise errorcodes.TransportError(errorcodes.E_INVALID_URL, url=url)

        headers = None
        if body is not None:
            body = tornado.escape.json_encode(body)
            headers = {"Content-Type": "application/json"}

        logging.debug("Sending %s %s request: %s", method, url, body)
        try:
            response = self.client.fetch(url, method=method, body=body, headers=headers,
                                         request_timeout=self.timeout)
        except tornado.httpclient.HTTPError as e:
            # timeouts and aborted connections come back as code 599 with no response
            if e.response is None:
                raise errorcodes.TransportError(errorcodes.E_REQUEST_FAILED, method=method,
                                                url=url, reason=e) from e
            raise errorcodes.TransportError(errorcodes.E_HTTP_ERROR, code=e.code,
                                            method=method, url=url) from e
        except OSError as e:
            raise errorcodes.TransportError(errorcodes.E_REQUEST_FAILED, method=method,
                                            url=url, reason=e) from e

        try:
            res = tornado.escape.json_decode(response.body)
        except (ValueError, UnicodeDecodeError) as e:
            raise errorcodes.TransportError(errorcodes.E_INVALID_RESPONSE, code=response.code,
                                            method=method, url=url, reason=e) from e
        logging.debug("Got %s %s response: %s", method, url, res)
        return res

    def close(self):
        self.client.close()


class Bridge:
    """Instances of `Bridge` handle a connection to a specific Hue bridge.

    The connection is validated once, when the bridge is created, by asking the
    bridge for its configuration; every light operation afterwards validates its
    input before touching the network. Failures are logged before being raised,
    and raised unchanged.
    """

    def __init__(self, connection, transport=None, logger=None):
        """Create a new Bridge object.

        :param BridgeConnection connection: Address and token of the bridge.
        :param transport: Object sending the HTTP requests; defaults to a new `HTTPTransport`.
        :param logging.Logger logger: Where failures are reported; defaults to this
                                      module's logger.
        :raises: :exc:`errorcodes.BridgeConnectionError` if the bridge could not be
                 reached or did not identify itself.
        """
        self.connection = connection
        self.transport = transport if transport is not None else HTTPTransport()
        self.logger = logger if logger is not None else logging.getLogger(__name__)

        self.name = None
        self.mac = None
        self.ipaddress = None
        self.apiversion = None

        self._validate_connection()

    def _validate_connection(self):
        try:
            info = self.transport.get(self.connection.url("/config"))
        except errorcodes.TransportError as e:
            self.logger.error("Couldn't reach bridge at %s: %s", self.connection.address, e)
            raise errorcodes.BridgeConnectionError(errorcodes.E_BRIDGE_NOT_FOUND,
                                                   address=self.connection.address,
                                                   reason=e) from e

        if not isinstance(info, dict) or 'name' not in info:
            self.logger.error("Invalid response from Hue bridge at %s: %s",
                              self.connection.address, info)
            raise errorcodes.BridgeConnectionError(
                errorcodes.E_BRIDGE_NOT_FOUND, address=self.connection.address,
                reason=errorcodes.E_NOT_A_BRIDGE.format(response=info))

        self.name = info['name']
        self.mac = info.get('mac')
        self.ipaddress = info.get('ipaddress')
        self.apiversion = info.get('apiversion')
        self.logger.info("Connected to bridge %s at %s", self.name, self.connection.address)

    def _send(self, method, path, body=None):
        url = self.connection.url(path)
        if method == "GET":
            res = self.transport.get(url)
        else:
            res = self.transport.put(url, body)

        if isinstance(res, list):
            for item in res:
                if isinstance(item, dict) and "error" in item:
                    if not isinstance(item["error"], dict):
                        raise errorcodes.TransportError(
                            errorcodes.E_INVALID_RESPONSE, method=method, url=url,
                            reason="unexpected error entry {!r}".format(item["error"]))
                    raise errorcodes.HUE_ERRORS.get(item["error"].get("type"),
                                                    errorcodes.HueAPIError)(item)
        return res

    def _logged(self, description, func, *args):
        try:
            return func(*args)
        except Exception as e: # pylint: disable=broad-except
            self.logger.error("Failed to %s: %s", description, e)
            raise

    def _validate_light_id(self, light_id):
        if not isinstance(light_id, str) or not light_id:
            raise errorcodes.ValidationError(errorcodes.E_INVALID_LIGHT_ID,
                                             field="light_id", light_id=light_id)

    def _set_state(self, light_id, state):
        self._validate_light_id(light_id)
        return self._send("PUT", "/lights/{}/state".format(light_id), state)

    def turn_on(self, light_id):
        """Turn a light on.

        :param str light_id: ID of the light.
        :return: The response from the bridge, converted from JSON.
        :raises: :exc:`errorcodes.ValidationError` if ``light_id`` is not a non-empty string.

                 :exc:`errorcodes.TransportError` if the request failed.
        """
        return self._logged("turn on light {}".format(light_id),
                            self._set_state, light_id, {"on": True})

    def turn_off(self, light_id):
        """Turn a light off. See `turn_on`."""
        return self._logged("turn off light {}".format(light_id),
                            self._set_state, light_id, {"on": False})

    def set_color(self, light_id, hue, brightness, saturation):
        """Set the hue, brightness and saturation of a light.

        Values are checked in the order light ID, hue, brightness, saturation;
        the first invalid one is reported and nothing is sent to the bridge.

        :param str light_id: ID of the light.
        :param int hue: Hue, 0-65535.
        :param int brightness: Brightness, 0-254.
        :param int saturation: Saturation, 0-254.
        :return: The response from the bridge, converted from JSON.
        :raises: :exc:`errorcodes.ValidationError` if any value is invalid.

                 :exc:`errorcodes.TransportError` if the request failed.
        """
        def send():
            self._validate_light_id(light_id)
            for field, value, (low, high), message in (
                    ("hue", hue, HUE_RANGE, errorcodes.E_INVALID_HUE),
                    ("brightness", brightness, BRIGHTNESS_RANGE, errorcodes.E_INVALID_BRIGHTNESS),
                    ("saturation", saturation, SATURATION_RANGE, errorcodes.E_INVALID_SATURATION)):
                if type(value) is not int or not low <= value <= high:
                    raise errorcodes.ValidationError(message, field=field, value=value)

            return self._send("PUT", "/lights/{}/state".format(light_id),
                              {"hue": hue, "bri": brightness, "sat": saturation})

        return self._logged("set light color for {}".format(light_id), send)

    def list_lights(self):
        """Fetch all lights known to the bridge.

        :return: A dictionary mapping light IDs to light descriptors.
        :raises: :exc:`errorcodes.TransportError` if the request failed.
        """
        return self._logged("retrieve available lights", self._send, "GET", "/lights")

    def get_light(self, light_id):
        """Fetch the descriptor of a single light, including its current ``state``."""
        def send():
            self._validate_light_id(light_id)
            return self._send("GET", "/lights/{}".format(light_id))

        return self._logged("get status of light {}".format(light_id), send)
