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

"""
Error messages are stored as errorcodes.E_ERROR_TYPE, e.g. errorcodes.E_INVALID_JSON,
and formatted into the exceptions below.

The exceptions come in two families:

* `FatalError` -- raised while constructing a `Bridge` or an `AnimationEngine`.
  The object in question is not usable afterwards.
* `RecoverableError` -- raised by individual light operations at runtime.
  The animation loop logs these and carries on.

Every exception carries an ``errorcode`` attribute (``"INVALID_JSON"`` etc.)
so callers can tell failures apart without parsing the message.
"""


E_INVALID_JSON = "invalid JSON in animation configuration: {reason}"
E_INVALID_FORMAT = "animation configuration was in an unexpected format: {reason}"
E_DUPLICATE_KEY = "key '{key}' is defined more than once"
E_NO_EFFECTS = "animation configuration does not define any effects"
E_MISSING_KEY = "missing key '{key}' in animation '{effect}'"
E_MISSING_SUBKEY = "missing '{subkey}' for '{key}' in animation '{effect}'"
E_NOT_INTEGER = "'{subkey}' for '{key}' in animation '{effect}' must be an integer"
E_MIN_GREATER_THAN_MAX = "'min' ({min}) must not be greater than 'max' ({max}) " \
    "for '{key}' in animation '{effect}'"
E_NO_LIGHTS = "at least one light must be configured"
E_INVALID_DURATION = "invalid durations: minimum {min_duration} and maximum {max_duration}; " \
    "both must be non-negative integers with minimum <= maximum"
E_INVALID_SETTING = "invalid value {value!r} for {name}: {reason}"
E_MISSING_SETTING = "{name} is not set"
E_INVALID_CONNECTION = "bridge {field} must be a non-empty string"
E_UNREADABLE_FILE = "unable to load animation configuration file {path}: {reason}"

E_BRIDGE_NOT_FOUND = "bridge validation failed for {address}: {reason}"
E_NOT_A_BRIDGE = "invalid response from Hue bridge: {response}"

E_INVALID_LIGHT_ID = "invalid light ID: {light_id!r}"
E_INVALID_HUE = "invalid hue value: {value!r}. Expected range is 0 to 65535."
E_INVALID_BRIGHTNESS = "invalid brightness value: {value!r}. Expected range is 0 to 254."
E_INVALID_SATURATION = "invalid saturation value: {value!r}. Expected range is 0 to 254."

E_INVALID_URL = "invalid URL: {url}"
E_INVALID_PAYLOAD = "invalid payload: data must be a non-empty object, got {payload!r}"
E_REQUEST_FAILED = "{method} request to {url} failed: {reason}"
E_HTTP_ERROR = "{method} request to {url} returned HTTP error {code}"
E_INVALID_RESPONSE = "invalid JSON response for {method} request to {url}: {reason}"
E_HUE_API_ERROR = "{address}: {description}"


class AnimatorException(Exception):
    """Base class for every error raised by the animator.

    :param str message: One of the ``E_*`` templates in this module.
    :param kwargs: Values substituted into ``message``; also kept
                   as ``details`` for callers that want them.
    """
    errorcode = None

    def __init__(self, message, **kwargs):
        super().__init__(message.format(**kwargs))
        self.details = kwargs

    @property
    def message(self):
        return self.args[0]


class FatalError(AnimatorException):
    pass

class RecoverableError(AnimatorException):
    pass


class ConfigError(FatalError):
    errorcode = "CONFIG_ERROR"

class BridgeConnectionError(FatalError):
    errorcode = "BRIDGE_NOT_FOUND"


class ValidationError(RecoverableError):
    errorcode = "INVALID_VALUE"

    def __init__(self, message, field=None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field


class TransportError(RecoverableError):
    errorcode = "TRANSPORT_ERROR"

    def __init__(self, message, code=None, **kwargs):
        super().__init__(message, code=code, **kwargs)
        self.code = code


class HueAPIError(TransportError):
    """An error reported by the Hue API itself, inside a successful HTTP response."""
    errorcode = "HUE_API_ERROR"

    def __init__(self, error):
        super().__init__(E_HUE_API_ERROR,
                         address=error["error"].get("address"),
                         description=error["error"].get("description"))
        self.address = error["error"].get("address")
        self.description = error["error"].get("description")
        self.type = error["error"].get("type")

class UnauthorizedUserError(HueAPIError):
    pass
class ResourceNotAvailableError(HueAPIError):
    pass
class InvalidValueError(HueAPIError):
    pass
class DeviceIsOffError(HueAPIError):
    pass

HUE_ERRORS = {
    1: UnauthorizedUserError,
    3: ResourceNotAvailableError,
    7: InvalidValueError,
    201: DeviceIsOffError,
}
