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

"""Process configuration, read once at startup from the environment.

Values may also be placed in a ``.env`` file; variables already present in the
environment take precedence over the file.
"""
import logging
import os

import dotenv

import errorcodes
import huebridge

DEFAULTS = {
    "DEV": "false",
    "MIN_DURATION": "10",
    "MAX_DURATION": "30",
    "ANIMATION_FILE": "animation.json",
    "REQUEST_TIMEOUT": "2",
}

LIGHT_SEPARATOR = "|"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"", "0", "false", "no", "off"}


def parse_bool(name, value):
    if value.strip().lower() in _TRUE:
        return True
    if value.strip().lower() in _FALSE:
        return False
    raise errorcodes.ConfigError(errorcodes.E_INVALID_SETTING, name=name, value=value,
                                 reason="expected a boolean such as 'true' or '0'")


def parse_int(name, value):
    try:
        return int(value.strip())
    except ValueError:
        raise errorcodes.ConfigError(errorcodes.E_INVALID_SETTING, name=name, value=value,
                                     reason="expected an integer")


def parse_lights(value):
    return [light.strip() for light in value.split(LIGHT_SEPARATOR)]


class AnimatorConfig:
    """All settings needed to start the animator.

    Instances are plain value holders; `from_env` is the usual way to build one.
    """

    def __init__(self, bridge_address, token, lights, min_duration, max_duration,
                 animation_file=DEFAULTS["ANIMATION_FILE"], request_timeout=2.0):
        self.bridge_address = bridge_address
        self.token = token
        self.lights = list(lights)
        self.min_duration = min_duration
        self.max_duration = max_duration
        self.animation_file = animation_file
        self.request_timeout = request_timeout

    @property
    def connection(self):
        return huebridge.BridgeConnection(self.bridge_address, self.token)

    @classmethod
    def from_env(cls, environ=None, env_file=None):
        """Build the configuration from environment variables.

        :param dict environ: Variables to read; defaults to `os.environ`.
        :param str env_file: A ``.env`` file to read as well. If `None`, a ``.env``
                             file is searched for from the current directory upwards;
                             an empty string disables reading any file.
        :raises: :exc:`errorcodes.ConfigError` if a variable is missing or malformed.
        """
        values = dict(DEFAULTS)
        if env_file is None:
            env_file = dotenv.find_dotenv(usecwd=True)
        if env_file:
            logging.info("Reading environment file (%s)", env_file)
            values.update({k: v for k, v in dotenv.dotenv_values(env_file).items()
                           if v is not None})
        values.update(os.environ if environ is None else environ)

        def require(name):
            if not values.get(name):
                raise errorcodes.ConfigError(errorcodes.E_MISSING_SETTING, name=name)
            return values[name]

        dev = parse_bool("DEV", values["DEV"])
        address = require("HUE_BRIDGE_LOCAL_IP" if dev else "HUE_BRIDGE_REMOTE_IP")
        logging.info("Using %s bridge address %s", "local" if dev else "remote", address)

        try:
            timeout = float(values["REQUEST_TIMEOUT"])
        except ValueError:
            raise errorcodes.ConfigError(errorcodes.E_INVALID_SETTING, name="REQUEST_TIMEOUT",
                                         value=values["REQUEST_TIMEOUT"],
                                         reason="expected a number of seconds")

        return cls(bridge_address=address,
                   token=require("HUE_TOKEN"),
                   lights=parse_lights(require("LIGHTS")),
                   min_duration=parse_int("MIN_DURATION", values["MIN_DURATION"]),
                   max_duration=parse_int("MAX_DURATION", values["MAX_DURATION"]),
                   animation_file=values["ANIMATION_FILE"],
                   request_timeout=timeout)

    def __repr__(self):
        return "AnimatorConfig(bridge_address={!r}, lights={!r}, min_duration={!r}, " \
            "max_duration={!r}, animation_file={!r})".format(
                self.bridge_address, self.lights, self.min_duration, self.max_duration,
                self.animation_file)
