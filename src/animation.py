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

"""Randomized light animations.

.. highlight:: json

An animation configuration is a JSON object mapping effect names to effects.
Each effect gives a ``min``/``max`` range for the delay between two light updates
(``speed``, in microseconds) and for the hue, brightness and saturation of every
update::

    {
        "ocean": {
            "speed": {"min": 100000, "max": 400000},
            "hue": {"min": 40000, "max": 47000},
            "bri": {"min": 80, "max": 200},
            "sat": {"min": 200, "max": 254}
        }
    }

`AnimationEngine.run_once` picks one effect at random and applies it to every
managed light for a random number of ticks; `AnimationEngine.run` keeps doing so
until told to stop.
"""
import copy
import json
import logging
import random
import time

import jsonschema

import errorcodes

EFFECT_KEYS = ("speed", "hue", "bri", "sat")

_RANGE_SPECIFICATION = {
    "type": "object",
    "properties": {
        "min": {"type": "integer"},
        "max": {"type": "integer"},
    },
    "required": ["min", "max"]
}

_ANIMATION_SPECIFICATION = {
    "type": "object",
    "minProperties": 1,
    "additionalProperties": {
        "type": "object",
        "properties": {key: _RANGE_SPECIFICATION for key in EFFECT_KEYS},
        "required": list(EFFECT_KEYS)
    }
}

jsonschema.Draft4Validator.check_schema(_ANIMATION_SPECIFICATION)
_VALIDATOR = jsonschema.Draft4Validator(_ANIMATION_SPECIFICATION)


def _reject_duplicates(pairs):
    result = {}
    for key, value in pairs:
        if key in result:
            raise errorcodes.ConfigError(errorcodes.E_DUPLICATE_KEY, key=key)
        result[key] = value
    return result


def _schema_error(error):
    """Translate a `jsonschema.ValidationError` into a `ConfigError` naming
    the effect, key and subkey involved."""
    path = list(error.absolute_path)

    if not path:
        if error.validator == "minProperties":
            return errorcodes.ConfigError(errorcodes.E_NO_EFFECTS)
        return errorcodes.ConfigError(errorcodes.E_INVALID_FORMAT, reason=error.message)

    effect = path[0]
    if error.validator == "required":
        # the missing property is the one not present in the instance
        schema_required = error.validator_value
        missing = next(k for k in schema_required if k not in error.instance)
        if len(path) == 1:
            return errorcodes.ConfigError(errorcodes.E_MISSING_KEY, key=missing, effect=effect)
        return errorcodes.ConfigError(errorcodes.E_MISSING_SUBKEY, subkey=missing,
                                      key=path[1], effect=effect)
    if len(path) == 3 and error.validator == "type":
        return errorcodes.ConfigError(errorcodes.E_NOT_INTEGER, subkey=path[2],
                                      key=path[1], effect=effect)
    return errorcodes.ConfigError(errorcodes.E_INVALID_FORMAT,
                                  reason="{}: {}".format("/".join(str(p) for p in path),
                                                         error.message))


def validate_animations(data):
    """Check an already decoded animation configuration.

    :param dict data: Effect name -> effect mapping.
    :return: A deep copy of ``data``.
    :raises: :exc:`errorcodes.ConfigError` on the first problem found.
    """
    errors = sorted(_VALIDATOR.iter_errors(data), key=lambda e: list(map(str, e.absolute_path)))
    if errors:
        raise _schema_error(errors[0])

    for effect, properties in data.items():
        for key in EFFECT_KEYS:
            low, high = properties[key]["min"], properties[key]["max"]
            if low > high:
                raise errorcodes.ConfigError(errorcodes.E_MIN_GREATER_THAN_MAX,
                                             min=low, max=high, key=key, effect=effect)

    return copy.deepcopy(data)


def load_animations(source):
    """Parse and validate an animation configuration.

    :param str source: The configuration as JSON text.
    :return: Effect name -> effect dictionary.
    :raises: :exc:`errorcodes.ConfigError` if the JSON is malformed or
             does not describe a valid set of effects.
    """
    try:
        data = json.loads(source, object_pairs_hook=_reject_duplicates)
    except (TypeError, ValueError) as e:
        raise errorcodes.ConfigError(errorcodes.E_INVALID_JSON, reason=e) from e
    return validate_animations(data)


class AnimationEngine:
    """Applies randomly chosen effects to a fixed list of lights.

    Everything happens sequentially on the calling thread: each colour update
    is sent, then the engine sleeps for the sampled ``speed`` before moving on
    to the next light.
    """

    def __init__(self, bridge, lights, config_source, min_duration, max_duration,
                 rng=None, sleep=None, logger=None, on_error=None):
        """Initializes the `AnimationEngine`.

        :param huebridge.Bridge bridge: The bridge controlling the lights. Shared, not owned.
        :param list lights: IDs of the lights to animate, in update order.
        :param config_source: The animation configuration, either as JSON text or
                              as an already decoded dictionary.
        :param int min_duration: Minimum number of ticks an effect runs for.
        :param int max_duration: Maximum number of ticks an effect runs for.
        :param random.Random rng: Source of randomness; seed it for reproducible runs.
        :param sleep: Called with the delay in seconds between two light updates.
                      Defaults to `time.sleep`.
        :param logging.Logger logger: Where failures are reported.
        :param on_error: Called with every exception caught by `run`. Defaults to
                         printing a one-line notice.
        :raises: :exc:`errorcodes.ConfigError` if the configuration, the light list
                 or the durations are invalid.
        """
        if isinstance(config_source, (str, bytes, bytearray)):
            self.animations = load_animations(config_source)
        else:
            self.animations = validate_animations(config_source)

        lights = tuple(lights)
        if len(lights) == 0:
            raise errorcodes.ConfigError(errorcodes.E_NO_LIGHTS)
        for light in lights:
            if not isinstance(light, str) or not light:
                raise errorcodes.ConfigError(errorcodes.E_INVALID_LIGHT_ID, light_id=light)

        if not all(type(d) is int and d >= 0 for d in (min_duration, max_duration)) \
                or min_duration > max_duration:
            raise errorcodes.ConfigError(errorcodes.E_INVALID_DURATION,
                                         min_duration=min_duration, max_duration=max_duration)

        self.bridge = bridge
        self._lights = lights
        self.min_duration = min_duration
        self.max_duration = max_duration
        self.rng = rng if rng is not None else random.Random()
        self.sleep = sleep if sleep is not None else time.sleep
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.on_error = on_error if on_error is not None else _print_error

    @property
    def lights(self):
        return self._lights

    @property
    def effect_names(self):
        return tuple(self.animations)

    def _sample(self, effect, key):
        return self.rng.randint(effect[key]["min"], effect[key]["max"])

    def run_once(self):
        """Load a random effect and play it on every light.

        :return: A ``(effect_name, duration)`` tuple.
        :raises: Any exception raised by the bridge; nothing is caught here.
        """
        for light in self._lights:
            self.bridge.turn_on(light)

        name = self.rng.choice(self.effect_names)
        effect = self.animations[name]
        duration = self.rng.randint(self.min_duration, self.max_duration)
        self.logger.info("Playing effect '%s' for %s ticks", name, duration)

        for tick in range(duration):
            for light in self._lights:
                speed = self._sample(effect, "speed")
                hue = self._sample(effect, "hue")
                bri = self._sample(effect, "bri")
                sat = self._sample(effect, "sat")
                self.logger.debug("Tick %s, light %s: hue %s, bri %s, sat %s",
                                  tick, light, hue, bri, sat)
                self.bridge.set_color(light, hue, bri, sat)
                self.sleep(speed / 1000000)

        return name, duration

    def run(self, stop_event=None, max_iterations=None):
        """Keep playing random effects.

        A failing iteration is logged and reported to ``on_error``, after which
        the next iteration starts right away.

        :param threading.Event stop_event: When set, the loop exits before starting
                                           the next iteration. Runs forever if `None`.
        :param int max_iterations: Stop after this many iterations. Unbounded if `None`.
        :return: The number of iterations performed.
        """
        iterations = 0
        while stop_event is None or not stop_event.is_set():
            if max_iterations is not None and iterations >= max_iterations:
                break
            iterations += 1
            try:
                self.run_once()
            except Exception as e: # pylint: disable=broad-except
                self.logger.exception("Effect iteration %s failed", iterations)
                self.on_error(e)

        self.logger.info("Animation stopped after %s iterations", iterations)
        return iterations


def _print_error(e):
    print("An error occurred:", e)
