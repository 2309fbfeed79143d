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

"""This is the command-line component of the Hue Animator.

It connects to a single Hue bridge and keeps the configured lights cycling through
randomly chosen effects until it is stopped with Ctrl-C (or SIGTERM), after which
the current effect is allowed to finish.

Running the animator
--------------------

1. If you do not already have an effect file, copy ``animation.json.default``
   and name it ``animation.json``.
2. Copy ``.env.default`` to ``.env`` and fill in the bridge address, token and lights;
   see :ref:`config`.
3. Run ``hue-animator`` (or ``python3 src/animator.py``) from the folder containing
   those files.

Use ``hue-animator --list-lights`` to find the IDs of the lights known to the bridge.

.. _config:

Configuration
^^^^^^^^^^^^^

Configuration is read from environment variables, or from a ``.env`` file:

============================  ====================  ===========
Name                          Allowed values        Meaning
============================  ====================  ===========
DEV                           Boolean               If true, use HUE_BRIDGE_LOCAL_IP,
                                                    otherwise HUE_BRIDGE_REMOTE_IP.
HUE_BRIDGE_LOCAL_IP           Host[:port]           Bridge address inside the local network.
HUE_BRIDGE_REMOTE_IP          Host[:port]           Bridge address from outside.
HUE_TOKEN                     Text string           Bridge username.
LIGHTS                        IDs separated by |    The lights to animate, in update order.
MIN_DURATION                  Integer, >= 0         Minimum ticks per effect (default: 10).
MAX_DURATION                  Integer, >= 0         Maximum ticks per effect (default: 30).
ANIMATION_FILE                Path to file          Effect file (default: animation.json).
REQUEST_TIMEOUT               Number                Seconds to wait for the bridge (default: 2).
============================  ====================  ===========
"""
import argparse
import logging
import logging.config
import os
import signal
import sys
import threading

import errorcodes
import huebridge
from animation import AnimationEngine
from animatorconfig import AnimatorConfig

LOGGING_CONFIG_FILE = "logging.conf"


def setup_logging(path):
    if os.path.exists(path):
        logging.config.fileConfig(path, disable_existing_loggers=False)
    else:
        logging.basicConfig(level=logging.INFO,
                            format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        logging.warning("%s not found, logging to the console only", path)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="hue-animator",
        description="Cycle Philips Hue lights through randomized effects.")
    parser.add_argument("--env-file", default=None,
                        help="read settings from this .env file (default: search for .env)")
    parser.add_argument("--animation-file", default=None,
                        help="effect file to use instead of ANIMATION_FILE")
    parser.add_argument("--logging-conf", default=LOGGING_CONFIG_FILE,
                        help="logging configuration file (default: %(default)s)")
    parser.add_argument("--list-lights", action="store_true",
                        help="print the lights known to the bridge and exit")
    parser.add_argument("--once", action="store_true",
                        help="play a single effect and exit")
    return parser.parse_args(argv)


def read_animation_file(path):
    logging.info("Reading animation file (%s)", path)
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise errorcodes.ConfigError(errorcodes.E_UNREADABLE_FILE, path=path,
                                     reason=e.strerror or e)


def _light_order(item):
    light_id = item[0]
    if light_id.isdecimal():
        return (0, int(light_id), light_id)
    return (1, 0, light_id)


def print_lights(bridge):
    lights = bridge.list_lights()
    print("{:<6}{:<32}{}".format("ID", "Name", "On"))
    print("{:<6}{:<32}{}".format("--", "----", "--"))
    for light_id, light in sorted(lights.items(), key=_light_order):
        print("{:<6}{:<32}{}".format(light_id, light.get("name", ""),
                                     light.get("state", {}).get("on", "")))


def install_signal_handlers(stop_event):
    def handler(signum, _frame):
        logging.info("Received signal %s, stopping after the current effect", signum)
        stop_event.set()
        # a second signal stops immediately
        signal.signal(signum, signal.SIG_DFL)

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


def run(args, config, transport):
    try:
        bridge = huebridge.Bridge(config.connection, transport)

        if args.list_lights:
            print_lights(bridge)
            return 0

        engine = AnimationEngine(bridge, config.lights,
                                 read_animation_file(config.animation_file),
                                 config.min_duration, config.max_duration)
    except errorcodes.FatalError as e:
        logging.error("Startup failed: %s", e)
        print("Startup failed:", e, file=sys.stderr)
        return 1
    except errorcodes.TransportError as e:
        print("Request to the bridge failed:", e, file=sys.stderr)
        return 1

    logging.info("Animating lights %s with effects %s",
                 ", ".join(engine.lights), ", ".join(engine.effect_names))

    if args.once:
        try:
            engine.run_once()
        except errorcodes.RecoverableError as e:
            print("An error occurred:", e, file=sys.stderr)
            return 1
        return 0

    stop_event = threading.Event()
    install_signal_handlers(stop_event)
    engine.run(stop_event)
    return 0


def main(argv=None, transport=None):
    args = parse_args(argv)
    setup_logging(args.logging_conf)

    try:
        config = AnimatorConfig.from_env(env_file=args.env_file)
    except errorcodes.ConfigError as e:
        logging.error("Startup failed: %s", e)
        print("Startup failed:", e, file=sys.stderr)
        return 1
    if args.animation_file is not None:
        config.animation_file = args.animation_file
    logging.debug("Configuration is %s", config)

    if transport is not None:
        return run(args, config, transport)

    transport = huebridge.HTTPTransport(timeout=config.request_timeout)
    try:
        return run(args, config, transport)
    finally:
        transport.close()


if __name__ == "__main__":
    sys.exit(main())
