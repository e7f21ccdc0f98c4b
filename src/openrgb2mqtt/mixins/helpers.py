# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as pkg_version
import ipaddress
import logging
import os
import pathlib
import signal
import threading
from types import FrameType
import yaml

from typing import TYPE_CHECKING, Any, cast

from openrgb2mqtt.errors import ConfigError

if TYPE_CHECKING:
    from openrgb2mqtt.interface import OpenRgbServiceProtocol as OpenRgb2Mqtt

READY_FILE = os.getenv("READY_FILE", "/tmp/openrgb2mqtt.ready")

DEFAULT_OPENRGB_PORT = 6742
DEFAULT_POLL_INTERVAL = 30000  # ms
MAX_POLL_INTERVAL = 600000  # ms
DEFAULT_POLL_TIMEOUT = 30  # sec
DEFAULT_RECONNECT_DELAY = 10  # sec


def _pick(section: dict[str, Any], key: str, env: str, default: Any) -> Any:
    # a 0 in the file is a real value (poll_interval: 0 turns the timer off)
    value = section.get(key)
    if value is None or value == "":
        return os.getenv(env, default)
    return value


def _package_version() -> str:
    try:
        return pkg_version("openrgb2mqtt")
    except PackageNotFoundError:
        return "0.0.0"


def validate_openrgb_config(openrgb: dict[str, Any]) -> dict[str, Any]:
    """Check the fields the OpenRGB connection depends on, raise ConfigError if off."""
    try:
        ipaddress.ip_address(str(openrgb.get("host", "")))
    except ValueError:
        raise ConfigError(f"`openrgb.host` must be an IP address, got {openrgb.get('host')!r}")

    try:
        port = int(openrgb["port"])
        poll_interval = int(openrgb["poll_interval"])
        poll_timeout = float(openrgb["poll_timeout"])
        reconnect_delay = float(openrgb["reconnect_delay"])
    except (KeyError, TypeError, ValueError) as err:
        raise ConfigError(f"invalid `openrgb` value: {err}") from err

    if not 1 <= port <= 65535:
        raise ConfigError(f"`openrgb.port` must be between 1 and 65535, got {port}")
    if not 0 <= poll_interval <= MAX_POLL_INTERVAL:
        raise ConfigError(f"`openrgb.poll_interval` must be between 0 and {MAX_POLL_INTERVAL}, got {poll_interval}")
    if poll_timeout <= 0:
        raise ConfigError(f"`openrgb.poll_timeout` must be positive, got {poll_timeout}")

    return {
        **openrgb,
        "port": port,
        "poll_interval": poll_interval,
        "poll_timeout": poll_timeout,
        "reconnect_delay": reconnect_delay,
    }


class HelpersMixin:
    def load_config(self: OpenRgb2Mqtt, config_arg: Any | None = None) -> dict[str, Any]:
        version = os.getenv("APP_VERSION") or _package_version()

        config_from = "env"
        config: dict[str, Any] = {}

        # Determine config file path
        config_path = config_arg or "/config"
        config_path = os.path.expanduser(config_path)
        config_path = os.path.abspath(config_path)

        if os.path.isdir(config_path):
            config_file = os.path.join(config_path, "config.yaml")
        elif os.path.isfile(config_path):
            config_file = config_path
            config_path = os.path.dirname(config_file)
        else:
            if config_path.endswith(".yaml"):
                config_file = config_path
            else:
                config_file = os.path.join(config_path, "config.yaml")

        if os.path.exists(config_file):
            try:
                with open(config_file, "r") as f:
                    config = yaml.safe_load(f) or {}
                config_from = "file"
            except (OSError, yaml.YAMLError) as e:
                logging.warning(f"Failed to load config from {config_file}: {e}")
        else:
            logging.warning(f"Config file not found at {config_file}, falling back to environment vars")

        mqtt = cast(dict[str, Any], config.get("mqtt") or {})
        openrgb = cast(dict[str, Any], config.get("openrgb") or {})

        # fmt: off
        mqtt = {
              "host":         cast(str, mqtt.get("host"))            or os.getenv("MQTT_HOST", "localhost"),
              "port":     int(cast(str, mqtt.get("port")             or os.getenv("MQTT_PORT", 1883))),
              "qos":      int(cast(str, mqtt.get("qos")              or os.getenv("MQTT_QOS", 0))),
              "username":               mqtt.get("username")         or os.getenv("MQTT_USERNAME", ""),
              "password":               mqtt.get("password")         or os.getenv("MQTT_PASSWORD", ""),
              "tls_enabled":            mqtt.get("tls_enabled")      or (os.getenv("MQTT_TLS_ENABLED", "false").lower() == "true"),
              "tls_ca_cert":            mqtt.get("tls_ca_cert")      or os.getenv("MQTT_TLS_CA_CERT"),
              "tls_cert":               mqtt.get("tls_cert")         or os.getenv("MQTT_TLS_CERT"),
              "tls_key":                mqtt.get("tls_key")          or os.getenv("MQTT_TLS_KEY"),
              "prefix":                 mqtt.get("prefix")           or os.getenv("MQTT_PREFIX", "openrgb2mqtt"),
        }

        openrgb = {
            "host":            _pick(openrgb, "host",            "OPENRGB_HOST",            "127.0.0.1"),
            "port":            _pick(openrgb, "port",            "OPENRGB_PORT",            DEFAULT_OPENRGB_PORT),
            "poll_interval":   _pick(openrgb, "poll_interval",   "OPENRGB_POLL_INTERVAL",   DEFAULT_POLL_INTERVAL),
            "poll_timeout":    _pick(openrgb, "poll_timeout",    "OPENRGB_POLL_TIMEOUT",    DEFAULT_POLL_TIMEOUT),
            "reconnect_delay": _pick(openrgb, "reconnect_delay", "OPENRGB_RECONNECT_DELAY", DEFAULT_RECONNECT_DELAY),
            "client_name":     _pick(openrgb, "client_name",     "OPENRGB_CLIENT_NAME",     "openrgb2mqtt"),
        }

        config = {
            "mqtt":        mqtt,
            "openrgb":     validate_openrgb_config(openrgb),
            "debug":       str(config.get("debug") or os.getenv("DEBUG", "")).lower() == "true",
            "hide_ts":     str(config.get("hide_ts") or os.getenv("HIDE_TS", "")).lower() == "true",
            "config_from": config_from,
            "config_path": config_path,
            "version":     version,
        }
        # fmt: on

        if not cast(dict, config["mqtt"]).get("host"):
            raise ConfigError("`mqtt host` value is missing, not even the default value")
        if not cast(dict, config["mqtt"]).get("port"):
            raise ConfigError("`mqtt port` value is missing, not even the default value")

        return config

    # Utility functions ---------------------------------------------------------------------------

    def _handle_signal(self: OpenRgb2Mqtt, signum: int, frame: FrameType | None = None) -> None:
        sig_name = signal.Signals(signum).name
        self.logger.warning(f"{sig_name} received - stopping service loop")
        self.running = False

        def _force_exit() -> None:
            self.logger.warning("force-exiting process after signal")
            os._exit(0)

        timer = threading.Timer(5.0, _force_exit)
        timer.daemon = True
        timer.start()

    def mark_ready(self: OpenRgb2Mqtt) -> None:
        pathlib.Path(READY_FILE).touch()

    def heartbeat_ready(self: OpenRgb2Mqtt) -> None:
        pathlib.Path(READY_FILE).touch()

    def device_slug(self: OpenRgb2Mqtt, device_id: str) -> str:
        """Turn a device id like "Strip A:123" into a topic-safe "strip_a_123"."""
        slug = "".join(c.lower() if c.isalnum() else "_" for c in device_id)
        return "_".join(part for part in slug.split("_") if part) or "device"
