# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse


class ConfigError(ValueError):
    """Raised when the configuration file is invalid."""

    pass


class ConnectivityError(ConnectionError):
    """Raised when the OpenRGB server could not be reached or answered badly."""

    pass


class PollTimeoutError(TimeoutError):
    """Raised when a poll did not finish before its deadline."""

    pass


class MqttError(ConnectionError):
    """Raised when the MQTT broker cannot be reached."""

    pass
