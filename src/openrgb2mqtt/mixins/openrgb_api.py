# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from openrgb import OpenRGBClient
from openrgb.utils import OpenRGBDisconnected, RGBColor

from openrgb2mqtt.errors import ConnectivityError
from openrgb2mqtt.snapshot import Color

if TYPE_CHECKING:
    from openrgb2mqtt.interface import OpenRgbServiceProtocol as OpenRgb2Mqtt

T = TypeVar("T")

# what the SDK raises when the socket goes away or the server answers garbage
SDK_ERRORS = (OpenRGBDisconnected, OSError, EOFError)


def to_rgb(color: Color) -> RGBColor:
    return RGBColor(color.red, color.green, color.blue)


def flatten_device(device: Any) -> dict[str, Any]:
    """Turn an openrgb-python Device into the plain record the snapshot is built from."""
    metadata = getattr(device, "metadata", None)
    return {
        "name": getattr(device, "name", "") or "",
        "vendor": getattr(metadata, "vendor", "") or "",
        "serial": getattr(metadata, "serial", "") or "",
        "location": getattr(metadata, "location", "") or "",
        "index": int(getattr(device, "id", 0) or 0),
        "leds": [{"name": led.name} for led in getattr(device, "leds", None) or []],
        "colors": [Color(c.red, c.green, c.blue) for c in getattr(device, "colors", None) or []],
    }


class OpenRGBAPIMixin:
    """Blocking openrgb-python calls, pushed onto worker threads one at a time."""

    async def _sdk_call(self: OpenRgb2Mqtt, what: str, fn: Callable[..., T], *args: Any) -> T:
        def _locked() -> T:
            with self.sdk_lock:
                return fn(*args)

        try:
            return await asyncio.to_thread(_locked)
        except ConnectivityError:
            raise
        except SDK_ERRORS as err:
            self.openrgb_connected = False
            raise ConnectivityError(f"{what} failed: {err}") from err

    async def connect_openrgb(self: OpenRgb2Mqtt) -> None:
        host = self.openrgb_config["host"]
        port = self.openrgb_config["port"]
        name = self.openrgb_config.get("client_name", "openrgb2mqtt")

        if self.client is None:
            self.logger.info(f"connecting to OpenRGB at {host}:{port}")
            self.client = await self._sdk_call(f"connect to {host}:{port}", OpenRGBClient, host, port, name)
        else:
            self.logger.info(f"reconnecting to OpenRGB at {host}:{port}")
            await self._sdk_call(f"reconnect to {host}:{port}", self.client.connect)

        self.openrgb_connected = True

    async def disconnect_openrgb(self: OpenRgb2Mqtt) -> None:
        client, self.client = self.client, None
        self.openrgb_connected = False
        if client is None:
            return
        try:
            await self._sdk_call("disconnect", client.disconnect)
        except ConnectivityError as err:
            self.logger.debug(f"ignoring error while disconnecting from OpenRGB: {err}")

    async def fetch_all(self: OpenRgb2Mqtt) -> list[dict[str, Any]]:
        client = self.client
        if client is None or not self.openrgb_connected:
            raise ConnectivityError("not connected to OpenRGB")

        def _fetch() -> list[dict[str, Any]]:
            client.update()
            return [flatten_device(device) for device in client.devices]

        return await self._sdk_call("fetching controller data", _fetch)

    def _device_at(self: OpenRgb2Mqtt, index: int) -> Any:
        # only call with sdk_lock held, client.update() replaces the device list
        if self.client is None:
            raise ConnectivityError("not connected to OpenRGB")
        for device in self.client.devices:
            if getattr(device, "id", None) == index:
                return device
        raise ConnectivityError(f"no device at index {index}")

    async def update_leds(self: OpenRgb2Mqtt, index: int, colors: list[Color]) -> None:
        def _write() -> None:
            self._device_at(index).set_colors([to_rgb(c) for c in colors])

        await self._sdk_call(f"updating leds on device {index}", _write)

    async def update_single_led(self: OpenRgb2Mqtt, index: int, led_index: int, color: Color) -> None:
        def _write() -> None:
            device = self._device_at(index)
            if not 0 <= led_index < len(device.leds):
                raise ValueError(f"device {index} has no led {led_index}")
            device.leds[led_index].set_color(to_rgb(color))

        await self._sdk_call(f"updating led {led_index} on device {index}", _write)
