# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable

from openrgb2mqtt.snapshot import WHITE, Color

if TYPE_CHECKING:
    from openrgb2mqtt.interface import OpenRgbServiceProtocol as OpenRgb2Mqtt


class ActionsMixin:
    def device_choices(self: OpenRgb2Mqtt) -> list[dict[str, str]]:
        return [{"id": device_id, "label": device.name} for device_id, device in self.store.devices.items()]

    def update_action_definitions(self: OpenRgb2Mqtt) -> None:
        device_picker = {
            "id": "deviceIds",
            "type": "multidropdown",
            "label": "Devices",
            "default": [],
            "choices": self.device_choices(),
        }
        color = {
            "id": "color",
            "type": "colorpicker",
            "label": "Color",
            "default": WHITE.to_packed(),
        }

        self.action_definitions = {
            "updateLeds": {
                "name": "Set All LEDs",
                "options": [device_picker, color],
            },
            "setSingleLed": {
                "name": "Set Single LED",
                "options": [
                    device_picker,
                    {"id": "ledIndex", "type": "number", "label": "LED Index", "min": 0, "default": 0},
                    color,
                ],
            },
            "setSingleLedByName": {
                "name": "Set Single LED by Name",
                "options": [
                    device_picker,
                    {"id": "ledName", "type": "textinput", "label": "LED Name", "default": ""},
                    color,
                ],
            },
        }
        self.logger.debug(f"action definitions updated with {len(device_picker['choices'])} devices")

    async def run_action(self: OpenRgb2Mqtt, action_id: str, options: dict[str, Any]) -> None:
        if action_id not in self.action_definitions:
            self.logger.warning(f"ignoring unknown action: {action_id}")
            return

        try:
            color = Color.parse(options.get("color", WHITE.to_packed()))
        except (TypeError, ValueError) as err:
            self.logger.warning(f"ignoring {action_id} with bad color: {err}")
            return

        device_ids = options.get("deviceIds") or []
        if isinstance(device_ids, str):
            device_ids = [device_ids]

        updates: list[Awaitable[None]] = []
        for device_id in device_ids:
            device = self.store.devices.get(device_id)
            if device is None:
                self.logger.debug(f"{action_id}: skipping unknown device {device_id}")
                continue

            match action_id:
                case "updateLeds":
                    updates.append(self.update_leds(device.index, [color] * len(device.leds)))
                case "setSingleLed":
                    try:
                        led_index = int(options.get("ledIndex", 0))
                    except (TypeError, ValueError):
                        self.logger.warning(f"ignoring {action_id} with bad ledIndex: {options.get('ledIndex')!r}")
                        return
                    updates.append(self.update_single_led(device.index, led_index, color))
                case "setSingleLedByName":
                    led_name = options.get("ledName", "")
                    if led_name not in device.leds:
                        self.logger.debug(f"{action_id}: device {device_id} has no led named {led_name!r}")
                        continue
                    updates.append(self.update_single_led(device.index, device.leds.index(led_name), color))

        # every write stands on its own, one failing does not stop the others
        results = await asyncio.gather(*updates, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                self.logger.error(f"{action_id} failed: {result}")
