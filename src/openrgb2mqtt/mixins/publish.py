# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

from openrgb2mqtt.snapshot import DeviceState, DeviceTopology

if TYPE_CHECKING:
    from openrgb2mqtt.interface import OpenRgbServiceProtocol as OpenRgb2Mqtt


class PublishMixin:

    # Topics --------------------------------------------------------------------------------------

    def availability_topic(self: OpenRgb2Mqtt) -> str:
        return f"{self.service}/service/availability"

    def service_topic(self: OpenRgb2Mqtt, name: str) -> str:
        return f"{self.service}/service/{name}"

    def device_state_topic(self: OpenRgb2Mqtt, device_id: str) -> str:
        return f"{self.service}/device/{self.device_slug(device_id)}/state"

    def feedback_state_topic(self: OpenRgb2Mqtt, instance_id: str) -> str:
        return f"{self.service}/feedback/{instance_id}/state"

    # Service -------------------------------------------------------------------------------------

    async def publish_service_availability(self: OpenRgb2Mqtt, status: str = "online") -> None:
        await asyncio.to_thread(self.safe_publish, self.availability_topic(), status, retain=True)

    async def publish_service_status(self: OpenRgb2Mqtt) -> None:
        payload = {"status": self.status, "message": self.status_message}
        await asyncio.to_thread(self.safe_publish, self.service_topic("status"), json.dumps(payload), retain=True)

    async def publish_service_state(self: OpenRgb2Mqtt) -> None:
        stats = self.scheduler.stats
        service = {
            "version": self.config["version"],
            "host": self.openrgb_config["host"],
            "port": self.openrgb_config["port"],
            "poll_interval": self.openrgb_config["poll_interval"],
            "poll_timeout": self.openrgb_config["poll_timeout"],
            "devices": len(self.store.devices),
            "polls": stats.attempts,
            "poll_failures": stats.failures,
            "poll_timeouts": stats.timeouts,
            "last_poll": stats.last_success.isoformat() if stats.last_success else None,
            "last_error": stats.last_error,
        }
        await asyncio.to_thread(self.safe_publish, self.service_topic("state"), json.dumps(service), retain=True)

    async def publish_definitions(self: OpenRgb2Mqtt) -> None:
        await asyncio.to_thread(self.safe_publish, self.service_topic("actions"), json.dumps(self.action_definitions), retain=True)
        await asyncio.to_thread(self.safe_publish, self.service_topic("feedbacks"), json.dumps(self.feedback_definitions), retain=True)

    # Devices -------------------------------------------------------------------------------------

    async def publish_device_state(self: OpenRgb2Mqtt, device_id: str, device: DeviceTopology, state: DeviceState | None) -> None:
        payload = {
            "id": device_id,
            "index": device.index,
            "name": device.name,
            "leds": list(device.leds),
            "colors": [c.to_hex() for c in state.colors] if state else [],
        }
        await asyncio.to_thread(self.safe_publish, self.device_state_topic(device_id), json.dumps(payload), retain=True)
        self.published_devices.add(device_id)

    async def publish_removed_devices(self: OpenRgb2Mqtt) -> None:
        for device_id in sorted(self.published_devices - set(self.store.devices)):
            # an empty retained message clears the topic on the broker
            await asyncio.to_thread(self.safe_publish, self.device_state_topic(device_id), "", retain=True)
            self.published_devices.discard(device_id)
            self.logger.info(f"device {device_id} is gone, cleared its state topic")

    async def publish_feedback_state(self: OpenRgb2Mqtt, instance_id: str, value: bool | None) -> None:
        payload = "" if value is None else ("ON" if value else "OFF")
        await asyncio.to_thread(self.safe_publish, self.feedback_state_topic(instance_id), payload, retain=True)

    async def rediscover_all(self: OpenRgb2Mqtt) -> None:
        await self.publish_service_availability("online")
        await self.publish_service_status()
        await self.publish_service_state()
        await self.publish_definitions()
        snapshot = self.store.current
        for device_id, device in snapshot.devices.items():
            await self.publish_device_state(device_id, device, snapshot.states.get(device_id))
        await self.check_feedbacks()
