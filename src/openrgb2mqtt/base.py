# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations

import argparse
import asyncio
import logging
from paho.mqtt.client import Client
import threading
from types import TracebackType

from typing import Any, Self, cast

from openrgb2mqtt.interface import OpenRgbServiceProtocol as OpenRgb2Mqtt
from openrgb2mqtt.notifier import ChangeNotifier
from openrgb2mqtt.scheduler import PollScheduler
from openrgb2mqtt.snapshot import SnapshotStore


class Base:
    def __init__(self: OpenRgb2Mqtt, args: argparse.Namespace | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)

        self.loop = asyncio.get_running_loop()

        self.args = args
        self.logger = logging.getLogger(__name__)

        # now load self.config right away
        cfg_arg = getattr(args, "config", None)
        self.config = self.load_config(cfg_arg)

        # down in trenches if we have to
        if self.config.get("debug"):
            self.logger.setLevel(logging.DEBUG)

        self.mqtt_config = self.config["mqtt"]
        self.openrgb_config = self.config["openrgb"]

        self.service = self.mqtt_config["prefix"]
        self.service_name = f"{self.service} service"
        self.qos = self.mqtt_config["qos"]

        self.running = False
        self.status = "disconnected"
        self.status_message = ""

        self.mqttc: Client | None = None
        self.client_id = self.new_client_id()

        self.client: Any = None
        self.openrgb_connected = False
        self.sdk_lock = threading.Lock()
        self.transitions: asyncio.Queue[str] = asyncio.Queue()
        self.reconnect_task: asyncio.Task[None] | None = None

        self.store = SnapshotStore()
        self.notifier = ChangeNotifier(
            self.store,
            on_topology_changed=[self.on_topology_changed],
            on_state_changed=[self.on_state_changed],
            logger=logging.getLogger("openrgb2mqtt.notifier"),
        )
        self.scheduler = PollScheduler(
            self.fetch_devices,
            self.apply_devices,
            timeout=self.openrgb_config["poll_timeout"],
            logger=logging.getLogger("openrgb2mqtt.scheduler"),
        )

        self.action_definitions: dict[str, Any] = {}
        self.feedback_definitions: dict[str, Any] = {}
        self.feedbacks: dict[str, dict[str, Any]] = {}
        self.published_devices: set[str] = set()

    async def __aenter__(self: Self) -> OpenRgb2Mqtt:
        await cast(Any, self).mqttc_create()
        cast(Any, self).running = True

        return cast(OpenRgb2Mqtt, self)

    async def __aexit__(self: Self, exc_type: BaseException | None, exc_val: BaseException | None, exc_tb: TracebackType) -> None:
        service = cast(Any, self)
        service.running = False

        await service.scheduler.close()
        service.cancel_reconnect()
        await service.disconnect_openrgb()

        if service.mqttc is not None:
            try:
                await service.publish_service_availability("offline")
                service.mqttc.loop_stop()
            except (OSError, RuntimeError) as e:
                service.logger.debug(f"mqtt loop_stop failed: {e}")

            if service.mqttc.is_connected():
                try:
                    service.mqttc.disconnect()
                    service.logger.info("disconnected from MQTT broker")
                except (OSError, RuntimeError) as e:
                    service.logger.warning(f"error during MQTT disconnect: {e}")

        service.logger.info("exiting gracefully")
