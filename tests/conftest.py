# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import asyncio
import threading
from typing import Any
from unittest.mock import MagicMock

import pytest

from openrgb2mqtt.mixins.actions import ActionsMixin
from openrgb2mqtt.mixins.connection import ConnectionMixin
from openrgb2mqtt.mixins.feedbacks import FeedbacksMixin
from openrgb2mqtt.mixins.helpers import HelpersMixin
from openrgb2mqtt.mixins.mqtt import MqttMixin
from openrgb2mqtt.mixins.openrgb_api import OpenRGBAPIMixin
from openrgb2mqtt.mixins.publish import PublishMixin
from openrgb2mqtt.mixins.refresh import RefreshMixin
from openrgb2mqtt.notifier import ChangeNotifier
from openrgb2mqtt.scheduler import CancelToken, PollScheduler
from openrgb2mqtt.snapshot import Color, SnapshotStore


@pytest.fixture
def sample_config() -> dict[str, Any]:
    """Return a minimal valid config dict for openrgb2mqtt."""
    return {
        "mqtt": {
            "host": "localhost",
            "port": 1883,
            "qos": 0,
            "username": "testuser",
            "password": "testpass",
            "tls_enabled": False,
            "prefix": "openrgb2mqtt",
        },
        "openrgb": {
            "host": "127.0.0.1",
            "port": 6742,
            "poll_interval": 30000,
            "poll_timeout": 30.0,
            "reconnect_delay": 10.0,
            "client_name": "openrgb2mqtt",
        },
        "debug": False,
        "hide_ts": False,
        "config_from": "test",
        "config_path": "/tmp",
        "version": "0.0.0-test",
    }


def raw_device(name: str, serial: str, index: int, colors: list[int], vendor: str = "ACME", location: str = "") -> dict[str, Any]:
    return {
        "name": name,
        "vendor": vendor,
        "serial": serial,
        "location": location,
        "index": index,
        "leds": [{"name": f"LED {i + 1}"} for i in range(len(colors))],
        "colors": [Color.from_packed(c) for c in colors],
    }


class FakeService(
    HelpersMixin,
    PublishMixin,
    OpenRGBAPIMixin,
    ConnectionMixin,
    RefreshMixin,
    ActionsMixin,
    FeedbacksMixin,
    MqttMixin,
):
    """The composed service minus Base: no config file, no broker, no OpenRGB socket."""

    def __init__(self, config: dict[str, Any]) -> None:
        self.logger = MagicMock()
        self.config = config
        self.mqtt_config = config["mqtt"]
        self.openrgb_config = dict(config["openrgb"])
        self.service = self.mqtt_config["prefix"]
        self.service_name = f"{self.service} service"
        self.qos = 0
        self.running = True
        self.status = "disconnected"
        self.status_message = ""

        self.mqttc = None
        self.client_id = "test-client"
        self.client = None
        self.openrgb_connected = True
        self.sdk_lock = threading.Lock()
        self.transitions: asyncio.Queue[str] = asyncio.Queue()
        self.reconnect_task = None

        self.store = SnapshotStore()
        self.notifier = ChangeNotifier(self.store, [self.on_topology_changed], [self.on_state_changed], logger=MagicMock())
        self.scheduler = PollScheduler(self.fetch_devices, self.apply_devices, timeout=1.0, logger=MagicMock())

        self.action_definitions: dict[str, Any] = {}
        self.feedback_definitions: dict[str, Any] = {}
        self.feedbacks: dict[str, dict[str, Any]] = {}
        self.published_devices: set[str] = set()

        self.published: list[tuple[str, Any, bool]] = []
        self.records: list[dict[str, Any]] = []

    def safe_publish(self, topic: str, payload: Any, retain: bool = False) -> None:
        self.published.append((topic, payload, retain))

    def topics(self) -> list[str]:
        return [topic for topic, _, _ in self.published]

    async def fetch_all(self) -> list[dict[str, Any]]:
        return self.records


async def poll(service: FakeService) -> None:
    """One fetch and apply, without the scheduler or its deadline."""
    token = CancelToken()
    await service.apply_devices(await service.fetch_devices(token), token)


@pytest.fixture
def service(sample_config: dict[str, Any]) -> FakeService:
    return FakeService(sample_config)
