# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import argparse
import asyncio
import logging
import threading
from types import FrameType
from typing import Any, Protocol

from paho.mqtt.client import Client, MQTTMessage

from openrgb2mqtt.notifier import ChangeNotifier
from openrgb2mqtt.scheduler import CancelToken, PollScheduler
from openrgb2mqtt.snapshot import Color, DeviceState, DeviceTopology, Snapshot, SnapshotStore


class OpenRgbServiceProtocol(Protocol):
    """Everything the mixins expect to find on the composed service object."""

    loop: asyncio.AbstractEventLoop
    args: argparse.Namespace | None
    logger: logging.Logger
    config: dict[str, Any]
    mqtt_config: dict[str, Any]
    openrgb_config: dict[str, Any]

    service: str
    service_name: str
    qos: int
    running: bool
    status: str
    status_message: str

    mqttc: Client | None
    client_id: str

    client: Any
    openrgb_connected: bool
    sdk_lock: threading.Lock
    transitions: asyncio.Queue[str]
    reconnect_task: asyncio.Task[None] | None

    store: SnapshotStore
    notifier: ChangeNotifier
    scheduler: PollScheduler

    action_definitions: dict[str, Any]
    feedback_definitions: dict[str, Any]
    feedbacks: dict[str, dict[str, Any]]
    published_devices: set[str]

    # helpers
    def load_config(self, config_arg: Any | None = None) -> dict[str, Any]: ...
    def _handle_signal(self, signum: int, frame: FrameType | None = None) -> None: ...
    def mark_ready(self) -> None: ...
    def heartbeat_ready(self) -> None: ...
    def device_slug(self, device_id: str) -> str: ...

    # openrgb api
    async def _sdk_call(self, what: str, fn: Any, *args: Any) -> Any: ...
    async def connect_openrgb(self) -> None: ...
    async def disconnect_openrgb(self) -> None: ...
    async def fetch_all(self) -> list[dict[str, Any]]: ...
    def _device_at(self, index: int) -> Any: ...
    async def update_leds(self, index: int, colors: list[Color]) -> None: ...
    async def update_single_led(self, index: int, led_index: int, color: Color) -> None: ...

    # connection
    def post_transition(self, transition: str) -> None: ...
    def poll_interval_seconds(self) -> float: ...
    async def set_status(self, status: str, message: str = "") -> None: ...
    async def open_connection(self) -> None: ...
    def schedule_reconnect(self) -> None: ...
    def cancel_reconnect(self) -> None: ...
    async def handle_transition(self, transition: str) -> None: ...
    async def connection_loop(self) -> None: ...
    async def reconfigure(self, changes: dict[str, Any]) -> None: ...

    # refresh
    async def fetch_devices(self, token: CancelToken) -> Snapshot: ...
    async def apply_devices(self, snapshot: Snapshot, token: CancelToken) -> None: ...
    async def on_topology_changed(self) -> None: ...
    async def on_state_changed(self) -> None: ...

    # actions and feedbacks
    def device_choices(self) -> list[dict[str, str]]: ...
    def update_action_definitions(self) -> None: ...
    async def run_action(self, action_id: str, options: dict[str, Any]) -> None: ...
    def update_feedback_definitions(self) -> None: ...
    def evaluate_feedback(self, feedback_id: str, options: dict[str, Any]) -> bool: ...
    def register_feedback(self, instance_id: str, payload: Any) -> bool: ...
    async def check_feedbacks(self, *instance_ids: str) -> None: ...

    # mqtt
    def new_client_id(self) -> str: ...
    def mqtt_subscription_topics(self) -> list[str]: ...
    async def mqttc_create(self) -> None: ...
    def mqtt_on_connect(self, client: Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None: ...
    def mqtt_on_disconnect(self, client: Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None: ...
    def mqtt_on_raw_message(self, client: Client, userdata: Any, msg: MQTTMessage) -> None: ...
    async def mqtt_on_message(self, client: Client, userdata: Any, msg: MQTTMessage) -> None: ...
    async def handle_service_message(self, handler: str, message: Any) -> None: ...
    def safe_publish(self, topic: str, payload: str | None, retain: bool = False) -> None: ...

    # publish
    def availability_topic(self) -> str: ...
    def service_topic(self, name: str) -> str: ...
    def device_state_topic(self, device_id: str) -> str: ...
    def feedback_state_topic(self, instance_id: str) -> str: ...
    async def publish_service_availability(self, status: str = "online") -> None: ...
    async def publish_service_status(self) -> None: ...
    async def publish_service_state(self) -> None: ...
    async def publish_definitions(self) -> None: ...
    async def publish_device_state(self, device_id: str, device: DeviceTopology, state: DeviceState | None) -> None: ...
    async def publish_removed_devices(self) -> None: ...
    async def publish_feedback_state(self, instance_id: str, value: bool | None) -> None: ...
    async def rediscover_all(self) -> None: ...

    # loops
    async def service_state_loop(self) -> None: ...
    async def heartbeat(self) -> None: ...
    async def watch_running(self, tasks: list[asyncio.Task]) -> None: ...
    async def main_loop(self) -> None: ...
