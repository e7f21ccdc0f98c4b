# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations

import asyncio
import json
import random
import ssl
import string
from typing import TYPE_CHECKING, Any

import paho.mqtt.client as mqtt
from paho.mqtt.client import Client, MQTTMessage

from openrgb2mqtt.errors import ConfigError, MqttError

if TYPE_CHECKING:
    from openrgb2mqtt.interface import OpenRgbServiceProtocol as OpenRgb2Mqtt


class MqttMixin:
    def new_client_id(self: OpenRgb2Mqtt) -> str:
        return self.service + "-" + "".join(random.choices(string.ascii_lowercase + string.digits, k=8))

    def mqtt_subscription_topics(self: OpenRgb2Mqtt) -> list[str]:
        return [
            f"{self.service}/service/+/set",
            f"{self.service}/action/+",
            f"{self.service}/feedback/+/set",
        ]

    async def mqttc_create(self: OpenRgb2Mqtt) -> None:
        self.mqttc = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            clean_session=True,
        )

        if self.mqtt_config.get("tls_enabled"):
            self.mqttc.tls_set(
                ca_certs=self.mqtt_config.get("tls_ca_cert"),
                certfile=self.mqtt_config.get("tls_cert"),
                keyfile=self.mqtt_config.get("tls_key"),
                cert_reqs=ssl.CERT_REQUIRED,
                tls_version=ssl.PROTOCOL_TLS_CLIENT,
            )
        if self.mqtt_config.get("username"):
            self.mqttc.username_pw_set(
                username=self.mqtt_config.get("username"),
                password=self.mqtt_config.get("password"),
            )

        self.mqttc.on_connect = self.mqtt_on_connect
        self.mqttc.on_disconnect = self.mqtt_on_disconnect
        self.mqttc.on_message = self.mqtt_on_raw_message
        self.mqttc.will_set(self.availability_topic(), "offline", qos=self.qos, retain=True)

        try:
            await asyncio.to_thread(self.mqttc.connect, self.mqtt_config["host"], port=self.mqtt_config["port"], keepalive=60)
        except OSError as err:
            raise MqttError(f"failed to connect to MQTT host {self.mqtt_config['host']}: {err}") from err
        self.mqttc.loop_start()

    def mqtt_on_connect(self: OpenRgb2Mqtt, client: Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        if reason_code.is_failure:
            self.logger.error(f"MQTT connection refused: {reason_code}")
            return
        self.logger.info(f"MQTT connected as {self.client_id}")
        for topic in self.mqtt_subscription_topics():
            client.subscribe(topic, qos=self.qos)
        asyncio.run_coroutine_threadsafe(self.rediscover_all(), self.loop)

    def mqtt_on_disconnect(self: OpenRgb2Mqtt, client: Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        # paho's loop thread reconnects by itself
        self.logger.info(f"MQTT connection closed ({reason_code})")

    def mqtt_on_raw_message(self: OpenRgb2Mqtt, client: Client, userdata: Any, msg: MQTTMessage) -> None:
        asyncio.run_coroutine_threadsafe(self.mqtt_on_message(client, userdata, msg), self.loop)

    async def mqtt_on_message(self: OpenRgb2Mqtt, client: Client, userdata: Any, msg: MQTTMessage) -> None:
        topic = msg.topic
        components = topic.split("/")

        try:
            payload = json.loads(msg.payload) if msg.payload else None
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError, ValueError):
            try:
                payload = msg.payload.decode("utf-8")
            except UnicodeDecodeError as err:
                self.logger.warning(f"failed to decode MQTT payload on {topic}: {err}")
                return None

        if components[0] != self.service or len(components) < 3:
            self.logger.debug(f"did not process message on MQTT topic: {topic} with {payload}")
            return None

        match components[1:]:
            case ["action", action_id]:
                if not isinstance(payload, dict):
                    self.logger.warning(f"ignoring {action_id} action, options must be a JSON object")
                    return None
                self.logger.info(f"got {action_id} action: {payload}")
                await self.run_action(action_id, payload)
            case ["feedback", instance_id, "set"]:
                if self.register_feedback(instance_id, payload):
                    await self.check_feedbacks(instance_id)
                else:
                    await self.publish_feedback_state(instance_id, None)
            case ["service", command, "set"]:
                await self.handle_service_message(command, payload)
            case _:
                self.logger.debug(f"did not process message on MQTT topic: {topic} with {payload}")

    async def handle_service_message(self: OpenRgb2Mqtt, handler: str, message: Any) -> None:
        try:
            match handler:
                case "refresh":
                    self.logger.info("manual refresh requested")
                    self.scheduler.trigger()
                case "rescan":
                    self.post_transition("device_list_changed")
                case "poll_interval":
                    await self.reconfigure({"poll_interval": message})
                case "endpoint":
                    if not isinstance(message, dict):
                        raise ConfigError(f"endpoint must be a JSON object with host and port, got {message!r}")
                    await self.reconfigure({k: v for k, v in message.items() if k in ("host", "port")})
                case _:
                    self.logger.error(f"unrecognized message to {self.service}: {handler} with {message}")
        except ConfigError as err:
            self.logger.error(f"rejected {handler} change: {err}")

    def safe_publish(self: OpenRgb2Mqtt, topic: str, payload: str | None, retain: bool = False) -> None:
        if self.mqttc is None:
            return
        info = self.mqttc.publish(topic, payload, qos=self.qos, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.warning(f"failed to publish to {topic}: {mqtt.error_string(info.rc)}")
