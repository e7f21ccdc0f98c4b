# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest


# ---------------------------------------------------------------------------
# Helper to create a minimal MQTT message object
# ---------------------------------------------------------------------------
def _make_msg(topic: str, payload: Any) -> MagicMock:
    msg = MagicMock()
    msg.topic = topic
    if isinstance(payload, (dict, list)):
        msg.payload = json.dumps(payload).encode("utf-8")
    elif isinstance(payload, str):
        msg.payload = payload.encode("utf-8")
    elif isinstance(payload, bytes):
        msg.payload = payload
    else:
        msg.payload = str(payload).encode("utf-8")
    return msg


@pytest.fixture
def routed(service):
    service.run_action = AsyncMock()
    service.reconfigure = AsyncMock()
    service.scheduler = MagicMock()
    return service


class TestMqttOnMessage:
    @pytest.mark.asyncio
    async def test_action_topic_routes_to_run_action(self, routed):
        options = {"deviceIds": ["Strip A:123"], "color": 255}
        await routed.mqtt_on_message(MagicMock(), None, _make_msg("openrgb2mqtt/action/updateLeds", options))
        routed.run_action.assert_awaited_once_with("updateLeds", options)

    @pytest.mark.asyncio
    async def test_action_with_non_object_payload_ignored(self, routed):
        await routed.mqtt_on_message(MagicMock(), None, _make_msg("openrgb2mqtt/action/updateLeds", "red"))
        routed.run_action.assert_not_awaited()
        routed.logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_feedback_registration_publishes_state(self, routed):
        routed.update_feedback_definitions()
        payload = {"feedback": "ledColor", "options": {"deviceId": "x", "ledIndex": 0, "color": 0}}
        await routed.mqtt_on_message(MagicMock(), None, _make_msg("openrgb2mqtt/feedback/btn7/set", payload))

        assert "btn7" in routed.feedbacks
        assert routed.published[-1] == ("openrgb2mqtt/feedback/btn7/state", "OFF", True)

    @pytest.mark.asyncio
    async def test_refresh_command_triggers_poll(self, routed):
        await routed.mqtt_on_message(MagicMock(), None, _make_msg("openrgb2mqtt/service/refresh/set", ""))
        routed.scheduler.trigger.assert_called_once()

    @pytest.mark.asyncio
    async def test_rescan_command_posts_transition(self, routed):
        await routed.mqtt_on_message(MagicMock(), None, _make_msg("openrgb2mqtt/service/rescan/set", "1"))
        assert routed.transitions.get_nowait() == "device_list_changed"

    @pytest.mark.asyncio
    async def test_poll_interval_command_reconfigures(self, routed):
        await routed.mqtt_on_message(MagicMock(), None, _make_msg("openrgb2mqtt/service/poll_interval/set", "5000"))
        routed.reconfigure.assert_awaited_once_with({"poll_interval": 5000})

    @pytest.mark.asyncio
    async def test_endpoint_command_keeps_only_host_and_port(self, routed):
        payload = {"host": "10.0.0.5", "port": 6742, "poll_timeout": 1}
        await routed.mqtt_on_message(MagicMock(), None, _make_msg("openrgb2mqtt/service/endpoint/set", payload))
        routed.reconfigure.assert_awaited_once_with({"host": "10.0.0.5", "port": 6742})

    @pytest.mark.asyncio
    async def test_bad_endpoint_logged_not_raised(self, routed):
        await routed.mqtt_on_message(MagicMock(), None, _make_msg("openrgb2mqtt/service/endpoint/set", "10.0.0.5"))
        routed.reconfigure.assert_not_awaited()
        routed.logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_foreign_topic_ignored(self, routed):
        await routed.mqtt_on_message(MagicMock(), None, _make_msg("homeassistant/status", "online"))
        routed.run_action.assert_not_awaited()
        routed.scheduler.trigger.assert_not_called()


class TestSafePublish:
    def test_no_client_is_noop(self, service):
        service.mqttc = None
        # the fake records everything, so go through the mixin directly
        from openrgb2mqtt.mixins.mqtt import MqttMixin

        MqttMixin.safe_publish(service, "t", "p")

    def test_publishes_with_service_qos(self, service):
        from openrgb2mqtt.mixins.mqtt import MqttMixin

        service.mqttc = MagicMock()
        service.mqttc.publish.return_value.rc = 0
        MqttMixin.safe_publish(service, "openrgb2mqtt/service/state", "{}", retain=True)
        service.mqttc.publish.assert_called_once_with("openrgb2mqtt/service/state", "{}", qos=0, retain=True)
