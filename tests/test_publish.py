# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import json
import pytest

from conftest import poll, raw_device


class TestServiceTopics:
    @pytest.mark.asyncio
    async def test_availability_is_retained(self, service):
        await service.publish_service_availability("offline")
        assert service.published == [("openrgb2mqtt/service/availability", "offline", True)]

    @pytest.mark.asyncio
    async def test_status_payload(self, service):
        service.status = "connection_failure"
        service.status_message = "Connection failed: refused"

        await service.publish_service_status()

        topic, payload, retain = service.published[-1]
        assert topic == "openrgb2mqtt/service/status"
        assert json.loads(payload) == {"status": "connection_failure", "message": "Connection failed: refused"}
        assert retain

    @pytest.mark.asyncio
    async def test_state_carries_config_and_stats(self, service):
        await service.publish_service_state()

        payload = json.loads(service.published[-1][1])
        assert payload["version"] == "0.0.0-test"
        assert payload["poll_interval"] == 30000
        assert payload["devices"] == 0
        assert payload["polls"] == 0
        assert payload["last_poll"] is None


class TestDeviceState:
    @pytest.mark.asyncio
    async def test_device_payload(self, service):
        service.records = [raw_device("Strip A", "123", 3, [0xFF0000, 0x00FF00])]
        await poll(service)

        payloads = {topic: payload for topic, payload, _ in service.published}
        payload = json.loads(payloads["openrgb2mqtt/device/strip_a_123/state"])
        assert payload == {
            "id": "Strip A:123",
            "index": 3,
            "name": "Strip A",
            "leds": ["LED 1", "LED 2"],
            "colors": ["#ff0000", "#00ff00"],
        }
        assert service.published_devices == {"Strip A:123"}

    @pytest.mark.asyncio
    async def test_rediscover_republishes_everything(self, service):
        service.records = [raw_device("Strip A", "123", 0, [0])]
        await poll(service)
        service.published.clear()

        await service.rediscover_all()

        topics = service.topics()
        assert topics[0] == "openrgb2mqtt/service/availability"
        assert "openrgb2mqtt/service/actions" in topics
        assert "openrgb2mqtt/service/feedbacks" in topics
        assert "openrgb2mqtt/device/strip_a_123/state" in topics
