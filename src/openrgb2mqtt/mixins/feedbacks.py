# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from openrgb2mqtt.snapshot import WHITE, Color

if TYPE_CHECKING:
    from openrgb2mqtt.interface import OpenRgbServiceProtocol as OpenRgb2Mqtt


class FeedbacksMixin:
    def update_feedback_definitions(self: OpenRgb2Mqtt) -> None:
        device_picker = {
            "id": "deviceId",
            "type": "dropdown",
            "label": "Device",
            "default": next(iter(self.store.devices), ""),
            "choices": self.device_choices(),
        }
        color = {"id": "color", "type": "colorpicker", "label": "Color", "default": WHITE.to_packed()}

        self.feedback_definitions = {
            "ledColor": {
                "type": "boolean",
                "name": "LED shows color",
                "options": [
                    device_picker,
                    {"id": "ledIndex", "type": "number", "label": "LED Index", "min": 0, "default": 0},
                    color,
                ],
            },
            "allLedsColor": {
                "type": "boolean",
                "name": "All LEDs show color",
                "options": [device_picker, color],
            },
        }

    def evaluate_feedback(self: OpenRgb2Mqtt, feedback_id: str, options: dict[str, Any]) -> bool:
        state = self.store.states.get(options.get("deviceId", ""))
        if state is None:
            return False

        try:
            color = Color.parse(options.get("color", WHITE.to_packed()))
        except (TypeError, ValueError):
            return False

        match feedback_id:
            case "ledColor":
                try:
                    led_index = int(options.get("ledIndex", 0))
                except (TypeError, ValueError):
                    return False
                return 0 <= led_index < len(state.colors) and state.colors[led_index] == color
            case "allLedsColor":
                return bool(state.colors) and all(c == color for c in state.colors)
            case _:
                return False

    def register_feedback(self: OpenRgb2Mqtt, instance_id: str, payload: Any) -> bool:
        if not payload:
            self.feedbacks.pop(instance_id, None)
            self.logger.debug(f"feedback {instance_id} unregistered")
            return False
        if not isinstance(payload, dict) or payload.get("feedback") not in self.feedback_definitions:
            self.logger.warning(f"ignoring feedback {instance_id} with unknown definition: {payload}")
            return False

        self.feedbacks[instance_id] = {"feedback": payload["feedback"], "options": payload.get("options") or {}}
        self.logger.debug(f"feedback {instance_id} registered as {payload['feedback']}")
        return True

    async def check_feedbacks(self: OpenRgb2Mqtt, *instance_ids: str) -> None:
        for instance_id in instance_ids or list(self.feedbacks):
            feedback = self.feedbacks.get(instance_id)
            if feedback is None:
                continue
            value = self.evaluate_feedback(feedback["feedback"], feedback["options"])
            await self.publish_feedback_state(instance_id, value)
