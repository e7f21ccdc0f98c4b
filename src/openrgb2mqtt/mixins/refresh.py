# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations

from typing import TYPE_CHECKING

from openrgb2mqtt.errors import ConnectivityError
from openrgb2mqtt.scheduler import CancelToken
from openrgb2mqtt.snapshot import Snapshot

if TYPE_CHECKING:
    from openrgb2mqtt.interface import OpenRgbServiceProtocol as OpenRgb2Mqtt


class RefreshMixin:
    async def fetch_devices(self: OpenRgb2Mqtt, token: CancelToken) -> Snapshot:
        """The deadline-bound half of a poll: ask OpenRGB for everything and build a snapshot."""
        self.logger.debug("polling devices from OpenRGB")

        try:
            records = await self.fetch_all()
        except ConnectivityError:
            if not self.openrgb_connected:
                self.post_transition("disconnected")
            raise

        if token.cancelled:
            self.logger.debug("poll finished after its deadline, result will be dropped")
        return Snapshot.from_records(records)

    async def apply_devices(self: OpenRgb2Mqtt, snapshot: Snapshot, token: CancelToken) -> None:
        await self.notifier.publish(snapshot, token)

    # change callbacks ----------------------------------------------------------------------------

    async def on_topology_changed(self: OpenRgb2Mqtt) -> None:
        self.update_action_definitions()
        self.update_feedback_definitions()
        await self.publish_definitions()
        await self.publish_removed_devices()

    async def on_state_changed(self: OpenRgb2Mqtt) -> None:
        # the store can be swapped or cleared while we await, stick to this snapshot
        snapshot = self.store.current
        for device_id, device in snapshot.devices.items():
            await self.publish_device_state(device_id, device, snapshot.states.get(device_id))
        await self.check_feedbacks()
