# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from openrgb2mqtt.errors import ConnectivityError
from openrgb2mqtt.mixins.helpers import validate_openrgb_config

if TYPE_CHECKING:
    from openrgb2mqtt.interface import OpenRgbServiceProtocol as OpenRgb2Mqtt

TRANSITIONS = ("connected", "disconnected", "device_list_changed")


class ConnectionMixin:
    def post_transition(self: OpenRgb2Mqtt, transition: str) -> None:
        if transition not in TRANSITIONS:
            raise ValueError(f"unknown connection transition: {transition}")
        self.transitions.put_nowait(transition)

    def poll_interval_seconds(self: OpenRgb2Mqtt) -> float:
        return int(self.openrgb_config["poll_interval"]) / 1000

    async def set_status(self: OpenRgb2Mqtt, status: str, message: str = "") -> None:
        if status == self.status and message == self.status_message:
            return
        self.status = status
        self.status_message = message
        self.logger.info(f"OpenRGB status: {status}{f' ({message})' if message else ''}")
        await self.publish_service_status()

    async def open_connection(self: OpenRgb2Mqtt) -> None:
        await self.set_status("connecting")
        try:
            await self.connect_openrgb()
        except ConnectivityError as err:
            await self.set_status("connection_failure", f"Connection failed: {err}")
            self.schedule_reconnect()
            return
        self.post_transition("connected")

    def schedule_reconnect(self: OpenRgb2Mqtt) -> None:
        if self.reconnect_task is not None and not self.reconnect_task.done():
            return
        delay = float(self.openrgb_config["reconnect_delay"])

        async def _later() -> None:
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                self.logger.debug("reconnect cancelled during sleep")
                return
            if self.running:
                await self.open_connection()

        self.reconnect_task = asyncio.create_task(_later(), name="openrgb_reconnect")

    def cancel_reconnect(self: OpenRgb2Mqtt) -> None:
        if self.reconnect_task is not None:
            self.reconnect_task.cancel()
            self.reconnect_task = None

    async def handle_transition(self: OpenRgb2Mqtt, transition: str) -> None:
        match transition:
            case "connected":
                await self.set_status("ok")
                self.scheduler.trigger()
                self.scheduler.start(self.poll_interval_seconds())
            case "disconnected":
                # keep the last-known snapshot across a transient drop
                self.scheduler.stop()
                await self.set_status("disconnected")
                self.schedule_reconnect()
            case "device_list_changed":
                self.scheduler.trigger()
            case _:
                self.logger.warning(f"ignoring unknown connection transition: {transition}")

    async def connection_loop(self: OpenRgb2Mqtt) -> None:
        while self.running:
            try:
                transition = await self.transitions.get()
            except asyncio.CancelledError:
                self.logger.debug("connection_loop cancelled while waiting")
                break
            await self.handle_transition(transition)

    async def reconfigure(self: OpenRgb2Mqtt, changes: dict[str, Any]) -> None:
        """Apply new OpenRGB settings; raises ConfigError and changes nothing if they are invalid."""
        old = self.openrgb_config
        new = validate_openrgb_config({**old, **changes})
        self.openrgb_config = new
        self.scheduler.timeout = new["poll_timeout"]

        if new["host"] != old["host"] or new["port"] != old["port"]:
            self.logger.info(f"OpenRGB endpoint changed to {new['host']}:{new['port']}")
            self.scheduler.stop()
            self.cancel_reconnect()
            await self.disconnect_openrgb()

            self.store.clear()
            await self.on_topology_changed()
            await self.on_state_changed()

            await self.open_connection()
        elif new["poll_interval"] != old["poll_interval"]:
            self.logger.info(f"poll interval changed to {new['poll_interval']} ms")
            # while disconnected the "connected" transition will start the timer
            if self.openrgb_connected:
                self.scheduler.start(self.poll_interval_seconds())

        await self.publish_service_state()
