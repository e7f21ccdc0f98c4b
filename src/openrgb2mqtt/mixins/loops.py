# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from __future__ import annotations

import asyncio
import signal

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from openrgb2mqtt.interface import OpenRgbServiceProtocol as OpenRgb2Mqtt


class LoopsMixin:
    async def service_state_loop(self: OpenRgb2Mqtt) -> None:
        while self.running:
            await self.publish_service_state()
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                self.logger.debug("service_state_loop cancelled during sleep")
                break

    async def heartbeat(self: OpenRgb2Mqtt) -> None:
        while self.running:
            self.heartbeat_ready()
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                self.logger.debug("heartbeat cancelled during sleep")
                break

    async def watch_running(self: OpenRgb2Mqtt, tasks: list[asyncio.Task]) -> None:
        # signal handlers only flip self.running; this turns that into task cancellation
        while self.running:
            try:
                await asyncio.sleep(1)
            except asyncio.CancelledError:
                break
        for task in tasks:
            task.cancel()

    # main loop
    async def main_loop(self: OpenRgb2Mqtt) -> None:
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                signal.signal(sig, self._handle_signal)
            except (ValueError, OSError):
                self.logger.debug(f"cannot install handler for {sig}")

        self.running = True
        self.update_action_definitions()
        self.update_feedback_definitions()
        await self.open_connection()
        self.mark_ready()

        tasks = [
            asyncio.create_task(self.connection_loop(), name="connection_loop"),
            asyncio.create_task(self.service_state_loop(), name="service_state_loop"),
            asyncio.create_task(self.heartbeat(), name="heartbeat"),
        ]
        watcher = asyncio.create_task(self.watch_running(tasks), name="watch_running")

        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            self.logger.warning("main loop cancelled, shutting down")
        except Exception as err:
            self.logger.exception(f"unhandled exception in main loop: {err}")
            self.running = False
        finally:
            watcher.cancel()
            self.logger.info("all loops terminated")
