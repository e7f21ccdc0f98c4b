# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from unittest.mock import AsyncMock, MagicMock

import pytest

from openrgb2mqtt.notifier import ChangeNotifier
from openrgb2mqtt.scheduler import CancelToken
from openrgb2mqtt.snapshot import Snapshot, SnapshotStore

from conftest import raw_device


def _notifier() -> tuple[ChangeNotifier, AsyncMock, AsyncMock]:
    topology = AsyncMock()
    state = AsyncMock()
    return ChangeNotifier(SnapshotStore(), [topology], [state], logger=MagicMock()), topology, state


class TestPublish:
    @pytest.mark.asyncio
    async def test_bootstrap_fires_both(self):
        notifier, topology, state = _notifier()
        diff = await notifier.publish(Snapshot.from_records([raw_device("Strip A", "1", 0, [0])]))

        assert diff.topology_changed and diff.state_changed
        topology.assert_awaited_once()
        state.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_color_change_fires_state_only(self):
        notifier, topology, state = _notifier()
        await notifier.publish(Snapshot.from_records([raw_device("Strip A", "123", 0, [0xFFFFFF] * 10)]))
        topology.reset_mock()
        state.reset_mock()

        colors = [0xFFFFFF] * 10
        colors[9] = 0x000000
        diff = await notifier.publish(Snapshot.from_records([raw_device("Strip A", "123", 0, colors)]))

        assert not diff.topology_changed
        assert diff.state_changed
        topology.assert_not_awaited()
        state.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_same_snapshot_twice_is_quiet(self):
        notifier, topology, state = _notifier()
        records = [raw_device("Strip A", "1", 0, [0x123456])]
        await notifier.publish(Snapshot.from_records(records))
        topology.reset_mock()
        state.reset_mock()

        diff = await notifier.publish(Snapshot.from_records(records))

        assert not diff.changed
        topology.assert_not_awaited()
        state.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_consumers_see_new_snapshot(self):
        store = SnapshotStore()
        seen = []

        async def on_topology() -> None:
            seen.append(set(store.devices))

        notifier = ChangeNotifier(store, [on_topology], [], logger=MagicMock())
        await notifier.publish(Snapshot.from_records([raw_device("Strip A", "1", 0, [0]), raw_device("Fan", "2", 1, [0])]))

        assert seen == [{"Strip A:1", "Fan:2"}]

    @pytest.mark.asyncio
    async def test_cancelled_token_leaves_store_alone(self):
        notifier, topology, state = _notifier()
        token = CancelToken()
        token.cancel()

        diff = await notifier.publish(Snapshot.from_records([raw_device("Strip A", "1", 0, [0])]), token)

        assert not diff.changed
        assert notifier.store.is_empty
        topology.assert_not_awaited()
        state.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_topology_only_change_still_fires_state(self):
        notifier, topology, state = _notifier()
        record = raw_device("Strip A", "1", 0, [0xFF0000, 0xFF0000])
        await notifier.publish(Snapshot.from_records([record]))
        topology.reset_mock()
        state.reset_mock()

        renamed = {**record, "leds": [{"name": "Top"}, {"name": "Bottom"}]}
        diff = await notifier.publish(Snapshot.from_records([renamed]))

        assert diff.topology_changed
        assert not diff.state_changed
        topology.assert_awaited_once()
        state.assert_awaited_once()
