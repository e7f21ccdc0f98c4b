# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import logging
from typing import Awaitable, Callable, Sequence

from .scheduler import CancelToken
from .snapshot import Snapshot, SnapshotDiff, SnapshotStore

Callback = Callable[[], Awaitable[None]]


class ChangeNotifier:
    """Swap a fresh snapshot into the store and tell consumers what changed.

    Topology callbacks regenerate command and feedback definitions, state
    callbacks re-evaluate feedbacks. State callbacks fire when colors changed
    and also after any topology change, since fresh definitions need a fresh
    evaluation. The store is replaced before any callback runs, so consumers
    always read the new snapshot.
    """

    def __init__(
        self,
        store: SnapshotStore,
        on_topology_changed: Sequence[Callback] = (),
        on_state_changed: Sequence[Callback] = (),
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.on_topology_changed = list(on_topology_changed)
        self.on_state_changed = list(on_state_changed)
        self.logger = logger or logging.getLogger(__name__)

    async def publish(self, snapshot: Snapshot, token: CancelToken | None = None) -> SnapshotDiff:
        if token is not None and token.cancelled:
            self.logger.debug("poll was cancelled, leaving snapshot untouched")
            return SnapshotDiff(topology_changed=False, state_changed=False)

        diff = self.store.apply(snapshot)

        if diff.topology_changed:
            self.logger.info(f"device topology changed ({len(snapshot.devices)} devices)")
            for callback in self.on_topology_changed:
                await callback()

        # new feedback definitions need a fresh evaluation too
        if diff.state_changed or diff.topology_changed:
            self.logger.debug("device state changed")
            for callback in self.on_state_changed:
                await callback()

        return diff
