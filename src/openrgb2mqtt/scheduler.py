# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import asyncio
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Awaitable, Callable

from .errors import ConnectivityError, PollTimeoutError

DEFAULT_POLL_TIMEOUT = 30.0


class CancelToken:
    """Cooperative cancellation flag handed to each refresh.

    The refresh checks it after every await and drops its work once it is set.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


Refresh = Callable[[CancelToken], Awaitable[Any]]
Apply = Callable[[Any, CancelToken], Awaitable[None]]


@dataclass
class PollStats:
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    timeouts: int = 0
    last_success: datetime | None = None
    last_error: str | None = None


class PollScheduler:
    """Run `refresh` on a timer or on demand, never more than one at a time.

    Triggers that arrive while a refresh is in flight are folded into a single
    follow-up run. Only `refresh` is raced against `timeout` seconds; a run that
    loses the race has its token cancelled and is left to finish on its own,
    and its result never reaches `apply`. `apply` gets the result of a refresh
    that made its deadline and runs inside the same flight, with no deadline.
    """

    def __init__(
        self,
        refresh: Refresh,
        apply: Apply | None = None,
        timeout: float = DEFAULT_POLL_TIMEOUT,
        logger: logging.Logger | None = None,
    ) -> None:
        self.refresh = refresh
        self.apply = apply
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.stats = PollStats()

        self.interval: float = 0
        self._timer: asyncio.Task[None] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._pending = False
        self._abandoned: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def busy(self) -> bool:
        return self._worker is not None and not self._worker.done()

    # triggering ----------------------------------------------------------------------------------

    def trigger(self) -> None:
        if self.busy:
            self._pending = True
            return
        self._pending = False
        self._worker = asyncio.create_task(self._drain(), name="poll_refresh")

    def start(self, interval: float | None) -> None:
        self.stop()
        self.interval = interval or 0
        if not self.interval:
            self.logger.debug("poll interval is 0, periodic polling disabled")
            return
        self._timer = asyncio.create_task(self._tick(self.interval), name="poll_timer")
        self.logger.debug(f"polling every {self.interval} sec")

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait_idle(self) -> None:
        while self._worker is not None and not self._worker.done():
            await asyncio.shield(self._worker)

    async def close(self) -> None:
        self.stop()
        self._pending = False
        tasks = [t for t in (self._worker, *self._abandoned) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # internals -----------------------------------------------------------------------------------

    async def _tick(self, interval: float) -> None:
        while True:
            try:
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                self.logger.debug("poll timer cancelled during sleep")
                break
            self.trigger()

    async def _drain(self) -> None:
        while True:
            await self._run_once()
            if not self._pending:
                break
            self._pending = False

    async def _run_once(self) -> bool:
        self.stats.attempts += 1
        token = CancelToken()
        body = asyncio.ensure_future(self.refresh(token))

        try:
            done, _ = await asyncio.wait({body}, timeout=self.timeout)
        except asyncio.CancelledError:
            token.cancel()
            body.cancel()
            raise

        if body not in done:
            token.cancel()
            self._abandon(body)
            self._failed(PollTimeoutError(f"poll did not finish within {self.timeout} sec"))
            return False

        if body.cancelled():
            self._failed(ConnectivityError("poll was cancelled"))
            return False

        err = body.exception()
        if err is not None:
            self._failed(err)
            return False

        if self.apply is not None:
            try:
                await self.apply(body.result(), token)
            except asyncio.CancelledError:
                raise
            except Exception as err:
                self._failed(err)
                return False

        self.stats.successes += 1
        self.stats.last_success = datetime.now()
        return True

    def _failed(self, err: BaseException) -> None:
        self.stats.failures += 1
        self.stats.last_error = str(err)

        if isinstance(err, PollTimeoutError):
            self.stats.timeouts += 1
            self.logger.error(f"poll timed out: {err}")
        elif isinstance(err, ConnectivityError):
            self.logger.error(f"poll failed: {err}")
        else:
            self.logger.error(f"unexpected error during poll: {err}", exc_info=err)

    def _abandon(self, body: asyncio.Future[None]) -> None:
        self._abandoned.add(body)  # type: ignore[arg-type]

        def _reap(task: asyncio.Future[None]) -> None:
            self._abandoned.discard(task)  # type: ignore[arg-type]
            if task.cancelled():
                return
            late = task.exception()
            if late is not None:
                self.logger.debug(f"abandoned poll finished with error: {late}")
            else:
                self.logger.debug("abandoned poll finished, result ignored")

        body.add_done_callback(_reap)
