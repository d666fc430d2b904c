"""
Async relayer - asyncio worker that delivers callbacks after a delay.

submit() only enqueues; a background task resolves each request, sleeps for
the configured latency and invokes the engine callback. This models an
off-chain oracle answering at an arbitrary later time.
"""

import asyncio
import random
from typing import Optional

from sealbid.core.auction.decryption import DecryptionCallback, DecryptionRequest
from sealbid.core.errors import AuctionError
from sealbid.relayer.base import OracleRelayer
from sealbid.utils.logger import get_logger

logger = get_logger("relayer.async")


class AsyncRelayer(OracleRelayer):
    """
    Background decryption worker.

    Must be started from inside a running event loop.
    """

    def __init__(
        self,
        provider,
        keypair=None,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(provider, keypair)
        if min_latency < 0 or max_latency < min_latency:
            raise ValueError("Require 0 <= min_latency <= max_latency")
        self.min_latency = min_latency
        self.max_latency = max_latency
        self._rng = rng or random.Random()
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self.delivered = 0
        self.failed = 0

    def start(self) -> None:
        if self._worker is not None:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Relayer {self.address[:10]} started")

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info(f"Relayer {self.address[:10]} stopped")

    def submit(self, request: DecryptionRequest, callback: DecryptionCallback) -> None:
        if self._queue is None:
            raise RuntimeError("AsyncRelayer.start() has not been called")
        self._queue.put_nowait((request, callback))

    async def join(self) -> None:
        """Wait until every submitted request has been delivered."""
        if self._queue is not None:
            await self._queue.join()

    async def _run(self) -> None:
        while True:
            request, callback = await self._queue.get()
            try:
                await self._deliver(request, callback)
            except Exception as e:
                # Keep serving the queue; join() relies on every task_done()
                self.failed += 1
                logger.error(f"Delivery of request {request.request_id} failed: {e}")
            finally:
                self._queue.task_done()

    async def _deliver(self, request: DecryptionRequest, callback: DecryptionCallback) -> None:
        delay = self._rng.uniform(self.min_latency, self.max_latency)
        if delay:
            await asyncio.sleep(delay)

        try:
            plaintext, signature = self.resolve(request)
        except AuctionError as e:
            self.failed += 1
            logger.warning(f"Request {request.request_id} could not be decrypted: {e.message}")
            return

        accepted, err = callback(request.handle, plaintext, signature)
        if accepted:
            self.delivered += 1
        else:
            self.failed += 1
            logger.warning(f"Callback for request {request.request_id} rejected: {err.message}")
