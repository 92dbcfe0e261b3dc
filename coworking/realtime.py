import asyncio
import logging
from typing import Callable, Optional

from coworking.cache import QueryCache, QueryKind
from coworking.errors import SubscriptionError
from coworking.store.base import Capability, DataStore

logger = logging.getLogger(__name__)

BOOKINGS_TABLE = "desk_bookings"
REALTIME_SCOPES = (QueryKind.DESK_BOOKINGS, QueryKind.DESK_STATS, QueryKind.NEXT_DATES)


class RealtimeReconciler:
    """
    Turns booking change notifications into cache invalidations.

    Notifications can arrive on any thread. They are handed to the event
    loop and queued; a single consumer task drains the queue. A full queue
    drops the notification since the queued ones already cover it.
    """

    def __init__(
        self,
        store: DataStore,
        cache: QueryCache,
        table: str = BOOKINGS_TABLE,
        max_pending: int = 16,
    ):
        self.store = store
        self.cache = cache
        self.table = table
        self.max_pending = max_pending
        self.processed = 0
        self.dropped = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def active(self) -> bool:
        return self._task is not None

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def start(self) -> bool:
        if self._task is not None:
            return True
        if not self.store.supports(Capability.SUBSCRIBE):
            logger.info(f"{type(self.store).__name__} has no change notifications, realtime disabled")
            return False

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self.max_pending)
        try:
            self._unsubscribe = self.store.subscribe(self.table, self._on_change)
        except SubscriptionError as e:
            logger.warning(f"Realtime subscription to {self.table} failed: {e}")
            self._queue = None
            self._loop = None
            return False

        self._task = self._loop.create_task(self._consume())
        logger.info(f"Realtime reconciliation started for {self.table}")
        return True

    def _on_change(self, change):
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self._enqueue, change)
        except RuntimeError:
            # loop closed between the check and the call
            logger.debug(f"Dropping change on {self.table}: event loop closed")

    def _enqueue(self, change):
        if self._queue is None:
            return
        try:
            self._queue.put_nowait(change)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug(f"Change queue full, dropping {change}")

    async def _consume(self):
        while True:
            change = await self._queue.get()
            try:
                self.invalidate()
                self.processed += 1
                logger.debug(f"Reconciled cache after {change}")
            finally:
                self._queue.task_done()

    def invalidate(self):
        for kind in REALTIME_SCOPES:
            self.cache.invalidate(kind)

    async def join(self):
        """Wait until every queued notification has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Realtime consumer for {self.table} had failed: {e}")
            self._task = None
            logger.info(f"Realtime reconciliation stopped for {self.table}")
        self._queue = None
        self._loop = None
