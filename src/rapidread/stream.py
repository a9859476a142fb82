import asyncio
import logging
from typing import AsyncIterator, Callable, List, Optional

from .models import SessionSnapshot

logger = logging.getLogger(__name__)

Handler = Callable[[SessionSnapshot], None]


class SnapshotStream:
    """Push-based stream of snapshots that replays the latest to newcomers."""

    def __init__(self) -> None:
        self._latest: Optional[SessionSnapshot] = None
        self._handlers: List[Handler] = []
        self._queues: List[asyncio.Queue] = []
        self._closed = False

    @property
    def latest(self) -> Optional[SessionSnapshot]:
        return self._latest

    def publish(self, snapshot: SessionSnapshot) -> None:
        self._latest = snapshot
        for handler in list(self._handlers):
            self._deliver(handler, snapshot)
        for queue in self._queues:
            queue.put_nowait(snapshot)

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """Registers `handler` and returns a callable that unregisters it."""
        self._handlers.append(handler)
        if self._latest is not None:
            self._deliver(handler, self._latest)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def close(self) -> None:
        """Ends every open `updates()` iterator. Later publishes still reach handlers."""
        self._closed = True
        for queue in self._queues:
            queue.put_nowait(None)

    async def updates(self) -> AsyncIterator[SessionSnapshot]:
        if self._closed:
            return
        queue: asyncio.Queue = asyncio.Queue()
        if self._latest is not None:
            queue.put_nowait(self._latest)
        self._queues.append(queue)
        try:
            while True:
                snapshot = await queue.get()
                if snapshot is None:
                    break
                yield snapshot
        finally:
            self._queues.remove(queue)

    @staticmethod
    def _deliver(handler: Handler, snapshot: SessionSnapshot) -> None:
        try:
            handler(snapshot)
        except Exception:
            # One broken subscriber must not starve the others.
            logger.exception(f"Snapshot subscriber {handler!r} failed")
