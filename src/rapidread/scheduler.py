import asyncio
import logging
from typing import Callable, Optional, Sequence

from .config import settings
from .errors import NoTextLoaded
from .models import ReadingSession, ReadingStats
from .stats import clamp_rate, compute_stats, now_ms, tick_interval_ms

logger = logging.getLogger(__name__)


class PlaybackScheduler:
    """Advances a reading session one word per tick on the running event loop.

    At most one tick task is outstanding. Every command that changes playback
    bumps the generation token and cancels the pending task before touching
    the session, so a stale task can never advance the cursor.
    """

    def __init__(
        self,
        on_tick: Optional[Callable[[], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
        clock: Callable[[], int] = now_ms,
        rate: int = settings.DEFAULT_RATE,
    ):
        self.on_tick = on_tick
        self.on_complete = on_complete
        self.clock = clock
        self.session = ReadingSession(rate_per_minute=clamp_rate(rate))
        self.stats = compute_stats(self.session, self.clock())
        self._task: Optional[asyncio.Task] = None
        self._token = 0

    # --- Read-only views ---
    @property
    def running(self) -> bool:
        return self.session.running

    @property
    def exhausted(self) -> bool:
        return self.session.cursor >= len(self.session.words)

    @property
    def interval_ms(self) -> int:
        return tick_interval_ms(self.session.rate_per_minute)

    # --- Commands ---
    def load(self, words: Sequence[str]) -> ReadingStats:
        self._cancel()
        self.session = ReadingSession(
            words=tuple(words), rate_per_minute=self.session.rate_per_minute
        )
        logger.info(f"Loaded {len(self.session.words)} words [{self.session.session_id}]")
        return self._refresh()

    def start(self) -> ReadingStats:
        if not self.session.words:
            raise NoTextLoaded()
        if self.session.running:
            return self.stats

        # Spawning first leaves the session untouched when no loop is running.
        self._spawn(delay_first=False)
        update = {"running": True}
        if self.session.started_at_ms is None:
            update["started_at_ms"] = self.clock()
        self.session = self.session.model_copy(update=update)
        logger.info(
            f"Playback started at {self.session.rate_per_minute} PPM "
            f"from word {self.session.cursor}"
        )
        return self._refresh()

    def pause(self) -> ReadingStats:
        self._cancel()
        if self.session.running:
            self.session = self.session.model_copy(update={"running": False})
            logger.info(f"Playback paused at word {self.session.cursor}")
        return self._refresh()

    def reset(self) -> ReadingStats:
        self._cancel()
        self.session = self.session.model_copy(
            update={"cursor": 0, "running": False, "started_at_ms": None}
        )
        return self._refresh()

    def set_rate(self, rate: int) -> ReadingStats:
        clamped = clamp_rate(rate)
        self.session = self.session.model_copy(update={"rate_per_minute": clamped})
        if self.session.running:
            # The word on screen keeps its place; the new interval starts now.
            self._cancel()
            self._spawn(delay_first=True)
        return self._refresh()

    def close(self) -> None:
        self._cancel()
        if self.session.running:
            self.session = self.session.model_copy(update={"running": False})

    # --- Tick loop ---
    def _spawn(self, delay_first: bool) -> None:
        loop = asyncio.get_running_loop()
        self._token += 1
        self._task = loop.create_task(self._run(self._token, delay_first))

    def _cancel(self) -> None:
        self._token += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _is_current(self, token: int) -> bool:
        return token == self._token and self.session.running

    async def _run(self, token: int, delay_first: bool) -> None:
        interval = self.interval_ms / 1000
        if delay_first:
            await asyncio.sleep(interval)

        while self._is_current(token):
            if self.exhausted:
                self._finish()
                return
            self._advance()
            await asyncio.sleep(interval)

    def _advance(self) -> None:
        self.session = self.session.model_copy(
            update={"cursor": self.session.cursor + 1}
        )
        self._refresh()
        if self.on_tick:
            self.on_tick()

    def _finish(self) -> None:
        self._task = None
        self.session = self.session.model_copy(update={"running": False})
        self._refresh()
        logger.info(
            f"Playback complete: {self.stats.words_read} words "
            f"in {self.stats.elapsed_seconds}s [{self.session.session_id}]"
        )
        if self.on_complete:
            self.on_complete()

    def _refresh(self) -> ReadingStats:
        self.stats = compute_stats(self.session, self.clock())
        return self.stats
