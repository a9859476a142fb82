import time

from .config import settings
from .models import ReadingSession, ReadingStats


def now_ms() -> int:
    return int(time.time() * 1000)


def clamp_rate(rate: int) -> int:
    return max(settings.MIN_RATE, min(settings.MAX_RATE, int(rate)))


def tick_interval_ms(rate: int) -> int:
    """Milliseconds between two word advances at `rate` words per minute."""
    return round(60000 / rate)


def compute_stats(session: ReadingSession, now: int) -> ReadingStats:
    """Derives reading metrics from the session as of `now` (epoch ms)."""
    words_read = session.cursor
    if session.started_at_ms is not None:
        elapsed = max(0, (now - session.started_at_ms) // 1000)
    else:
        elapsed = 0

    if elapsed > 0:
        current_speed = max(1, round(words_read * 60 / elapsed))
    else:
        current_speed = session.rate_per_minute

    progress = words_read / len(session.words) if session.words else 0.0

    return ReadingStats(
        words_read=words_read,
        elapsed_seconds=elapsed,
        current_speed=current_speed,
        average_speed=current_speed,
        progress=progress,
    )
