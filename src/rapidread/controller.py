import asyncio
import logging
from typing import Callable, Optional

from .config import settings
from .content import COMPLETED_WORD, PLACEHOLDER_WORD, ContentProvider, ParagraphLibrary
from .errors import DuplicateAnswer, InvalidAnswerIndex, NoTextLoaded
from .models import Screen, SessionPhase, SessionSnapshot, UIState
from .quiz import QuizEngine
from .scheduler import PlaybackScheduler
from .stats import now_ms
from .stream import SnapshotStream
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

SCREENS = {
    SessionPhase.IDLE: Screen.HOME,
    SessionPhase.LOADED: Screen.READING,
    SessionPhase.PLAYING: Screen.READING,
    SessionPhase.COMPLETED: Screen.READING,
    SessionPhase.QUIZ_ACTIVE: Screen.QUIZ,
    SessionPhase.QUIZ_COMPLETED: Screen.RESULTS,
}
QUIZ_PHASES = (SessionPhase.QUIZ_ACTIVE, SessionPhase.QUIZ_COMPLETED)
FINISHED_PHASES = (SessionPhase.COMPLETED,) + QUIZ_PHASES


class SessionController:
    """Single owner of reading and quiz state.

    Every command mutates state through the scheduler or quiz engine and then
    publishes one frozen SessionSnapshot. Commands that do not apply to the
    current phase return the latest snapshot unchanged.
    """

    def __init__(
        self,
        content: Optional[ContentProvider] = None,
        quiz: Optional[QuizEngine] = None,
        stream: Optional[SnapshotStream] = None,
        clock: Callable[[], int] = now_ms,
        rate: int = settings.DEFAULT_RATE,
        quiz_delay_ms: int = settings.QUIZ_DELAY_MS,
    ):
        self.content = content or ParagraphLibrary()
        self.quiz = quiz or QuizEngine()
        self.stream = stream or SnapshotStream()
        self.quiz_delay_ms = quiz_delay_ms
        self.scheduler = PlaybackScheduler(
            on_tick=self._publish,
            on_complete=self._on_complete,
            clock=clock,
            rate=rate,
        )
        self.phase = SessionPhase.IDLE
        self.ui = UIState()
        self.text = ""
        self._reading_speed = self.scheduler.stats.current_speed
        self._quiz_task: Optional[asyncio.Task] = None
        self._version = 0
        self._publish()

    # --- Observation ---
    @property
    def latest(self) -> SessionSnapshot:
        return self.stream.latest

    def snapshot(self) -> SessionSnapshot:
        session = self.scheduler.session
        stats = self.scheduler.stats
        return SessionSnapshot(
            version=self._version,
            phase=self.phase,
            session_id=session.session_id,
            current_word=self._current_word(),
            words_total=len(session.words),
            cursor=session.cursor,
            rate_per_minute=session.rate_per_minute,
            running=session.running,
            stats=stats,
            progress=stats.progress,
            quiz_visible=self.phase in QUIZ_PHASES,
            quiz=self.quiz.state.model_copy(deep=True),
            ui=self.ui.model_copy(update={"screen": SCREENS[self.phase]}),
        )

    # --- Commands ---
    def load_custom_text(self, text: str) -> SessionSnapshot:
        self._load(text)
        return self._publish()

    async def request_generated_text(self, topic: str) -> SessionSnapshot:
        self.ui = self.ui.model_copy(update={"loading": True, "error_message": None})
        self._publish()
        try:
            text = await self.content.lookup_paragraph(topic)
        except Exception as e:
            logger.error(f"Content generation failed for topic {topic!r}: {e}")
            self.ui = self.ui.model_copy(
                update={"loading": False, "error_message": f"Failed to generate text: {e}"}
            )
            return self._publish()

        self.ui = self.ui.model_copy(update={"loading": False})
        self._load(text)
        return self._publish()

    def start(self) -> SessionSnapshot:
        if self.phase == SessionPhase.PLAYING or self.phase in FINISHED_PHASES:
            return self.latest
        try:
            self.scheduler.start()
        except NoTextLoaded as e:
            self.ui = self.ui.model_copy(update={"error_message": str(e)})
            return self._publish()

        self.phase = SessionPhase.PLAYING
        self._clear_error()
        return self._publish()

    def pause(self) -> SessionSnapshot:
        if self.phase != SessionPhase.PLAYING:
            return self.latest
        self.scheduler.pause()
        self.phase = SessionPhase.LOADED
        return self._publish()

    def reset(self) -> SessionSnapshot:
        self._cancel_quiz_delay()
        self.quiz.close()
        self.scheduler.reset()
        self.phase = self._resting_phase()
        self._clear_error()
        return self._publish()

    def set_speed(self, rate: int) -> SessionSnapshot:
        self.scheduler.set_rate(rate)
        return self._publish()

    def select_answer(self, question_index: int, option_index: int) -> SessionSnapshot:
        if self.phase != SessionPhase.QUIZ_ACTIVE:
            logger.debug(f"Ignoring answer outside an active quiz ({self.phase.value})")
            return self.latest
        try:
            state = self.quiz.select_answer(
                question_index, option_index, self._reading_speed
            )
        except (InvalidAnswerIndex, DuplicateAnswer) as e:
            logger.debug(f"Ignoring answer: {e}")
            return self.latest

        if state.completed:
            self.phase = SessionPhase.QUIZ_COMPLETED
        return self._publish()

    def close_quiz(self) -> SessionSnapshot:
        if self.phase not in QUIZ_PHASES:
            return self.latest
        self.quiz.close()
        self.phase = self._resting_phase()
        return self._publish()

    def toggle_focus_mode(self) -> SessionSnapshot:
        self.ui = self.ui.model_copy(update={"focus_mode": not self.ui.focus_mode})
        return self._publish()

    def close(self) -> None:
        """Cancels every outstanding timer task and ends the update feed."""
        self._cancel_quiz_delay()
        self.scheduler.close()
        self.stream.close()

    # --- Internals ---
    def _load(self, text: str) -> None:
        self._cancel_quiz_delay()
        self.quiz.close()
        self.text = text or ""
        self.scheduler.load(tokenize(self.text))
        self.phase = self._resting_phase()
        self._clear_error()

    def _on_complete(self) -> None:
        self.phase = SessionPhase.COMPLETED
        self._reading_speed = self.scheduler.stats.current_speed
        self._quiz_task = asyncio.create_task(self._open_quiz_after_delay())
        self._publish()

    async def _open_quiz_after_delay(self) -> None:
        await asyncio.sleep(self.quiz_delay_ms / 1000)
        try:
            self.quiz.generate(self.text)
        except Exception:
            logger.exception("Quiz generation failed")
            return
        finally:
            self._quiz_task = None
        self.phase = SessionPhase.QUIZ_ACTIVE
        self._publish()

    def _cancel_quiz_delay(self) -> None:
        if self._quiz_task is not None and not self._quiz_task.done():
            self._quiz_task.cancel()
        self._quiz_task = None

    def _resting_phase(self) -> SessionPhase:
        return SessionPhase.LOADED if self.scheduler.session.words else SessionPhase.IDLE

    def _clear_error(self) -> None:
        if self.ui.error_message is not None:
            self.ui = self.ui.model_copy(update={"error_message": None})

    def _current_word(self) -> str:
        session = self.scheduler.session
        if self.phase in FINISHED_PHASES:
            return COMPLETED_WORD
        if not session.words:
            return PLACEHOLDER_WORD
        return session.words[max(session.cursor - 1, 0)]

    def _publish(self) -> SessionSnapshot:
        self._version += 1
        snapshot = self.snapshot()
        self.stream.publish(snapshot)
        return snapshot
