import uuid
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .config import settings


def _new_id() -> str:
    return str(uuid.uuid4())


# --- Enums ---
class QuestionCategory(str, Enum):
    MAIN_TOPIC = "main_topic"
    DETAIL = "detail"
    COMPREHENSION = "comprehension"


class FeedbackType(str, Enum):
    BALANCED = "balanced"
    COMPREHENSION_HIGH = "comprehension_high"
    IMPROVEMENT = "improvement"
    COMPREHENSION_LOW = "comprehension_low"


class Screen(str, Enum):
    HOME = "home"
    READING = "reading"
    QUIZ = "quiz"
    RESULTS = "results"


class SessionPhase(str, Enum):
    IDLE = "idle"
    LOADED = "loaded"
    PLAYING = "playing"
    COMPLETED = "completed"
    QUIZ_ACTIVE = "quiz_active"
    QUIZ_COMPLETED = "quiz_completed"


# --- Reading ---
class ReadingSession(BaseModel):
    """One loaded text with its playback position and rate."""

    model_config = ConfigDict(frozen=True)

    words: Tuple[str, ...] = ()
    cursor: int = Field(default=0, ge=0)
    rate_per_minute: int = Field(
        default=settings.DEFAULT_RATE, ge=settings.MIN_RATE, le=settings.MAX_RATE
    )
    running: bool = False
    started_at_ms: Optional[int] = None
    session_id: str = Field(default_factory=_new_id)


class ReadingStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    words_read: int = 0
    elapsed_seconds: int = 0
    current_speed: int = settings.DEFAULT_RATE
    average_speed: int = 0
    progress: float = 0.0


# --- Quiz ---
class QuizQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    prompt: str
    options: List[str]
    correct_option_index: int
    explanation: str
    category: QuestionCategory = QuestionCategory.COMPREHENSION


class Feedback(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: FeedbackType
    message: str
    suggestions: List[str]


class QuizResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    reading_speed: int
    comprehension_rate: int = Field(ge=0, le=100)
    final_score: int
    feedback_type: FeedbackType
    feedback_message: str
    suggestions: List[str]
    timestamp_ms: int


class QuizState(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_index: int = 0
    questions: List[QuizQuestion] = []
    answers: Dict[int, int] = {}
    completed: bool = False
    result: Optional[QuizResult] = None


# --- Presentation-facing state ---
class UIState(BaseModel):
    model_config = ConfigDict(frozen=True)

    screen: Screen = Screen.HOME
    loading: bool = False
    error_message: Optional[str] = None
    focus_mode: bool = False


class SessionSnapshot(BaseModel):
    """Everything the presentation layer needs to render one frame."""

    model_config = ConfigDict(frozen=True)

    version: int
    phase: SessionPhase
    session_id: str
    current_word: str
    words_total: int
    cursor: int
    rate_per_minute: int
    running: bool
    stats: ReadingStats
    progress: float
    quiz_visible: bool
    quiz: QuizState
    ui: UIState
