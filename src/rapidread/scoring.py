import logging
from typing import Callable, Mapping, Optional, Sequence

from .content import DEFAULT_FEEDBACK, FeedbackTable
from .models import FeedbackType, QuizQuestion, QuizResult
from .stats import now_ms

logger = logging.getLogger(__name__)

HIGH_COMPREHENSION = 80
FAIR_COMPREHENSION = 60
HIGH_SPEED = 400


def comprehension_rate(
    questions: Sequence[QuizQuestion], answers: Mapping[int, int]
) -> int:
    """Percentage of questions whose recorded answer is correct."""
    if not questions:
        return 0
    correct = sum(
        1
        for index, question in enumerate(questions)
        if answers.get(index) == question.correct_option_index
    )
    return round(correct / len(questions) * 100)


def final_score(reading_speed: int, rate: int) -> int:
    return (reading_speed * rate) // 100


def select_feedback(rate: int, speed: int) -> FeedbackType:
    if rate >= HIGH_COMPREHENSION and speed >= HIGH_SPEED:
        return FeedbackType.BALANCED
    if rate >= HIGH_COMPREHENSION:
        return FeedbackType.COMPREHENSION_HIGH
    if rate >= FAIR_COMPREHENSION:
        return FeedbackType.IMPROVEMENT
    return FeedbackType.COMPREHENSION_LOW


class ScoringEngine:
    def __init__(
        self,
        feedback: Optional[FeedbackTable] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.feedback = feedback or DEFAULT_FEEDBACK
        self.clock = clock

    def score(
        self,
        questions: Sequence[QuizQuestion],
        answers: Mapping[int, int],
        reading_speed: int,
    ) -> QuizResult:
        rate = comprehension_rate(questions, answers)
        feedback = self.feedback.get(select_feedback(rate, reading_speed))
        result = QuizResult(
            reading_speed=reading_speed,
            comprehension_rate=rate,
            final_score=final_score(reading_speed, rate),
            feedback_type=feedback.type,
            feedback_message=feedback.message,
            suggestions=feedback.suggestions,
            timestamp_ms=self.clock(),
        )
        logger.info(
            f"Quiz scored: speed={reading_speed} comprehension={rate}% "
            f"score={result.final_score} feedback={feedback.type.value}"
        )
        return result
