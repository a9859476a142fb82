import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from .content import CENTRAL_IDEAS, TOPIC_LABELS, KeywordTable
from .errors import DuplicateAnswer, InvalidAnswerIndex
from .models import QuestionCategory, QuizQuestion, QuizState
from .scoring import ScoringEngine
from .tokenizer import split_sentences

logger = logging.getLogger(__name__)

MAIN_TOPIC_DECOYS = [
    "Memorization techniques",
    "History of technology",
    "Study methods",
]
DETAIL_DECOYS = [
    "The text does not mention this specific information",
    "This statement contradicts what was presented",
    "This information was not in the text",
]
COMPREHENSION_DECOYS = [
    "The text focuses mainly on theoretical aspects",
    "The approach presented is purely academic",
    "The content only stresses basic concepts",
]


# --- Strategy Pattern: Quiz Generators ---
class QuizGenerator(ABC):
    """Abstract Base Class for question generation strategies."""

    @abstractmethod
    def generate(self, text: str) -> List[QuizQuestion]:
        pass


class KeywordQuizGenerator(QuizGenerator):
    """Builds the fixed main-topic / detail / comprehension trio.

    The generated answer is always placed first, so the correct option index
    is 0 for every question.
    """

    def __init__(
        self,
        topics: Optional[KeywordTable] = None,
        central_ideas: Optional[KeywordTable] = None,
    ):
        self.topics = topics or TOPIC_LABELS
        self.central_ideas = central_ideas or CENTRAL_IDEAS

    def generate(self, text: str) -> List[QuizQuestion]:
        return [
            QuizQuestion(
                prompt="What is the main topic of the text?",
                options=[self.topics.lookup(text)] + MAIN_TOPIC_DECOYS,
                correct_option_index=0,
                explanation="The main topic is identified by the most telling keywords in the text.",
                category=QuestionCategory.MAIN_TOPIC,
            ),
            QuizQuestion(
                prompt="According to the text, which statement is correct?",
                options=[self._key_sentence(text)] + DETAIL_DECOYS,
                correct_option_index=0,
                explanation="This information was present in the text you just read.",
                category=QuestionCategory.DETAIL,
            ),
            QuizQuestion(
                prompt="What is the central idea the text conveys?",
                options=[self.central_ideas.lookup(text)] + COMPREHENSION_DECOYS,
                correct_option_index=0,
                explanation="The central idea connects every concept presented in the text.",
                category=QuestionCategory.COMPREHENSION,
            ),
        ]

    @staticmethod
    def _key_sentence(text: str) -> str:
        sentences = split_sentences(text)
        if not sentences:
            return ""
        return sentences[len(sentences) // 2]


# --- Service Layer: Quiz bookkeeping ---
class QuizEngine:
    """Holds the current quiz and records set-once answers."""

    def __init__(
        self,
        generator: Optional[QuizGenerator] = None,
        scoring: Optional[ScoringEngine] = None,
    ):
        self.generator = generator or KeywordQuizGenerator()
        self.scoring = scoring or ScoringEngine()
        self.state = QuizState()

    def generate(self, text: str) -> QuizState:
        self.state = QuizState(questions=self.generator.generate(text))
        logger.info(f"Quiz generated with {len(self.state.questions)} questions")
        return self.state

    def select_answer(
        self, question_index: int, option_index: int, reading_speed: int
    ) -> QuizState:
        questions = self.state.questions
        if not (0 <= question_index < len(questions)):
            raise InvalidAnswerIndex(f"No question at index {question_index}")
        if not (0 <= option_index < len(questions[question_index].options)):
            raise InvalidAnswerIndex(f"No option at index {option_index}")
        if self.state.completed:
            raise DuplicateAnswer("Quiz already completed")
        if question_index in self.state.answers:
            raise DuplicateAnswer(f"Question {question_index} already answered")

        answers = dict(self.state.answers)
        answers[question_index] = option_index
        update = {
            "answers": answers,
            "current_index": min(question_index + 1, len(questions) - 1),
        }

        # Scoring fires on the final question slot, not on "all answered".
        if question_index == len(questions) - 1:
            update["completed"] = True
            update["result"] = self.scoring.score(questions, answers, reading_speed)

        self.state = self.state.model_copy(update=update)
        return self.state

    def close(self) -> QuizState:
        self.state = QuizState()
        return self.state
