import unittest

from rapidread.content import KeywordRule, KeywordTable
from rapidread.errors import DuplicateAnswer, InvalidAnswerIndex
from rapidread.models import FeedbackType, QuestionCategory
from rapidread.quiz import (
    COMPREHENSION_DECOYS,
    DETAIL_DECOYS,
    MAIN_TOPIC_DECOYS,
    KeywordQuizGenerator,
    QuizEngine,
)

PHOTOSYNTHESIS = (
    "Photosynthesis feeds the planet. Plants turn light into sugar every day. "
    "Oxygen is released as a by-product! Life on Earth depends on it."
)


class KeywordTableTests(unittest.TestCase):
    def test_first_matching_rule_wins(self) -> None:
        table = KeywordTable(
            [
                KeywordRule(("alpha",), "first"),
                KeywordRule(("beta", "alpha"), "second"),
            ],
            default="none",
        )
        self.assertEqual(table.lookup("ALPHA and beta"), "first")
        self.assertEqual(table.lookup("just Beta"), "second")
        self.assertEqual(table.lookup("gamma"), "none")

    def test_require_all(self) -> None:
        rule = KeywordRule(("reading", "speed"), "both", require_all=True)
        self.assertTrue(rule.matches("speed reading"))
        self.assertFalse(rule.matches("reading only"))

    def test_mixed_case_keywords_match_any_case_text(self) -> None:
        table = KeywordTable([KeywordRule(("Photosynthesis",), "bio")], default="none")
        self.assertEqual(table.lookup("photosynthesis in PLANTS"), "bio")
        self.assertEqual(table.lookup("PHOTOSYNTHESIS"), "bio")


class KeywordQuizGeneratorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.questions = KeywordQuizGenerator().generate(PHOTOSYNTHESIS)

    def test_fixed_categories_and_order(self) -> None:
        self.assertEqual(
            [q.category for q in self.questions],
            [
                QuestionCategory.MAIN_TOPIC,
                QuestionCategory.DETAIL,
                QuestionCategory.COMPREHENSION,
            ],
        )
        for question in self.questions:
            self.assertEqual(len(question.options), 4)
            self.assertEqual(question.correct_option_index, 0)

    def test_read_alone_names_the_reading_topic(self) -> None:
        questions = KeywordQuizGenerator().generate("I like to read books on the train.")
        self.assertEqual(questions[0].options[0], "Reading and comprehension techniques")

    def test_main_topic_label(self) -> None:
        main = self.questions[0]
        self.assertEqual(main.options[0], "Photosynthesis in plants")
        self.assertEqual(main.options[1:], MAIN_TOPIC_DECOYS)

    def test_detail_uses_middle_sentence(self) -> None:
        # Four sentences pass the length filter; index 4 // 2 == 2.
        detail = self.questions[1]
        self.assertEqual(detail.options[0], "Oxygen is released as a by-product")
        self.assertEqual(detail.options[1:], DETAIL_DECOYS)

    def test_central_idea_label(self) -> None:
        comprehension = self.questions[2]
        self.assertEqual(
            comprehension.options[0], "Photosynthesis is essential for life on Earth"
        )
        self.assertEqual(comprehension.options[1:], COMPREHENSION_DECOYS)

    def test_defaults_when_nothing_matches(self) -> None:
        questions = KeywordQuizGenerator().generate("the quick brown fox jumps")
        self.assertEqual(questions[0].options[0], "Developing skills and knowledge")
        self.assertEqual(questions[1].options[0], "the quick brown fox jumps")
        self.assertEqual(
            questions[2].options[0], "Knowledge grows through study and practice"
        )

    def test_detail_is_empty_without_sentences(self) -> None:
        questions = KeywordQuizGenerator().generate("tiny. text.")
        self.assertEqual(questions[1].options[0], "")

    def test_tables_are_independent(self) -> None:
        # "history" alone picks a topic label but the central idea needs both words.
        questions = KeywordQuizGenerator().generate("A short history lesson about nothing")
        self.assertEqual(questions[0].options[0], "History and development of Brazil")
        self.assertEqual(
            questions[2].options[0], "Knowledge grows through study and practice"
        )


class QuizEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = QuizEngine()
        self.engine.generate(PHOTOSYNTHESIS)

    def test_generate_gives_fresh_state(self) -> None:
        state = self.engine.state
        self.assertEqual(len(state.questions), 3)
        self.assertEqual(state.answers, {})
        self.assertFalse(state.completed)
        self.assertIsNone(state.result)

    def test_all_correct_completes_on_last_question(self) -> None:
        self.engine.select_answer(0, 0, reading_speed=500)
        state = self.engine.select_answer(1, 0, reading_speed=500)
        self.assertFalse(state.completed)
        self.assertEqual(state.current_index, 2)

        state = self.engine.select_answer(2, 0, reading_speed=500)
        self.assertTrue(state.completed)
        self.assertEqual(state.answers, {0: 0, 1: 0, 2: 0})
        self.assertEqual(state.result.comprehension_rate, 100)
        self.assertEqual(state.result.final_score, 500)
        self.assertEqual(state.result.feedback_type, FeedbackType.BALANCED)

    def test_first_answer_is_final(self) -> None:
        self.engine.select_answer(0, 2, reading_speed=300)
        with self.assertRaises(DuplicateAnswer):
            self.engine.select_answer(0, 0, reading_speed=300)
        self.assertEqual(self.engine.state.answers, {0: 2})

    def test_out_of_range_indices(self) -> None:
        with self.assertRaises(InvalidAnswerIndex):
            self.engine.select_answer(3, 0, reading_speed=300)
        with self.assertRaises(InvalidAnswerIndex):
            self.engine.select_answer(-1, 0, reading_speed=300)
        with self.assertRaises(InvalidAnswerIndex):
            self.engine.select_answer(0, 4, reading_speed=300)
        self.assertEqual(self.engine.state.answers, {})

    def test_last_index_triggers_scoring_even_out_of_order(self) -> None:
        state = self.engine.select_answer(2, 0, reading_speed=300)
        self.assertTrue(state.completed)
        self.assertEqual(state.result.comprehension_rate, 33)
        self.assertEqual(state.result.final_score, 99)
        with self.assertRaises(DuplicateAnswer):
            self.engine.select_answer(0, 0, reading_speed=300)

    def test_previous_states_are_not_mutated(self) -> None:
        before = self.engine.state
        self.engine.select_answer(0, 1, reading_speed=300)
        self.assertEqual(before.answers, {})

    def test_close_resets_to_empty(self) -> None:
        self.engine.select_answer(0, 0, reading_speed=300)
        state = self.engine.close()
        self.assertEqual(state.questions, [])
        self.assertEqual(state.answers, {})
        self.assertFalse(state.completed)

    def test_answer_without_quiz(self) -> None:
        self.engine.close()
        with self.assertRaises(InvalidAnswerIndex):
            self.engine.select_answer(0, 0, reading_speed=300)


if __name__ == "__main__":
    unittest.main()
