"""
Quiz grading tests, one class per question type.
"""

import pytest

from learnpath.classroom.grading import grade_question, grade_quiz, is_answer_correct
from learnpath.schemas import (
    MultipleChoiceQuestion,
    Quiz,
    QuizAnswer,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)


@pytest.fixture
def safety_quiz():
    return Quiz(
        id="quiz-1",
        title="Safety Knowledge Check",
        questions=[
            MultipleChoiceQuestion(
                id="q1",
                question="What is the first thing you should do when entering a manufacturing facility?",
                options=["Check your phone", "Put on safety equipment", "Start working immediately"],
                correct_answer="Put on safety equipment",
                points=10,
                order=1,
                remediation_clip_id="clip-1",
            ),
            TrueFalseQuestion(
                id="q2",
                question="It is acceptable to remove safety glasses when working with machinery.",
                correct_answer=False,
                points=10,
                order=2,
            ),
            ShortAnswerQuestion(
                id="q3",
                question="What does PPE stand for?",
                correct_answer="Personal Protective Equipment",
                points=10,
                order=3,
            ),
        ],
    )


class TestMultipleChoice:

    def test_single_answer(self):
        q = MultipleChoiceQuestion(id="q", question="?", options=["a", "b"], correct_answer="b")
        assert is_answer_correct(q, "b")
        assert not is_answer_correct(q, "a")
        assert is_answer_correct(q, ["b"])

    def test_multi_select_matches_as_set(self):
        q = MultipleChoiceQuestion(id="q", question="?", options=["a", "b", "c"], correct_answer=["a", "c"])
        assert is_answer_correct(q, ["c", "a"])
        assert not is_answer_correct(q, ["a"])
        assert not is_answer_correct(q, ["a", "b", "c"])

    def test_answer_must_be_an_option(self):
        with pytest.raises(ValueError):
            MultipleChoiceQuestion(id="q", question="?", options=["a", "b"], correct_answer="z")

    def test_needs_two_options(self):
        with pytest.raises(ValueError):
            MultipleChoiceQuestion(id="q", question="?", options=["a"], correct_answer="a")


class TestTrueFalse:

    def test_bool_answers(self):
        q = TrueFalseQuestion(id="q", question="?", correct_answer=False)
        assert is_answer_correct(q, False)
        assert not is_answer_correct(q, True)

    def test_string_answers(self):
        q = TrueFalseQuestion(id="q", question="?", correct_answer=True)
        assert is_answer_correct(q, "true")
        assert is_answer_correct(q, " True ")
        assert not is_answer_correct(q, "false")
        assert not is_answer_correct(q, "maybe")

    def test_string_correct_answer_coerced(self):
        q = TrueFalseQuestion(id="q", question="?", correct_answer="false")
        assert q.correct_answer is False


class TestShortAnswer:

    def test_case_and_whitespace_insensitive(self):
        q = ShortAnswerQuestion(id="q", question="?", correct_answer="Personal Protective Equipment")
        assert is_answer_correct(q, "  personal   protective equipment ")
        assert not is_answer_correct(q, "PPE")

    def test_accepted_answers(self):
        q = ShortAnswerQuestion(id="q", question="?", correct_answer="Lockout/Tagout", accepted_answers=["LOTO"])
        assert is_answer_correct(q, "loto")

    def test_case_sensitive(self):
        q = ShortAnswerQuestion(id="q", question="?", correct_answer="CNC", case_sensitive=True)
        assert is_answer_correct(q, "CNC")
        assert not is_answer_correct(q, "cnc")

    def test_non_text_answer_wrong(self):
        q = ShortAnswerQuestion(id="q", question="?", correct_answer="yes")
        assert not is_answer_correct(q, ["yes"])


class TestGradeQuiz:

    def test_all_correct(self, safety_quiz):
        answers = [
            QuizAnswer(question_id="q1", answer="Put on safety equipment"),
            QuizAnswer(question_id="q2", answer=False),
            QuizAnswer(question_id="q3", answer="personal protective equipment"),
        ]
        results, score, max_score, percentage = grade_quiz(safety_quiz, answers)
        assert [r.question_id for r in results] == ["q1", "q2", "q3"]
        assert score == 30
        assert max_score == 30
        assert percentage == 100.0

    def test_unanswered_scores_zero(self, safety_quiz):
        answers = [QuizAnswer(question_id="q2", answer=False)]
        results, score, _, percentage = grade_quiz(safety_quiz, answers)
        assert score == 10
        assert abs(percentage - 100 / 3) < 0.001
        assert results[0].user_answer is None
        assert not results[0].is_correct

    def test_unknown_question_ignored(self, safety_quiz):
        answers = [QuizAnswer(question_id="nope", answer="x")]
        _, score, _, _ = grade_quiz(safety_quiz, answers)
        assert score == 0

    def test_empty_quiz(self):
        results, score, max_score, percentage = grade_quiz(Quiz(id="empty", title="Empty"), [])
        assert results == []
        assert max_score == 0
        assert percentage == 100.0

    def test_question_result_fields(self, safety_quiz):
        result = grade_question(safety_quiz.questions[0], "Check your phone")
        assert result.type == "multiple_choice"
        assert result.points_earned == 0
        assert result.max_points == 10
        assert result.correct_answer == "Put on safety equipment"
        assert result.remediation_clip_id == "clip-1"
