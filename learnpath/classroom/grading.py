"""
Quiz grading - score answers against a quiz definition.

Each question type is graded by its own rule:
- multiple_choice: exact option match; a list answer must match as a set
- true_false: boolean match (accepts "true"/"false" strings)
- short_answer: trimmed text match against the answer or accepted variants
"""

from typing import Optional, assert_never

from learnpath.schemas import (
    MultipleChoiceQuestion,
    QuestionResult,
    Quiz,
    QuizAnswer,
    ShortAnswerQuestion,
    TrueFalseQuestion,
    compute_percentage,
)


def _as_bool(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "t", "yes"):
            return True
        if lowered in ("false", "f", "no"):
            return False
    return None


def _normalize_text(value: str, case_sensitive: bool) -> str:
    text = " ".join(value.split())
    return text if case_sensitive else text.lower()


def is_answer_correct(question, answer) -> bool:
    """Check one answer. A missing answer is always wrong."""
    if answer is None:
        return False

    if isinstance(question, MultipleChoiceQuestion):
        if isinstance(question.correct_answer, list):
            given = [answer] if isinstance(answer, str) else answer
            return isinstance(given, list) and set(given) == set(question.correct_answer)
        if isinstance(answer, list):
            return answer == [question.correct_answer]
        return answer == question.correct_answer
    elif isinstance(question, TrueFalseQuestion):
        return _as_bool(answer) is question.correct_answer
    elif isinstance(question, ShortAnswerQuestion):
        if not isinstance(answer, str):
            return False
        given = _normalize_text(answer, question.case_sensitive)
        accepted = [question.correct_answer, *question.accepted_answers]
        return any(given == _normalize_text(a, question.case_sensitive) for a in accepted)
    else:
        assert_never(question)


def grade_question(question, answer) -> QuestionResult:
    correct = is_answer_correct(question, answer)
    return QuestionResult(
        question_id=question.id,
        question=question.question,
        type=question.type,
        user_answer=answer,
        correct_answer=question.correct_answer,
        is_correct=correct,
        points_earned=question.points if correct else 0.0,
        max_points=question.points,
        explanation=question.explanation,
        remediation_clip_id=question.remediation_clip_id,
    )


def grade_quiz(quiz: Quiz, answers: list[QuizAnswer]) -> tuple[list[QuestionResult], float, float, float]:
    """
    Grade a full submission.

    Answers for unknown question ids are ignored; unanswered questions score 0.

    Returns:
        Tuple of (question results in quiz order, score, max_score, percentage)
    """
    by_question = {a.question_id: a.answer for a in answers}
    results = [grade_question(q, by_question.get(q.id)) for q in quiz.ordered_questions()]
    score = sum(r.points_earned for r in results)
    max_score = sum(r.max_points for r in results)
    return results, score, max_score, compute_percentage(score, max_score)
