"""
learnpath Schemas - Pydantic models for the learning path engine.

This module exports all schema classes for:
- Course: nodes, modules, courses and course settings
- Quiz: question types, quiz definitions, results and retake options
- Progress: node status, completion events, progress snapshots
- Certificate: issued certificates
"""

# Progress schemas
from .progress import (
    NodeStatus,
    node_status,
    CompletionEvent,
    LearnerEventLog,
    ProgressSnapshot,
)

# Quiz schemas
from .quiz import (
    MultipleChoiceQuestion,
    TrueFalseQuestion,
    ShortAnswerQuestion,
    QuizQuestion,
    QuizSettings,
    Quiz,
    QuizAnswer,
    QuestionResult,
    QuizResult,
    RetakeOptions,
    compute_percentage,
)

# Course schemas
from .course import (
    CourseSettings,
    Node,
    Module,
    Course,
)

# Certificate schemas
from .certificate import Certificate

__all__ = [
    # Progress
    'NodeStatus',
    'node_status',
    'CompletionEvent',
    'LearnerEventLog',
    'ProgressSnapshot',
    # Quiz
    'MultipleChoiceQuestion',
    'TrueFalseQuestion',
    'ShortAnswerQuestion',
    'QuizQuestion',
    'QuizSettings',
    'Quiz',
    'QuizAnswer',
    'QuestionResult',
    'QuizResult',
    'RetakeOptions',
    'compute_percentage',
    # Course
    'CourseSettings',
    'Node',
    'Module',
    'Course',
    # Certificate
    'Certificate',
]
