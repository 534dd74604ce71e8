"""
learnpath - Learning path progression engine.

Derives lock/completion state for courses of clips and quizzes from a
learner's completion events, and governs quiz attempts and certificates.
"""

__version__ = "0.1.0"
