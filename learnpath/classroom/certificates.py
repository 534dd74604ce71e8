"""
CertificateIssuer - Issue course certificates once per (learner, course).
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from learnpath.schemas import Certificate, Course, QuizResult

from .progress import ProgressTracker

logger = logging.getLogger(__name__)


class CertificateIssuer:
    """
    Issue certificates when a quiz result makes the learner eligible.

    Re-triggering for the same (learner, course) returns the certificate
    already on record; the store's unique key backs this up.
    """

    def __init__(
        self,
        store: ProgressTracker,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.clock = clock

    def get_certificate(self, course: Course) -> Optional[Certificate]:
        return self.store.get_certificate(course.id)

    def issue(self, course: Course, result: Optional[QuizResult] = None) -> Certificate:
        """
        Issue (or return the existing) certificate for this learner and course.

        Raises:
            ValueError: If the course has no certificate template
        """
        existing = self.store.get_certificate(course.id)
        if existing is not None:
            return existing

        template_id = course.settings.certificate_template_id
        if not template_id:
            raise ValueError(f"Course {course.id} has no certificate template")

        certificate = Certificate(
            id=uuid.uuid4().hex,
            learner_id=self.store.learner_id,
            course_id=course.id,
            certificate_number=Certificate.compute_number(self.store.learner_id, course.id),
            template_id=template_id,
            quiz_id=result.quiz_id if result else None,
            attempt_id=result.attempt_id if result else None,
            score=result.score if result else 0.0,
            percentage=result.percentage if result else 0.0,
            issued_at=self.clock(),
        )
        stored = self.store.insert_certificate(certificate)
        if stored.id == certificate.id:
            logger.info(f"Issued certificate {stored.certificate_number} for course {course.id}")
        return stored

    def issue_if_eligible(self, course: Course, result: QuizResult) -> Optional[Certificate]:
        """
        Issue a certificate if `result` is certificate eligible.

        Returns:
            The certificate on record, or None if not eligible or the course
            has no certificate template
        """
        if not result.certificate_eligible:
            return self.store.get_certificate(course.id)
        if not course.settings.certificate_template_id:
            logger.debug(f"Course {course.id} has no certificate template; skipping issuance")
            return None
        return self.issue(course, result)
