"""
ProgressTracker - Learner event log in ~/.learnpath/progress.db.

Stores learner progress separately from course content:
- Completion events (append-only; lock/complete flags are never stored)
- Quiz results, one row per submitted attempt
- The in-flight quiz attempt per (learner, quiz)
- Per-module progress snapshots
- Issued certificates
- Current player position
"""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from learnpath.config import DEFAULT_HOME
from learnpath.schemas import (
    Certificate,
    CompletionEvent,
    LearnerEventLog,
    ProgressSnapshot,
    QuizResult,
)


DEFAULT_PROGRESS_DIR = DEFAULT_HOME
DEFAULT_PROGRESS_DB = DEFAULT_PROGRESS_DIR / "progress.db"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressTracker:
    """
    Track learner progress in a SQLite database.

    Progress is stored separately from content (catalog.db) so that:
    - Content can be republished without losing progress
    - Progress is learner-specific, content is shared
    """

    def __init__(self, db_path: Optional[Path] = None, learner_id: str = "default"):
        """
        Initialize progress tracker.

        Args:
            db_path: Path to progress.db (default: ~/.learnpath/progress.db)
            learner_id: Learner identifier for multi-user support
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_PROGRESS_DB
        self.learner_id = learner_id
        self._ensure_database()

    def _ensure_database(self):
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS completion_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    learner_id TEXT NOT NULL,
                    course_id TEXT NOT NULL,
                    node_id TEXT NOT NULL,
                    completed_at TEXT NOT NULL,
                    time_spent INTEGER NOT NULL DEFAULT 0
                );

                CREATE TABLE IF NOT EXISTS quiz_results (
                    attempt_id TEXT PRIMARY KEY,
                    learner_id TEXT NOT NULL,
                    course_id TEXT NOT NULL,
                    quiz_id TEXT NOT NULL,
                    node_id TEXT NOT NULL,
                    attempt_number INTEGER NOT NULL,
                    completed_at TEXT NOT NULL,
                    payload JSON NOT NULL,
                    UNIQUE (learner_id, course_id, quiz_id, attempt_number)
                );

                CREATE TABLE IF NOT EXISTS inflight_attempts (
                    learner_id TEXT NOT NULL,
                    course_id TEXT NOT NULL,
                    quiz_id TEXT NOT NULL,
                    attempt_id TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    PRIMARY KEY (learner_id, course_id, quiz_id)
                );

                CREATE TABLE IF NOT EXISTS progress_snapshots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    learner_id TEXT NOT NULL,
                    course_id TEXT NOT NULL,
                    module_id TEXT NOT NULL,
                    progress REAL NOT NULL,
                    recorded_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS certificates (
                    id TEXT PRIMARY KEY,
                    learner_id TEXT NOT NULL,
                    course_id TEXT NOT NULL,
                    certificate_number TEXT NOT NULL,
                    template_id TEXT NOT NULL,
                    quiz_id TEXT,
                    attempt_id TEXT,
                    score REAL,
                    percentage REAL,
                    issued_at TEXT NOT NULL,
                    UNIQUE (learner_id, course_id)
                );

                CREATE TABLE IF NOT EXISTS learner_state (
                    learner_id TEXT NOT NULL,
                    course_id TEXT NOT NULL,
                    current_node_id TEXT,
                    last_activity_at TEXT,
                    PRIMARY KEY (learner_id, course_id)
                );

                CREATE INDEX IF NOT EXISTS idx_completion_learner_course
                ON completion_events(learner_id, course_id);

                CREATE INDEX IF NOT EXISTS idx_quiz_results_learner_quiz
                ON quiz_results(learner_id, course_id, quiz_id);
            """)
            conn.commit()
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    # -------------------------------------------------------------------------
    # Completion Events
    # -------------------------------------------------------------------------

    def record_completion(self, course_id: str, event: CompletionEvent):
        """Append a completion event to the learner's log."""
        conn = self._get_connection()
        try:
            conn.execute(
                """INSERT INTO completion_events
                   (learner_id, course_id, node_id, completed_at, time_spent)
                   VALUES (?, ?, ?, ?, ?)""",
                (self.learner_id, course_id, event.node_id,
                 event.completed_at.isoformat(), event.time_spent)
            )
            conn.execute(
                """INSERT INTO learner_state (learner_id, course_id, last_activity_at)
                   VALUES (?, ?, ?)
                   ON CONFLICT(learner_id, course_id) DO UPDATE SET
                     last_activity_at = excluded.last_activity_at""",
                (self.learner_id, course_id, event.completed_at.isoformat())
            )
            conn.commit()
        finally:
            conn.close()

    def complete_node(
        self,
        course_id: str,
        node_id: str,
        time_spent: int = 0,
        completed_at: Optional[datetime] = None,
    ) -> CompletionEvent:
        """Build and record a completion event for a node."""
        event = CompletionEvent(
            node_id=node_id,
            completed_at=completed_at or _utcnow(),
            time_spent=time_spent,
        )
        self.record_completion(course_id, event)
        return event

    def get_event_log(self, course_id: str) -> LearnerEventLog:
        """Full completion history for a course, oldest first."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT node_id, completed_at, time_spent
                   FROM completion_events
                   WHERE learner_id = ? AND course_id = ?
                   ORDER BY id""",
                (self.learner_id, course_id)
            )
            events = tuple(
                CompletionEvent(
                    node_id=row["node_id"],
                    completed_at=datetime.fromisoformat(row["completed_at"]),
                    time_spent=row["time_spent"],
                )
                for row in cursor.fetchall()
            )
            return LearnerEventLog(
                learner_id=self.learner_id,
                course_id=course_id,
                completions=events,
            )
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Quiz Results
    # -------------------------------------------------------------------------

    def store_quiz_result(self, result: QuizResult):
        """
        Store a submitted attempt.

        Raises:
            sqlite3.IntegrityError: If this attempt number was already used
        """
        conn = self._get_connection()
        try:
            conn.execute(
                """INSERT INTO quiz_results
                   (attempt_id, learner_id, course_id, quiz_id, node_id,
                    attempt_number, completed_at, payload)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (result.attempt_id, self.learner_id, result.course_id, result.quiz_id,
                 result.node_id, result.attempts_used, result.completed_at.isoformat(),
                 result.model_dump_json())
            )
            conn.execute(
                """DELETE FROM inflight_attempts
                   WHERE learner_id = ? AND course_id = ? AND quiz_id = ?""",
                (self.learner_id, result.course_id, result.quiz_id)
            )
            conn.commit()
        finally:
            conn.close()

    def get_quiz_results(self, course_id: str, quiz_id: Optional[str] = None) -> list[QuizResult]:
        """Quiz results for a course (optionally one quiz), in attempt order."""
        conn = self._get_connection()
        try:
            if quiz_id is None:
                cursor = conn.execute(
                    """SELECT payload FROM quiz_results
                       WHERE learner_id = ? AND course_id = ?
                       ORDER BY completed_at, attempt_number""",
                    (self.learner_id, course_id)
                )
            else:
                cursor = conn.execute(
                    """SELECT payload FROM quiz_results
                       WHERE learner_id = ? AND course_id = ? AND quiz_id = ?
                       ORDER BY attempt_number""",
                    (self.learner_id, course_id, quiz_id)
                )
            return [QuizResult.model_validate_json(row["payload"]) for row in cursor.fetchall()]
        finally:
            conn.close()

    def count_attempts(self, course_id: str, quiz_id: str) -> int:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT COUNT(*) AS n FROM quiz_results
                   WHERE learner_id = ? AND course_id = ? AND quiz_id = ?""",
                (self.learner_id, course_id, quiz_id)
            )
            return cursor.fetchone()["n"]
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # In-flight Attempts
    # -------------------------------------------------------------------------

    def get_inflight_attempt(self, course_id: str, quiz_id: str) -> Optional[str]:
        """ID of the begun-but-unsubmitted attempt, if any."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT attempt_id FROM inflight_attempts
                   WHERE learner_id = ? AND course_id = ? AND quiz_id = ?""",
                (self.learner_id, course_id, quiz_id)
            )
            row = cursor.fetchone()
            return row["attempt_id"] if row else None
        finally:
            conn.close()

    def set_inflight_attempt(self, course_id: str, quiz_id: str, attempt_id: str) -> str:
        """Register an in-flight attempt; an existing one is kept and returned."""
        conn = self._get_connection()
        try:
            conn.execute(
                """INSERT INTO inflight_attempts
                   (learner_id, course_id, quiz_id, attempt_id, started_at)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(learner_id, course_id, quiz_id) DO NOTHING""",
                (self.learner_id, course_id, quiz_id, attempt_id, _utcnow().isoformat())
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_inflight_attempt(course_id, quiz_id)

    def clear_inflight_attempt(self, course_id: str, quiz_id: str) -> bool:
        """Discard the in-flight attempt. Returns True if one existed."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """DELETE FROM inflight_attempts
                   WHERE learner_id = ? AND course_id = ? AND quiz_id = ?""",
                (self.learner_id, course_id, quiz_id)
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Progress Snapshots
    # -------------------------------------------------------------------------

    def record_snapshots(self, course_id: str, snapshots: list[ProgressSnapshot]):
        """Append per-module progress snapshots."""
        conn = self._get_connection()
        try:
            conn.executemany(
                """INSERT INTO progress_snapshots
                   (learner_id, course_id, module_id, progress, recorded_at)
                   VALUES (?, ?, ?, ?, ?)""",
                [
                    (self.learner_id, course_id, s.module_id, s.progress, s.recorded_at.isoformat())
                    for s in snapshots
                ]
            )
            conn.commit()
        finally:
            conn.close()

    def get_snapshots(self, course_id: str) -> list[ProgressSnapshot]:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT module_id, progress, recorded_at FROM progress_snapshots
                   WHERE learner_id = ? AND course_id = ?
                   ORDER BY id""",
                (self.learner_id, course_id)
            )
            return [
                ProgressSnapshot(
                    module_id=row["module_id"],
                    progress=row["progress"],
                    recorded_at=datetime.fromisoformat(row["recorded_at"]),
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Certificates
    # -------------------------------------------------------------------------

    def insert_certificate(self, certificate: Certificate) -> Certificate:
        """
        Insert a certificate unless one exists for (learner, course).

        Returns:
            The stored certificate (the existing one if already issued)
        """
        conn = self._get_connection()
        try:
            conn.execute(
                """INSERT INTO certificates
                   (id, learner_id, course_id, certificate_number, template_id,
                    quiz_id, attempt_id, score, percentage, issued_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(learner_id, course_id) DO NOTHING""",
                (certificate.id, self.learner_id, certificate.course_id,
                 certificate.certificate_number, certificate.template_id,
                 certificate.quiz_id, certificate.attempt_id, certificate.score,
                 certificate.percentage, certificate.issued_at.isoformat())
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_certificate(certificate.course_id)

    def get_certificate(self, course_id: str) -> Optional[Certificate]:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT * FROM certificates WHERE learner_id = ? AND course_id = ?""",
                (self.learner_id, course_id)
            )
            row = cursor.fetchone()
            if not row:
                return None
            return Certificate(
                id=row["id"],
                learner_id=row["learner_id"],
                course_id=row["course_id"],
                certificate_number=row["certificate_number"],
                template_id=row["template_id"],
                quiz_id=row["quiz_id"],
                attempt_id=row["attempt_id"],
                score=row["score"] or 0.0,
                percentage=row["percentage"] or 0.0,
                issued_at=datetime.fromisoformat(row["issued_at"]),
            )
        finally:
            conn.close()

    def count_certificates(self, course_id: str) -> int:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT COUNT(*) AS n FROM certificates WHERE learner_id = ? AND course_id = ?""",
                (self.learner_id, course_id)
            )
            return cursor.fetchone()["n"]
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Learner State
    # -------------------------------------------------------------------------

    def get_current_node_id(self, course_id: str) -> Optional[str]:
        """Get the node the learner last opened in a course."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT current_node_id FROM learner_state
                   WHERE learner_id = ? AND course_id = ?""",
                (self.learner_id, course_id)
            )
            row = cursor.fetchone()
            return row["current_node_id"] if row else None
        finally:
            conn.close()

    def set_current_node_id(self, course_id: str, node_id: str):
        """Set the current node for a course."""
        conn = self._get_connection()
        try:
            now = _utcnow().isoformat()
            conn.execute(
                """INSERT INTO learner_state (learner_id, course_id, current_node_id, last_activity_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(learner_id, course_id) DO UPDATE SET
                     current_node_id = excluded.current_node_id,
                     last_activity_at = excluded.last_activity_at""",
                (self.learner_id, course_id, node_id, now)
            )
            conn.commit()
        finally:
            conn.close()
