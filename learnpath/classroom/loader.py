"""
CourseLoader - Load course content from catalog.db SQLite database.

Provides read-only access to:
- Published courses (full definitions with modules, nodes and quizzes)
- Course summaries for listings
- Catalog metadata
"""

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from learnpath.schemas import Course


CATALOG_SCHEMA = """
-- Courses table (content holds the full course definition)
CREATE TABLE IF NOT EXISTS courses (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    position INTEGER NOT NULL,
    module_count INTEGER NOT NULL,
    node_count INTEGER NOT NULL,
    estimated_duration REAL,
    content JSON NOT NULL
);

-- Metadata table
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""


@dataclass
class CourseSummary:
    """Lightweight course info for listings (without modules)."""
    id: str
    title: str
    description: Optional[str]
    position: int
    module_count: int
    node_count: int
    estimated_duration: float


def write_catalog(db_path: Path, courses: list[Course], replace: bool = True) -> int:
    """
    Write courses into a catalog database.

    Args:
        db_path: Output catalog.db path
        courses: Validated course definitions, in listing order
        replace: Remove an existing database first

    Returns:
        Number of courses written
    """
    db_path = Path(db_path)
    if replace and db_path.exists():
        db_path.unlink()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    try:
        conn.executescript(CATALOG_SCHEMA)
        for position, course in enumerate(courses, 1):
            conn.execute(
                """INSERT OR REPLACE INTO courses
                   (id, title, description, position, module_count, node_count,
                    estimated_duration, content)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    course.id,
                    course.title or course.id,
                    course.description,
                    position,
                    len(course.modules),
                    sum(len(m.nodes) for m in course.modules),
                    course.estimated_duration,
                    course.model_dump_json(),
                )
            )
        conn.executemany(
            "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
            [
                ("compiled_at", datetime.now(timezone.utc).isoformat()),
                ("course_count", str(len(courses))),
            ]
        )
        conn.commit()
    finally:
        conn.close()
    return len(courses)


class CourseLoader:
    """
    Load course content from SQLite database.

    Thread-safe for read operations. Each method creates a new connection.
    Courses returned are immutable for the duration of a player session.
    """

    def __init__(self, db_path: str | Path):
        """
        Initialize loader with path to catalog.db.

        Args:
            db_path: Path to catalog.db file
        """
        self.db_path = Path(db_path)
        if not self.db_path.exists():
            raise FileNotFoundError(f"Course catalog not found: {db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def get_metadata(self, key: str) -> Optional[str]:
        """Get metadata value by key."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "SELECT value FROM metadata WHERE key = ?", (key,)
            )
            row = cursor.fetchone()
            return row["value"] if row else None
        finally:
            conn.close()

    def get_all_metadata(self) -> dict[str, str]:
        """Get all metadata as a dictionary."""
        conn = self._get_connection()
        try:
            cursor = conn.execute("SELECT key, value FROM metadata")
            return {row["key"]: row["value"] for row in cursor.fetchall()}
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Courses
    # -------------------------------------------------------------------------

    def get_course_summaries(self) -> list[CourseSummary]:
        """Get all courses ordered by position."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT id, title, description, position, module_count, node_count,
                          estimated_duration
                   FROM courses ORDER BY position"""
            )
            return [
                CourseSummary(
                    id=row["id"],
                    title=row["title"],
                    description=row["description"],
                    position=row["position"],
                    module_count=row["module_count"],
                    node_count=row["node_count"],
                    estimated_duration=row["estimated_duration"] or 0.0,
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    def get_course(self, course_id: str) -> Optional[Course]:
        """Get a full course definition by ID."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "SELECT content FROM courses WHERE id = ?", (course_id,)
            )
            row = cursor.fetchone()
            if not row:
                return None
            return Course.model_validate(json.loads(row["content"]))
        finally:
            conn.close()

    def get_course_count(self) -> int:
        """Get total number of courses."""
        conn = self._get_connection()
        try:
            cursor = conn.execute("SELECT COUNT(*) AS n FROM courses")
            return cursor.fetchone()["n"]
        finally:
            conn.close()
