#!/usr/bin/env python3
"""
compile_catalog.py - Bundle course definitions into a catalog.db.

Validates every course file in a directory (YAML or JSON) and writes them
into a single SQLite database for runtime serving.

Usage:
  python scripts/compile_catalog.py
  python scripts/compile_catalog.py --courses courses --output data/catalog.db
"""

import argparse
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv(PROJECT_ROOT / ".env")

from pydantic import ValidationError

from learnpath.classroom.engine import ordering_errors
from learnpath.classroom.loader import write_catalog
from learnpath.config import load_settings
from learnpath.schemas import Course
from learnpath.utils import get_available_courses, load_course_file

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Integrity Checks
# -----------------------------------------------------------------------------

def run_integrity_checks(courses: list[Course]) -> list[str]:
    """Find problems that would make a course fail closed at runtime."""
    issues = []

    seen = set()
    for course in courses:
        if course.id in seen:
            issues.append(f"Duplicate course id: {course.id}")
        seen.add(course.id)

        issues.extend(f"{course.id}: {e}" for e in ordering_errors(course))

        if not course.modules:
            issues.append(f"{course.id}: course has no modules")

        for _, node in course.iter_nodes():
            if node.type == "clip" and not node.clip_id:
                issues.append(f"{course.id}: clip node {node.id} has no clip_id")
            if node.type == "quiz" and not node.quiz.questions:
                issues.append(f"{course.id}: quiz {node.quiz.id} has no questions")

    return issues


def main():
    parser = argparse.ArgumentParser(
        description="Compile course catalog database from course definition files",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--courses",
        type=Path,
        default=PROJECT_ROOT / "courses",
        help="Path to course definitions directory"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output database path (default: LEARNPATH_CATALOG_DB or ~/.learnpath/catalog.db)"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort if any integrity check fails"
    )

    args = parser.parse_args()
    output = args.output or load_settings().catalog_path

    paths = get_available_courses(args.courses)
    if not paths:
        logger.error(f"No course files found in {args.courses}")
        sys.exit(1)

    logger.info(f"Loading {len(paths)} course files...")
    courses = []
    failed = 0
    for path in paths:
        try:
            courses.append(load_course_file(path))
        except (ValidationError, ValueError) as e:
            failed += 1
            logger.error(f"  {path.name}: {e}")
    logger.info(f"  Loaded {len(courses)} courses ({failed} failed)")

    logger.info("Running integrity checks...")
    issues = run_integrity_checks(courses)
    if issues:
        logger.warning(f"Found {len(issues)} integrity issues:")
        for issue in issues[:10]:
            logger.warning(f"  - {issue}")
        if len(issues) > 10:
            logger.warning(f"  ... and {len(issues) - 10} more")
        if args.strict:
            sys.exit(1)
    else:
        logger.info("  All integrity checks passed!")

    count = write_catalog(output, courses)

    logger.info("\n" + "=" * 50)
    logger.info("COMPILATION COMPLETE")
    logger.info("=" * 50)
    logger.info(f"Database: {output}")
    logger.info(f"Courses: {count}")
    logger.info(f"Nodes: {sum(1 for c in courses for _ in c.iter_nodes())}")
    logger.info(f"Estimated study time: {sum(c.estimated_duration for c in courses):.0f} minutes")
    if issues:
        logger.warning(f"Integrity issues: {len(issues)}")


if __name__ == "__main__":
    main()
