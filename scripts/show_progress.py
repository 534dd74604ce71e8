#!/usr/bin/env python3
"""
show_progress.py - Print a learner's progress through a course.

Reads the course from catalog.db and the learner's events from progress.db,
derives lock/completion state and prints the course tree.

Usage:
  python scripts/show_progress.py --course safety_101
  python scripts/show_progress.py --course safety_101 --learner alice --complete node_1_1
  python scripts/show_progress.py --course safety_101 --watch     # reprint every refresh interval
"""

import argparse
import logging
import sys
import time
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv(PROJECT_ROOT / ".env")

from learnpath.classroom import CourseLoader, Navigator, ProgressTracker, ScheduledRefresh
from learnpath.config import load_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def print_tree(navigator: Navigator):
    summary = navigator.get_progress_summary()
    print(f"\n{navigator.course.title or navigator.course.id}")
    print(f"  {summary['completed']}/{summary['total_nodes']} nodes, "
          f"{summary['completion_percent']}% of required content")

    for nav_module in navigator.get_navigation_tree():
        lock = " (locked)" if nav_module.state.is_locked else ""
        print(f"\n  {nav_module.module.title or nav_module.module.id}{lock} "
              f"[{nav_module.completed_count}/{nav_module.total_count}]")
        for nav_node in nav_module.nodes:
            indicator = navigator.get_status_indicator(nav_node.node.id)
            optional = "" if nav_node.node.is_required else " (optional)"
            print(f"    {indicator} {nav_node.node.title or nav_node.node.id}{optional}")

    if summary["certificate_number"]:
        print(f"\n  Certificate: {summary['certificate_number']}")
    for issue in summary["issues"]:
        print(f"\n  ! {issue}")


def main():
    parser = argparse.ArgumentParser(
        description="Show a learner's progress through a course",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--course",
        required=True,
        help="Course ID"
    )
    parser.add_argument(
        "--learner",
        default=None,
        help="Learner ID (default: LEARNPATH_LEARNER_ID or 'default')"
    )
    parser.add_argument(
        "--catalog",
        type=Path,
        default=None,
        help="Path to catalog.db"
    )
    parser.add_argument(
        "--complete",
        metavar="NODE_ID",
        default=None,
        help="Mark a clip node as watched before printing"
    )
    parser.add_argument(
        "--snapshot",
        action="store_true",
        help="Record a per-module progress snapshot"
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep reprinting on the configured refresh interval"
    )

    args = parser.parse_args()
    settings = load_settings()

    try:
        loader = CourseLoader(args.catalog or settings.catalog_path)
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)

    course = loader.get_course(args.course)
    if course is None:
        logger.error(f"Course not found: {args.course}")
        sys.exit(1)

    progress = ProgressTracker(settings.progress_path, args.learner or settings.learner_id)
    navigator = Navigator(course, progress)

    if args.complete:
        if not navigator.is_node_available(args.complete):
            logger.error(f"Node {args.complete} is locked")
            sys.exit(1)
        next_id = navigator.complete_node(args.complete)
        logger.info(f"Completed {args.complete}; next: {next_id or 'none'}")

    if args.snapshot:
        snapshots = navigator.record_progress_snapshot()
        logger.info(f"Recorded {len(snapshots)} module snapshots")

    if not args.watch:
        print_tree(navigator)
        return

    refresh = ScheduledRefresh(lambda: print_tree(navigator), settings.refresh_seconds)
    try:
        while True:
            refresh.tick()
            time.sleep(refresh.seconds_until_due())
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()
