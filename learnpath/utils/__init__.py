"""learnpath utilities."""

from .course_files import (
    read_course_data,
    load_course_file,
    load_course_dir,
    get_available_courses,
)

__all__ = [
    "read_course_data",
    "load_course_file",
    "load_course_dir",
    "get_available_courses",
]
