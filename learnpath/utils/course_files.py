"""
Course file loader for learnpath.

Loads course definitions from YAML or JSON files in a courses/ directory.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from learnpath.schemas import Course


COURSE_SUFFIXES = (".yaml", ".yml", ".json")


def read_course_data(path: Path) -> dict[str, Any]:
    """
    Read a raw course definition.

    Args:
        path: Path to a .yaml, .yml or .json file

    Returns:
        Parsed mapping (not yet validated)

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the suffix is not supported or the top level is not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Course file not found: {path}")
    if path.suffix not in COURSE_SUFFIXES:
        raise ValueError(f"Unsupported course file type: {path.suffix}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Course file {path} must contain a mapping at the top level")
    return data


def load_course_file(path: Path) -> Course:
    """
    Load and validate a course definition.

    Raises:
        pydantic.ValidationError: If the definition is structurally invalid
    """
    return Course.model_validate(read_course_data(path))


def get_available_courses(courses_dir: Path) -> list[Path]:
    """
    List course definition files in a directory.

    Returns:
        Sorted list of course file paths
    """
    courses_dir = Path(courses_dir)
    if not courses_dir.exists():
        return []
    return sorted(p for p in courses_dir.iterdir() if p.suffix in COURSE_SUFFIXES)


def load_course_dir(courses_dir: Path) -> list[Course]:
    """Load every course definition in a directory."""
    return [load_course_file(p) for p in get_available_courses(courses_dir)]
