"""
Runtime configuration for learnpath.

Values come from environment variables, optionally loaded from a .env file
in the working directory.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


DEFAULT_HOME = Path.home() / ".learnpath"


class Settings(BaseModel):
    """Paths and defaults used by the loader, progress store and scripts."""
    home: Path = DEFAULT_HOME
    catalog_db: Optional[Path] = None
    progress_db: Optional[Path] = None
    learner_id: str = "default"
    refresh_seconds: float = Field(default=30.0, gt=0)

    @property
    def catalog_path(self) -> Path:
        return self.catalog_db or self.home / "catalog.db"

    @property
    def progress_path(self) -> Path:
        return self.progress_db or self.home / "progress.db"


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env_file: Optional .env path (default: search from the working directory)

    Returns:
        Settings populated from LEARNPATH_* variables
    """
    load_dotenv(env_file)

    values = {}
    if os.environ.get("LEARNPATH_HOME"):
        values["home"] = Path(os.environ["LEARNPATH_HOME"]).expanduser()
    if os.environ.get("LEARNPATH_CATALOG_DB"):
        values["catalog_db"] = Path(os.environ["LEARNPATH_CATALOG_DB"]).expanduser()
    if os.environ.get("LEARNPATH_PROGRESS_DB"):
        values["progress_db"] = Path(os.environ["LEARNPATH_PROGRESS_DB"]).expanduser()
    if os.environ.get("LEARNPATH_LEARNER_ID"):
        values["learner_id"] = os.environ["LEARNPATH_LEARNER_ID"]
    if os.environ.get("LEARNPATH_REFRESH_SECONDS"):
        values["refresh_seconds"] = float(os.environ["LEARNPATH_REFRESH_SECONDS"])

    return Settings(**values)
