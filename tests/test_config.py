"""
Settings loading tests.
"""

from pathlib import Path

import pytest

from learnpath.config import DEFAULT_HOME, Settings, load_settings

ENV_VARS = (
    "LEARNPATH_HOME",
    "LEARNPATH_CATALOG_DB",
    "LEARNPATH_PROGRESS_DB",
    "LEARNPATH_LEARNER_ID",
    "LEARNPATH_REFRESH_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so teardown also removes values written by load_dotenv
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


class TestSettings:

    def test_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "missing.env")
        assert settings.home == DEFAULT_HOME
        assert settings.catalog_path == DEFAULT_HOME / "catalog.db"
        assert settings.progress_path == DEFAULT_HOME / "progress.db"
        assert settings.learner_id == "default"
        assert settings.refresh_seconds == 30.0

    def test_home_moves_databases(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LEARNPATH_HOME", str(tmp_path))
        settings = load_settings(tmp_path / "missing.env")
        assert settings.catalog_path == tmp_path / "catalog.db"
        assert settings.progress_path == tmp_path / "progress.db"

    def test_explicit_paths_win(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LEARNPATH_HOME", str(tmp_path))
        monkeypatch.setenv("LEARNPATH_PROGRESS_DB", str(tmp_path / "elsewhere.db"))
        settings = load_settings(tmp_path / "missing.env")
        assert settings.progress_path == tmp_path / "elsewhere.db"

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("LEARNPATH_LEARNER_ID=alice\nLEARNPATH_REFRESH_SECONDS=5\n", encoding="utf-8")
        settings = load_settings(env_file)
        assert settings.learner_id == "alice"
        assert settings.refresh_seconds == 5.0

    def test_refresh_must_be_positive(self):
        with pytest.raises(ValueError):
            Settings(refresh_seconds=0)

    def test_paths_coerced(self):
        assert Settings(home="/tmp/lp").home == Path("/tmp/lp")
