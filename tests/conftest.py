from pathlib import Path

import pytest

from staffauth.adapters.dev_email import DevEmailAdapter
from staffauth.adapters.sqlite.migrator import SQLiteMigrator
from staffauth.app_shell.context import ServiceContext
from staffauth.rules.loader import load_rules
from staffauth.rules.models import Rules

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def rules() -> Rules:
    """The real rules file shipped at the project root."""
    return load_rules(PROJECT_ROOT / "auth_rules.yaml")


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """A migrated, empty SQLite database."""
    path = str(tmp_path / "staffauth.db")
    SQLiteMigrator(path).run_migrations()
    return path


@pytest.fixture
def mailer() -> DevEmailAdapter:
    return DevEmailAdapter()


@pytest.fixture
def test_ctx(db_path: str, rules: Rules, mailer: DevEmailAdapter) -> ServiceContext:
    """Repos and adapters over the temporary database."""
    return ServiceContext.create(db_path=db_path, rules=rules, mailer=mailer)
