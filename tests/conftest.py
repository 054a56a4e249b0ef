import sys
from pathlib import Path

import pytest

# Ensure project root on sys.path
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from djapi.db.accessor import RETURN_GENERATED_KEYS, RecordAccessor  # noqa: E402
from djapi.db.configuration import ConnectionConfig  # noqa: E402


class PersonAccessor(RecordAccessor):
    """Small concrete accessor used across the tests."""

    def create_table(self) -> bool:
        self.prepare(
            "CREATE TABLE person ("
            " id INTEGER PRIMARY KEY AUTOINCREMENT,"
            " name TEXT,"
            " age INTEGER,"
            " active BOOLEAN,"
            " born TIMESTAMP)"
        )
        try:
            return bool(self.execute_update())
        finally:
            self.release_all()

    def add(self, name, age, active, born) -> int:
        self.prepare(
            "INSERT INTO person (name, age, active, born) VALUES (?, ?, ?, ?)",
            RETURN_GENERATED_KEYS,
        )
        self.bind_string(1, name)
        self.bind_int(2, age)
        self.bind_boolean(3, active)
        self.bind_timestamp(4, born)
        try:
            if not self.execute_update():
                return -1
            if not self.fetch_generated_keys():
                return -1
            return self.get_int("GENERATED_KEY")
        finally:
            self.release_all()

    def names(self) -> list[str]:
        self.prepare("SELECT name FROM person ORDER BY id")
        found = []
        try:
            if self.execute_query():
                found.append(self.get_string("name"))
                while self.advance_cursor():
                    found.append(self.get_string("name"))
            return found
        finally:
            self.release_all()


@pytest.fixture(autouse=True)
def _fresh_singleton(monkeypatch):
    # Every test starts in a "new process" as far as the singleton goes.
    monkeypatch.setattr(ConnectionConfig, "_instance", None)


@pytest.fixture()
def sqlite_config(tmp_path):
    return ConnectionConfig(driver="sqlite3", url=str(tmp_path / "djapi_test.db"))


@pytest.fixture()
def people(sqlite_config):
    accessor = PersonAccessor(sqlite_config)
    assert accessor.create_table()
    yield accessor
    accessor.close()
