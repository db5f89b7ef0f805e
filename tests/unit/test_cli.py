"""Tests for the firestore_export command line.

The Firestore and BigQuery clients are swapped for in-memory fakes through
monkeypatch, so ``run()`` exercises the whole flag -> config -> import path.
"""

import logging
import subprocess
import sys

import pytest

import firestore_export.__main__ as cli
from tests.fakes import FakeFirestore, FakeWarehouse

ARGS = [
    "--projectId",
    "demo-project",
    "--sourceCollectionPath",
    "users",
    "--tableId",
    "users",
    "--batchSize",
    "2",
]


@pytest.fixture(autouse=True)
def restore_root_logger():
    """run() reconfigures the root logger; put it back for the next test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def fakes(monkeypatch, tmp_path):
    store = FakeFirestore({f"users/u{i}": {"i": i} for i in range(1, 4)})
    warehouse = FakeWarehouse("demo-project")
    monkeypatch.setattr(cli, "FirestoreSource", lambda project_id: store)
    monkeypatch.setattr(cli, "BigQueryWarehouse", lambda project_id, location=None: warehouse)
    monkeypatch.setenv("FIRESTORE_EXPORT_STATE_DIR", str(tmp_path / "state"))
    return store, warehouse


class TestCLIHelp:
    def test_help_flag(self):
        """--help should show usage information."""
        result = subprocess.run(
            [sys.executable, "-m", "firestore_export", "--help"],
            capture_output=True,
            text=True,
        )

        assert result.returncode == 0
        assert "--sourceCollectionPath" in result.stdout


class TestCLIRun:
    def test_successful_import(self, fakes, capsys):
        _, warehouse = fakes

        assert cli.run(ARGS) == 0

        out = capsys.readouterr().out
        assert "Finished importing 3 Firestore rows to BigQuery" in out
        assert len(warehouse.all_rows()) == 3

    def test_invalid_arguments_exit_1(self, fakes, capsys):
        exit_code = cli.run(["--projectId", "demo-project", "--tableId", "users"])

        err = capsys.readouterr().err
        assert exit_code == 1
        assert err.startswith("Error importing Collection to BigQuery: Invalid import configuration")

    def test_insert_failure_exit_1(self, fakes, capsys, tmp_path):
        _, warehouse = fakes
        warehouse.fail_inserts_on = {2}

        assert cli.run(ARGS) == 1

        err = capsys.readouterr().err
        assert err.splitlines()[0] == (
            "Error importing Collection to BigQuery: "
            "[firestore_export.users_raw_changelog] Streaming insert rejected"
        )
        checkpoint = (
            tmp_path / "state" / "from-users-to-demo-project_firestore_export_users_raw_changelog"
        )
        assert checkpoint.read_text() == "u2"

    def test_interrupt_exit_130(self, fakes, monkeypatch):
        def interrupted(*args, **kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr(cli, "run_import", interrupted)

        assert cli.run(ARGS) == 130

    def test_config_file_with_flag_override(self, fakes, tmp_path, capsys):
        config = tmp_path / "import.yaml"
        config.write_text("projectId: demo-project\nsourceCollectionPath: users\ntableId: other\n")

        assert cli.run(["--config", str(config), "--tableId", "users"]) == 0

        _, warehouse = fakes
        assert "firestore_export.users_raw_changelog" in warehouse.rows


class TestCLIExplain:
    def test_explain_does_not_import(self, fakes, capsys):
        store, warehouse = fakes

        assert cli.run(ARGS + ["--explain"]) == 0

        out = capsys.readouterr().out
        assert "IMPORT EXPLANATION" in out
        assert "firestore_export.users_raw_changelog" in out
        assert "users_raw_latest" in out
        assert store.calls == []
        assert warehouse.create_calls == []
