"""
Tests for the command-line entry point.

The database is a SQLite file under tmp_path selected with
CARF_DATABASE_URL; workflow actions run against recording fakes.
"""

import pytest

from carf_kernel.db.engine import get_session_factory, reset_engine, session_scope
from carf_kernel.domain.approval import CustomerRequest, RequestStatus
from carf_kernel.services.request_store import RequestStore
from carf_services.workflow_orchestrator import ApprovalWorkflow
from scripts import carf_cli
from tests.conftest import FakeDownstreamClient, RecordingTransport, Seeder


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    monkeypatch.setenv("CARF_DATABASE_URL", f"sqlite:///{tmp_path / 'carf.db'}")
    assert carf_cli.main(["init-db"]) == 0
    yield get_session_factory()
    reset_engine()


def create_request(factory, status=RequestStatus.DRAFT) -> int:
    with session_scope(factory) as s:
        return RequestStore(s).create(CustomerRequest(
            row_ref=None, request_type="NEW", company="ACME", maker="maker01", status=status,
        )).row_ref


class TestCli:
    def test_init_db(self, capsys, cli_db):
        assert "Tables created." in capsys.readouterr().out

    def test_timeline(self, cli_db, capsys):
        row_ref = create_request(cli_db)

        assert carf_cli.main(["timeline", str(row_ref)]) == 0

        out = capsys.readouterr().out
        assert f"Request #{row_ref}: Draft" in out
        assert "1st Approver" in out

    def test_kernel_error_exit_code(self, cli_db, capsys):
        assert carf_cli.main(["timeline", "999"]) == 1

        assert "REQUEST_NOT_FOUND" in capsys.readouterr().err

    def test_invalid_config(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("CARF_TRANSPORT", "pigeon")

        assert carf_cli.main(["init-db"]) == 1
        assert "invalid configuration" in capsys.readouterr().err

    def test_submit_and_approve(self, cli_db, monkeypatch, capsys):
        seed = Seeder(cli_db)
        seed.user("maker01", approver=False)
        seed.user("A")
        seed.matrix("A", "B", "C")
        row_ref = create_request(cli_db)
        transport = RecordingTransport()
        monkeypatch.setattr(
            carf_cli,
            "build_workflow",
            lambda config: ApprovalWorkflow(get_session_factory(), transport, FakeDownstreamClient()),
        )

        assert carf_cli.main(["submit", str(row_ref), "--actor", "maker01", "--attachments"]) == 0
        assert carf_cli.main(["approve", str(row_ref), "--actor", "A"]) == 0

        out = capsys.readouterr().out
        assert "Pending (PENDING)" in out
        assert transport.recipients[:3] == ["A", "B", "C"]

    def test_submit_without_attachments(self, cli_db, monkeypatch, capsys):
        seed = Seeder(cli_db)
        seed.user("maker01", approver=False)
        seed.matrix("A", "B", "C")
        row_ref = create_request(cli_db)
        monkeypatch.setattr(
            carf_cli,
            "build_workflow",
            lambda config: ApprovalWorkflow(get_session_factory(), RecordingTransport(), FakeDownstreamClient()),
        )

        assert carf_cli.main(["submit", str(row_ref), "--actor", "maker01"]) == 1
        assert "MISSING_ATTACHMENTS" in capsys.readouterr().err

    def test_pending_queue(self, cli_db, capsys):
        create_request(cli_db)

        assert carf_cli.main(["pending", "--actor", "A"]) == 0
        assert "Nothing pending." in capsys.readouterr().out
