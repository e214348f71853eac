"""Tests for CLI module."""

import json
from datetime import date
from uuid import uuid4

import pytest

from intake_engine import __version__, cli
from intake_engine.cli import main
from intake_engine.config import Settings, get_settings
from intake_engine.container import Container
from intake_engine.domain.files import FileCategory
from intake_engine.domain.intake import FilingStatusType

from conftest import TAXPAYER_SSN, TEST_KEY


@pytest.fixture(autouse=True)
def cli_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("INTAKE_DATA_ENCRYPTION_KEY", TEST_KEY)
    monkeypatch.setenv("INTAKE_UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("INTAKE_EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.setenv("INTAKE_PACKET_RENDERER", "text")
    monkeypatch.setattr(cli, "configure_logging", lambda settings: None)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "intake.db"


@pytest.fixture
def seeded_intake(db_path):
    """A complete single-filer intake written through a container."""
    settings = get_settings().model_copy(update={"sqlite_path": db_path})
    with Container(settings) as container:
        service = container.intake_service
        user_id = uuid4()
        intake = service.create_intake(user_id, 2024)
        service.save_taxpayer_info(
            intake.id,
            user_id,
            taxpayer_first_name="Jordan",
            taxpayer_last_name="Rivera",
            taxpayer_dob=date(1985, 4, 12),
            taxpayer_phone="555-010-2000",
            taxpayer_ssn=TAXPAYER_SSN,
            address_city="Columbus",
            address_state="OH",
            address_zip="43004",
        )
        service.set_filing_status(intake.id, user_id, FilingStatusType.SINGLE)
        for category in (FileCategory.PHOTO_ID_FRONT, FileCategory.PHOTO_ID_BACK):
            service.upload_file(intake.id, user_id, b"id", "id.jpg", category)
    return intake


class TestLoadSettings:
    def test_database_flag_overrides_path(self, db_path):
        class Args:
            database = str(db_path)

        settings = cli.load_settings(Args())

        assert isinstance(settings, Settings)
        assert settings.sqlite_path == db_path


class TestSimpleCommands:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_version(self, capsys):
        assert main(["version"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_generate_key(self, capsys):
        assert main(["generate-key"]) == 0

        key = capsys.readouterr().out.strip()
        assert len(key) == 64
        assert bytes.fromhex(key)

    def test_init_creates_database(self, db_path, capsys, monkeypatch):
        monkeypatch.delenv("INTAKE_DATA_ENCRYPTION_KEY")
        get_settings.cache_clear()

        assert main(["--database", str(db_path), "init"]) == 0
        assert db_path.exists()
        assert "Initialized database" in capsys.readouterr().out

    def test_packet_without_subcommand_prints_help(self, capsys):
        assert main(["packet"]) == 0
        assert "request" in capsys.readouterr().out


class TestEvaluateCommand:
    def test_reports_missing_items(self, db_path, seeded_intake, capsys):
        result = main(["--database", str(db_path), "evaluate", str(seeded_intake.id)])

        output = capsys.readouterr().out
        assert result == 0
        assert "Valid: no" in output
        assert "tax_documents" in output
        assert TAXPAYER_SSN not in output

    def test_json_output(self, db_path, seeded_intake, capsys):
        main(["--database", str(db_path), "evaluate", str(seeded_intake.id), "--json"])

        data = json.loads(capsys.readouterr().out)
        assert data["valid"] is False
        assert [d["field"] for d in data["missingDocs"]] == ["tax_documents"]

    def test_invalid_uuid(self, db_path, capsys):
        assert main(["--database", str(db_path), "evaluate", "not-a-uuid"]) == 1
        assert "Invalid intake ID" in capsys.readouterr().out

    def test_missing_key_is_reported(self, db_path, capsys, monkeypatch):
        monkeypatch.delenv("INTAKE_DATA_ENCRYPTION_KEY")
        get_settings.cache_clear()

        result = main(["--database", str(db_path), "evaluate", str(uuid4())])

        assert result == 1
        assert "Error: Data encryption key is not configured" in capsys.readouterr().out


class TestChecklistCommands:
    def test_reconcile_then_list_open(self, db_path, seeded_intake, capsys):
        assert main(["--database", str(db_path), "reconcile", str(seeded_intake.id)]) == 0
        assert "Unchanged: 1" in capsys.readouterr().out

        assert main(
            ["--database", str(db_path), "checklist", str(seeded_intake.id), "--open"]
        ) == 0
        output = capsys.readouterr().out
        assert "tax_documents" in output
        assert "resolved" not in output

    def test_empty_checklist(self, db_path, capsys):
        main(["--database", str(db_path), "init"])
        capsys.readouterr()

        assert main(["--database", str(db_path), "checklist", str(uuid4())]) == 0
        assert "No checklist items." in capsys.readouterr().out


class TestPacketCommands:
    def test_request_and_status(self, db_path, seeded_intake, capsys, tmp_path):
        result = main(
            [
                "--database",
                str(db_path),
                "packet",
                "request",
                str(seeded_intake.id),
                "--actor",
                str(uuid4()),
            ]
        )

        output = capsys.readouterr().out
        assert result == 0
        assert "Status: completed" in output
        request_id = output.split("Packet request created: ")[1].split()[0]

        assert main(["--database", str(db_path), "packet", "status", request_id]) == 0
        status_output = capsys.readouterr().out
        assert f"Intake: {seeded_intake.id}" in status_output
        assert "Location:" in status_output

    def test_request_for_unknown_intake(self, db_path, capsys):
        main(["--database", str(db_path), "init"])
        capsys.readouterr()

        result = main(
            [
                "--database",
                str(db_path),
                "packet",
                "request",
                str(uuid4()),
                "--actor",
                str(uuid4()),
            ]
        )

        assert result == 1
        assert "Error: Intake not found" in capsys.readouterr().out

    def test_status_for_unknown_request(self, db_path, capsys):
        main(["--database", str(db_path), "init"])
        capsys.readouterr()

        assert main(["--database", str(db_path), "packet", "status", str(uuid4())]) == 1
        assert "Packet request not found" in capsys.readouterr().out

    def test_no_orphans(self, db_path, capsys):
        main(["--database", str(db_path), "init"])
        capsys.readouterr()

        assert main(["--database", str(db_path), "packet", "orphans"]) == 0
        assert "No orphaned packet requests." in capsys.readouterr().out
