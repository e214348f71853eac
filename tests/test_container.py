"""Tests for the service container."""

from datetime import date
from uuid import uuid4

import pytest

from intake_engine.config import Settings
from intake_engine.container import Container
from intake_engine.domain.files import FileCategory
from intake_engine.domain.intake import FilingStatusType
from intake_engine.domain.packets import PacketRequestStatus
from intake_engine.exceptions import ConfigurationError
from intake_engine.services.rendering import PDFSummaryRenderer, TextSummaryRenderer

from conftest import TAXPAYER_SSN, TEST_KEY


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        sqlite_path=tmp_path / "intake.db",
        data_encryption_key=TEST_KEY,
        upload_dir=tmp_path / "uploads",
        export_dir=tmp_path / "exports",
        packet_renderer="pdf",
        packet_workers=1,
    )


class TestContainer:
    def test_missing_key_fails_at_construction(self, settings):
        with pytest.raises(ConfigurationError):
            Container(settings.model_copy(update={"data_encryption_key": None}))

    def test_services_are_cached(self, settings):
        with Container(settings) as container:
            assert container.intake_service is container.intake_service
            assert container.evaluator is container.evaluator

    def test_renderer_follows_settings(self, settings):
        with Container(settings) as container:
            assert isinstance(container.renderer, PDFSummaryRenderer)

        text = settings.model_copy(update={"packet_renderer": "text"})
        with Container(text) as container:
            assert isinstance(container.renderer, TextSummaryRenderer)

    def test_close_without_use(self, settings):
        container = Container(settings)

        container.close()

        assert "database" not in container.__dict__

    def test_end_to_end_submit_and_packet(self, settings, tmp_path):
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
            for category in (
                FileCategory.PHOTO_ID_FRONT,
                FileCategory.PHOTO_ID_BACK,
                FileCategory.W2,
            ):
                service.upload_file(intake.id, user_id, b"bytes", "doc.pdf", category)

            assert service.submit(intake.id, user_id).valid

            request_id = container.packet_service.enqueue_packet(intake.id, user_id)
            container.packet_dispatcher.shutdown(wait=True)
            request = container.packet_service.get_packet_status(request_id)

        assert request.status == PacketRequestStatus.COMPLETED
        folder = tmp_path / "exports" / request.packet_location
        assert (folder / "Summary.pdf").read_bytes().startswith(b"%PDF")
        assert (folder / "Packet.zip").is_file()
