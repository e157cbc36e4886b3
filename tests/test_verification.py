"""
Tests for organization review and field confirmation
"""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from wastewatch.classification.client import ImagePayload, MockClassificationClient
from wastewatch.core.constants import WasteType
from wastewatch.core.exceptions import (
    ClassificationUnavailable,
    InvalidToken,
    InvalidTransition,
    ReportNotFound,
)
from wastewatch.crowdsource.report_handler import Report, ReportStatus, new_report_id
from wastewatch.crowdsource.verification import VerificationToken, VerificationWorkflow


class TestVerificationToken:
    """Test suite for verification token encoding."""

    def test_payload_is_deterministic(self):
        assert VerificationToken("r-1").payload == VerificationToken("r-1").payload

    def test_payload_shape(self):
        data = json.loads(VerificationToken("r-1").payload)
        assert data == {"action": "mark-cleaned", "reportId": "r-1"}

    def test_parse_roundtrip(self):
        token = VerificationToken("r-42")
        assert VerificationToken.parse(token.payload) == token

    @pytest.mark.parametrize("raw", [
        "not json",
        "[1, 2]",
        '{"action": "mark-cleaned"}',
        '{"reportId": "", "action": "mark-cleaned"}',
        '{"reportId": "r-1", "action": "delete"}',
    ])
    def test_parse_malformed(self, raw):
        with pytest.raises(InvalidToken):
            VerificationToken.parse(raw)

    def test_qr_code_url_encodes_payload(self):
        url = VerificationToken("r-1").qr_code_url("https://qr.example/create", 200)

        assert url.startswith("https://qr.example/create?")
        assert "size=200x200" in url
        assert "reportId" in url


class TestVerificationWorkflow:
    """Test suite for accept/reject/analyze and token confirmation."""

    @pytest.fixture(autouse=True)
    def _workflow(self, reporter, report_handler, mock_classifier, organization):
        self.user = reporter
        self.handler = report_handler
        self.classifier = mock_classifier
        self.workflow = VerificationWorkflow(
            report_handler=report_handler,
            classifier=mock_classifier,
            organization=organization,
            processing_delay=0,
        )

    def _submit(self, image_url=None, reward=50):
        report = Report(
            id=new_report_id(),
            user_id=self.user.id,
            waste_type=WasteType.PLASTIC,
            image_url=image_url,
        )
        return self.handler.record_submission(self.user, report, reward)

    def test_accept_pending_report(self):
        report = self._submit()

        accepted = asyncio.run(self.workflow.accept(report.id))

        assert accepted.status == ReportStatus.ACCEPTED
        assert accepted.metadata["resolved_by"] == "org-1"
        assert accepted.metadata["resolved_via"] == "review"

    def test_reject_pending_report(self):
        report = self._submit()

        rejected = asyncio.run(self.workflow.reject(report.id))

        assert rejected.status == ReportStatus.REJECTED

    def test_status_change_does_not_touch_reward(self):
        report = self._submit(reward=70)
        balance = self.user.green_units

        asyncio.run(self.workflow.reject(report.id))

        assert self.user.green_units == balance
        assert report.reward == 70

    @pytest.mark.parametrize("first,second", [
        ("accept", "reject"),
        ("reject", "accept"),
        ("accept", "accept"),
        ("reject", "reject"),
    ])
    def test_resolved_report_cannot_be_resolved_again(self, first, second):
        report = self._submit()
        asyncio.run(getattr(self.workflow, first)(report.id))
        status = report.status

        with pytest.raises(InvalidTransition):
            asyncio.run(getattr(self.workflow, second)(report.id))

        assert report.status == status

    def test_concurrent_accept_and_reject(self):
        """Test only one of two racing reviews wins."""
        self.workflow.processing_delay = 0.01
        report = self._submit()

        async def scenario():
            return await asyncio.gather(
                self.workflow.accept(report.id),
                self.workflow.reject(report.id),
                return_exceptions=True,
            )

        outcomes = asyncio.run(scenario())

        assert isinstance(outcomes[0], Report)
        assert isinstance(outcomes[1], InvalidTransition)
        assert report.status == ReportStatus.ACCEPTED

    def test_accept_unknown_report(self):
        with pytest.raises(ReportNotFound):
            asyncio.run(self.workflow.accept("missing"))

    def test_review_queue_includes_owner(self):
        self._submit()

        items = self.workflow.review_queue()

        assert len(items) == 1
        assert items[0].user_name == "sriram"
        assert items[0].to_dict()["user_email"] == "sriram@example.com"

    def test_analyze_embedded_image(self, plastic_result):
        image_url = ImagePayload(data=b"jpeg-bytes").to_data_url()
        report = self._submit(image_url=image_url)

        result = asyncio.run(self.workflow.analyze(report.id))

        assert result == plastic_result
        assert self.classifier.calls[0].data == b"jpeg-bytes"
        assert report.status == ReportStatus.PENDING

    def test_analyze_without_image(self):
        report = self._submit()

        result = asyncio.run(self.workflow.analyze(report.id))

        assert result.is_waste_present is False
        assert result.confidence_score == 0.0
        assert self.classifier.call_count == 0

    def test_analyze_classifier_failure(self):
        self.classifier.classify = AsyncMock(side_effect=ClassificationUnavailable("down"))
        report = self._submit(image_url=ImagePayload(data=b"x").to_data_url())

        result = asyncio.run(self.workflow.analyze(report.id))

        assert result.is_waste_present is False
        assert result.confidence_score == 0.0
        assert report.status == ReportStatus.PENDING

    def test_analyze_remote_image(self):
        response = httpx.Response(
            200,
            content=b"remote-bytes",
            headers={"content-type": "image/png"},
            request=httpx.Request("GET", "https://img.example/a.png"),
        )
        http_client = MagicMock()
        http_client.get = AsyncMock(return_value=response)
        self.workflow.http_client = http_client
        report = self._submit(image_url="https://img.example/a.png")

        asyncio.run(self.workflow.analyze(report.id))

        payload = self.classifier.calls[0]
        assert payload.data == b"remote-bytes"
        assert payload.media_type == "image/png"

    def test_token_confirms_pending_report(self):
        report = self._submit()
        token = self.workflow.issue_verification_token(report)

        cleaned = self.workflow.confirm_verification_token(token.payload)

        assert cleaned.status == ReportStatus.CLEANED
        assert cleaned.metadata["resolved_via"] == "field-confirmation"

    def test_token_confirms_accepted_report(self):
        report = self._submit()
        asyncio.run(self.workflow.accept(report.id))

        cleaned = self.workflow.confirm_verification_token(
            self.workflow.issue_verification_token(report.id)
        )

        assert cleaned.status == ReportStatus.CLEANED

    def test_token_for_rejected_report(self):
        report = self._submit()
        asyncio.run(self.workflow.reject(report.id))
        token = self.workflow.issue_verification_token(report)

        with pytest.raises(InvalidToken):
            self.workflow.confirm_verification_token(token)

        assert report.status == ReportStatus.REJECTED

    def test_token_used_twice(self):
        report = self._submit()
        token = self.workflow.issue_verification_token(report)
        self.workflow.confirm_verification_token(token)

        with pytest.raises(InvalidToken):
            self.workflow.confirm_verification_token(token)

    def test_token_for_unknown_report(self):
        with pytest.raises(InvalidToken):
            self.workflow.confirm_verification_token(VerificationToken("r-unknown").payload)

    def test_issue_token_for_unknown_report(self):
        with pytest.raises(ReportNotFound):
            self.workflow.issue_verification_token("r-unknown")

    def test_reissued_token_is_identical(self):
        report = self._submit()
        assert (
            self.workflow.issue_verification_token(report).payload
            == self.workflow.issue_verification_token(report.id).payload
        )
