"""
Organization-side report verification
Advisory re-classification, accept/reject review, and QR field confirmation
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlencode

import httpx

from wastewatch.classification.client import (
    ClassificationClient,
    ClassificationResult,
    load_image_payload,
)
from wastewatch.core.config import settings
from wastewatch.core.constants import MARK_CLEANED_ACTION
from wastewatch.core.exceptions import ClassificationUnavailable, InvalidToken
from wastewatch.crowdsource.report_handler import (
    Organization,
    Report,
    ReportHandler,
    ReportStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationToken:
    """
    Field-confirmation payload for a report.

    Derived from the report id alone, so re-issuing it always yields the
    same payload.
    """
    report_id: str
    action: str = MARK_CLEANED_ACTION

    @property
    def payload(self) -> str:
        """Canonical JSON encoded into the scannable code."""
        return json.dumps(
            {"reportId": self.report_id, "action": self.action},
            sort_keys=True,
            separators=(",", ":"),
        )

    def qr_code_url(
        self,
        service_url: Optional[str] = None,
        size: Optional[int] = None
    ) -> str:
        """URL of a rendered QR image encoding the payload."""
        service_url = service_url or settings.qr_service_url
        size = size or settings.qr_size
        query = urlencode({"size": f"{size}x{size}", "data": self.payload})
        return f"{service_url}?{query}"

    @classmethod
    def parse(cls, raw: str) -> "VerificationToken":
        """
        Decode a scanned payload.

        Raises:
            InvalidToken: If the payload is not a mark-cleaned token
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise InvalidToken("Verification token is not valid JSON") from e

        if not isinstance(data, dict):
            raise InvalidToken("Verification token must be a JSON object")

        report_id = data.get("reportId")
        action = data.get("action")

        if not isinstance(report_id, str) or not report_id:
            raise InvalidToken("Verification token has no report id")
        if action != MARK_CLEANED_ACTION:
            raise InvalidToken(f"Unsupported verification action: {action}", action=action)

        return cls(report_id=report_id, action=action)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "action": self.action,
            "payload": self.payload,
            "qr_code_url": self.qr_code_url(),
        }


@dataclass
class ReviewItem:
    """A report as listed on the organization dashboard."""
    report: Report
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.report.to_dict()
        data["user_name"] = self.user_name
        data["user_email"] = self.user_email
        return data


class VerificationWorkflow:
    """
    Organization review of submitted reports.

    analyze() is advisory and never touches the report. accept(), reject()
    and token confirmation are the only paths that change a report's status.
    """

    def __init__(
        self,
        report_handler: ReportHandler,
        classifier: ClassificationClient,
        organization: Optional[Organization] = None,
        processing_delay: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize verification workflow.

        Args:
            report_handler: Registry holding the reports
            classifier: Image classification service
            organization: Reviewing organization
            processing_delay: Simulated review latency in seconds
            http_client: Client used to fetch remote report images
        """
        self.report_handler = report_handler
        self.classifier = classifier
        self.organization = organization
        self.processing_delay = (
            settings.verification_delay_seconds
            if processing_delay is None else processing_delay
        )
        self.http_client = http_client

        logger.info("VerificationWorkflow initialized")

    @property
    def _reviewer_id(self) -> Optional[str]:
        return self.organization.id if self.organization else None

    def review_queue(self, status: Optional[ReportStatus] = None) -> List[ReviewItem]:
        """All reports, newest first, with their owners' contact details."""
        items = []
        for report in self.report_handler.list_reports(status=status):
            owner = self.report_handler.owner_of(report)
            items.append(ReviewItem(
                report=report,
                user_name=owner.name if owner else None,
                user_email=owner.email if owner else None,
            ))
        return items

    async def analyze(self, report_id: str) -> ClassificationResult:
        """
        Re-run classification on a report's stored image.

        A missing or unloadable image, or a classifier failure, yields the
        "no waste, confidence 0" result.

        Raises:
            ReportNotFound: Unknown report
        """
        report = self.report_handler.get_report(report_id)

        payload = await load_image_payload(report.image_url, http_client=self.http_client)
        if payload is None:
            logger.info(f"Report {report_id} has no classifiable image")
            return ClassificationResult.unavailable()

        try:
            result = await self.classifier.classify(payload.data, payload.media_type)
        except ClassificationUnavailable as e:
            logger.warning(f"Analysis of report {report_id} unavailable: {e.message}")
            return ClassificationResult.unavailable()
        except Exception as e:
            logger.warning(f"Analysis of report {report_id} failed: {type(e).__name__}: {e}")
            return ClassificationResult.unavailable()

        logger.info(f"Report {report_id} analyzed: {result.to_dict()}")
        return result

    async def accept(self, report_id: str) -> Report:
        """
        Accept a pending report.

        Raises:
            ReportNotFound: Unknown report
            InvalidTransition: Report is no longer pending
        """
        return await self._resolve(report_id, ReportStatus.ACCEPTED)

    async def reject(self, report_id: str) -> Report:
        """
        Reject a pending report.

        Raises:
            ReportNotFound: Unknown report
            InvalidTransition: Report is no longer pending
        """
        return await self._resolve(report_id, ReportStatus.REJECTED)

    async def _resolve(self, report_id: str, status: ReportStatus) -> Report:
        self.report_handler.get_report(report_id)

        if self.processing_delay > 0:
            await asyncio.sleep(self.processing_delay)

        # Status is checked after the delay; a concurrent call may have won
        return self.report_handler.update_status(
            report_id,
            status,
            resolved_by=self._reviewer_id,
            via="review",
        )

    def issue_verification_token(self, report: Union[Report, str]) -> VerificationToken:
        """
        Issue the field-confirmation token for a report.

        Raises:
            ReportNotFound: Unknown report
        """
        report_id = report.id if isinstance(report, Report) else report
        self.report_handler.get_report(report_id)
        return VerificationToken(report_id=report_id)

    def confirm_verification_token(
        self,
        token: Union[VerificationToken, str]
    ) -> Report:
        """
        Apply a scanned token: the report is marked cleaned.

        A pending report is accepted then cleaned; an accepted report is
        cleaned.

        Raises:
            InvalidToken: Malformed token, unknown report, or a report that
                is already rejected or cleaned
        """
        if not isinstance(token, VerificationToken):
            token = VerificationToken.parse(token)

        report = self.report_handler.find_report(token.report_id)
        if report is None:
            raise InvalidToken(
                f"Token references unknown report {token.report_id}",
                report_id=token.report_id,
            )

        if report.status in (ReportStatus.REJECTED, ReportStatus.CLEANED):
            raise InvalidToken(
                f"Report {report.id} is already {report.status.value}",
                report_id=report.id,
                status=report.status.value,
            )

        if report.status == ReportStatus.PENDING:
            self.report_handler.update_status(
                report.id,
                ReportStatus.ACCEPTED,
                resolved_by=self._reviewer_id,
                via="field-confirmation",
            )

        return self.report_handler.update_status(
            report.id,
            ReportStatus.CLEANED,
            resolved_by=self._reviewer_id,
            via="field-confirmation",
        )
