"""
Waste report handler
Owns report records, their users, and the report status state machine
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, FrozenSet
from dataclasses import dataclass, field
from enum import Enum

from wastewatch.core.constants import WasteType
from wastewatch.core.exceptions import InvalidTransition, ReportNotFound
from wastewatch.core.geo_utils import Point

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportStatus(str, Enum):
    """Status of a waste report."""
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    CLEANED = "Cleaned"


# Statuses reachable from each status. Rejected and Cleaned are absorbing.
ALLOWED_TRANSITIONS: Dict[ReportStatus, FrozenSet[ReportStatus]] = {
    ReportStatus.PENDING: frozenset({ReportStatus.ACCEPTED, ReportStatus.REJECTED}),
    ReportStatus.ACCEPTED: frozenset({ReportStatus.CLEANED}),
    ReportStatus.REJECTED: frozenset(),
    ReportStatus.CLEANED: frozenset(),
}


def can_transition(current: ReportStatus, target: ReportStatus) -> bool:
    """Check whether the state machine permits current -> target."""
    return target in ALLOWED_TRANSITIONS[current]


@dataclass
class Report:
    """
    Waste observation submitted by a user.

    Identity, timestamp, location, description and image are fixed at
    creation. Status only moves forward through transition_to().
    """
    id: str
    user_id: str
    timestamp: datetime = field(default_factory=utcnow)
    status: ReportStatus = ReportStatus.PENDING

    # Classification
    waste_type: Optional[WasteType] = None
    confidence: Optional[float] = None

    # Submission content
    location: Optional[Point] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    reward: int = 0

    # Resolution
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def note(self) -> Optional[str]:
        return self.description

    @property
    def is_pending(self) -> bool:
        return self.status == ReportStatus.PENDING

    def transition_to(self, new_status: ReportStatus) -> None:
        """
        Advance status along the state machine.

        Raises:
            InvalidTransition: If the move is not permitted; the report is
                left unchanged
        """
        if not can_transition(self.status, new_status):
            raise InvalidTransition(
                f"Report {self.id} cannot move from {self.status.value} to {new_status.value}",
                report_id=self.id,
                current=self.status.value,
                requested=new_status.value,
            )

        self.status = new_status
        self.updated_at = utcnow()
        if new_status != ReportStatus.PENDING:
            self.resolved_at = self.updated_at

    def override_waste_type(self, waste_type: WasteType) -> None:
        """Change the waste label; only allowed while the report is pending."""
        if not self.is_pending:
            raise InvalidTransition(
                f"Report {self.id} is {self.status.value}; waste type is locked",
                report_id=self.id,
            )
        self.waste_type = waste_type
        self.updated_at = utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
            "waste_type": self.waste_type.value if self.waste_type else None,
            "confidence": self.confidence,
            "location": self.location.to_dict() if self.location else None,
            "description": self.description,
            "image_url": self.image_url,
            "reward": self.reward,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }


@dataclass
class User:
    """Reporting user and their accumulated GreenUnits."""
    id: str
    name: str
    email: str
    avatar_url: Optional[str] = None
    green_units: int = 0
    reports: List[Report] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "avatar_url": self.avatar_url,
            "green_units": self.green_units,
            "report_count": len(self.reports),
        }


@dataclass(frozen=True)
class Organization:
    """Organization that reviews reports."""
    id: str
    name: str
    email: Optional[str] = None


class ReportHandler:
    """
    In-memory registry of users and their reports.

    Report creation is reserved for the submission pipeline; status changes
    go through update_status().
    """

    def __init__(self):
        self._reports: Dict[str, Report] = {}
        self._users: Dict[str, User] = {}
        self._pending_count = 0

        logger.info("ReportHandler initialized")

    def register_user(self, user: User) -> User:
        """Track a user and any reports they already hold."""
        self._users[user.id] = user
        for report in user.reports:
            if report.id not in self._reports:
                self._reports[report.id] = report
                if report.is_pending:
                    self._pending_count += 1
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    @property
    def users(self) -> List[User]:
        return list(self._users.values())

    def record_submission(
        self,
        user: User,
        report: Report,
        reward: int
    ) -> Report:
        """
        Store a new report and credit its reward in one step.

        Contains no suspension point, so no observer can see the report
        without the credit or the credit without the report.
        """
        if reward < 0:
            raise ValueError("Reward must be non-negative")
        if report.id in self._reports:
            raise ValueError(f"Report {report.id} already exists")

        if user.id not in self._users:
            self._users[user.id] = user

        report.reward = reward
        self._reports[report.id] = report
        user.reports.append(report)
        user.green_units += reward
        self._pending_count += 1

        logger.info(
            f"New report created: {report.id} by {user.id} "
            f"(+{reward} GreenUnits, total {user.green_units})"
        )

        return report

    def get_report(self, report_id: str) -> Report:
        """
        Get report by ID.

        Raises:
            ReportNotFound: If no such report exists
        """
        report = self._reports.get(report_id)
        if report is None:
            raise ReportNotFound(f"Report {report_id} not found", report_id=report_id)
        return report

    def find_report(self, report_id: str) -> Optional[Report]:
        return self._reports.get(report_id)

    def list_reports(
        self,
        status: Optional[ReportStatus] = None,
        newest_first: bool = True
    ) -> List[Report]:
        """List reports, optionally filtered by status."""
        reports = [
            r for r in self._reports.values()
            if status is None or r.status == status
        ]
        return sorted(reports, key=lambda r: r.timestamp, reverse=newest_first)

    def get_pending_reports(self) -> List[Report]:
        """Get all pending reports."""
        return self.list_reports(status=ReportStatus.PENDING)

    def update_status(
        self,
        report_id: str,
        new_status: ReportStatus,
        resolved_by: Optional[str] = None,
        via: Optional[str] = None
    ) -> Report:
        """
        Update report status.

        Args:
            report_id: Report ID
            new_status: New status
            resolved_by: Who made the change (organization id)
            via: How the change was made (review, field-confirmation)

        Returns:
            Updated report

        Raises:
            ReportNotFound: Unknown report
            InvalidTransition: Not permitted from the current status
        """
        report = self.get_report(report_id)

        old_status = report.status
        report.transition_to(new_status)

        if resolved_by:
            report.metadata["resolved_by"] = resolved_by
        if via:
            report.metadata["resolved_via"] = via

        if old_status == ReportStatus.PENDING:
            self._pending_count -= 1

        logger.info(f"Report {report_id} status: {old_status.value} -> {new_status.value}")

        return report

    def owner_of(self, report: Report) -> Optional[User]:
        return self._users.get(report.user_id)

    def get_statistics(self) -> Dict[str, Any]:
        """Get report statistics."""
        total = len(self._reports)

        by_status = {status.value: 0 for status in ReportStatus}
        by_waste_type: Dict[str, int] = {}
        with_photo = 0
        with_location = 0

        for report in self._reports.values():
            by_status[report.status.value] += 1

            if report.waste_type:
                label = report.waste_type.value
                by_waste_type[label] = by_waste_type.get(label, 0) + 1

            if report.image_url:
                with_photo += 1
            if report.location:
                with_location += 1

        resolved = total - self._pending_count

        return {
            "total_reports": total,
            "pending_count": self._pending_count,
            "by_status": by_status,
            "by_waste_type": by_waste_type,
            "with_photo": with_photo,
            "with_location": with_location,
            "resolution_rate": resolved / total if total > 0 else 0
        }


def new_report_id() -> str:
    """Generate a short unique report id."""
    return f"r-{uuid.uuid4().hex[:12]}"
