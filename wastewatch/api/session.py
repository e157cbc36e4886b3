"""
WasteWatch - Demo Session
Wires the core services for the single in-memory user session served by the API.
"""

import logging
from typing import List, Optional

from wastewatch.classification.client import ClassificationClient
from wastewatch.classification.gemini_client import get_classification_client
from wastewatch.crowdsource.report_handler import (
    Organization,
    Report,
    ReportHandler,
    User,
)
from wastewatch.crowdsource.submission import SubmissionPipeline
from wastewatch.crowdsource.verification import VerificationWorkflow
from wastewatch.ingestion.geolocation import (
    GeolocationSource,
    Position,
    SimulatedGeolocationSource,
)
from wastewatch.visualization.proximity import ProximitySimulator

logger = logging.getLogger(__name__)


DEMO_ORGANIZATION = Organization(
    id="org-1",
    name="Clean Earth Foundation",
    email="contact@cleanearth.org",
)

# Demo participants (id, name, GreenUnits, avatar)
DEMO_PARTICIPANTS = [
    ("u1", "sriram", 980, "/assets/avatar1.png"),
    ("u2", "chandu", 870, "/assets/avatar2.png"),
    ("u3", "mahesh", 820, "/assets/avatar3.png"),
    ("u4", "tilak", 740, None),
    ("u5", "rohitha", 690, None),
    ("u6", "shiva", 640, None),
]

# Fallback position for the demo device
DEMO_POSITION = Position(latitude=34.0522, longitude=-118.2437)


def demo_users() -> List[User]:
    return [
        User(
            id=user_id,
            name=name,
            email=f"{name}@example.com",
            avatar_url=avatar,
            green_units=points,
        )
        for user_id, name, points, avatar in DEMO_PARTICIPANTS
    ]


class DemoSession:
    """
    One reporting user and one reviewing organization sharing a report registry.
    """

    def __init__(
        self,
        classifier: Optional[ClassificationClient] = None,
        geolocation: Optional[GeolocationSource] = None,
        simulator: Optional[ProximitySimulator] = None,
        debounce_seconds: Optional[float] = None,
        processing_delay: Optional[float] = None
    ):
        self.classifier = classifier or get_classification_client()
        self.geolocation = geolocation or SimulatedGeolocationSource(initial=DEMO_POSITION)
        self.simulator = simulator or ProximitySimulator()
        self.organization = DEMO_ORGANIZATION

        self.report_handler = ReportHandler()
        for user in demo_users():
            self.report_handler.register_user(user)
        self.user = self.report_handler.get_user(DEMO_PARTICIPANTS[0][0])

        self.submitted: List[str] = []
        self.pipeline = SubmissionPipeline(
            user=self.user,
            report_handler=self.report_handler,
            classifier=self.classifier,
            debounce_seconds=debounce_seconds,
            on_report_submitted=self._on_report_submitted,
        )
        self.workflow = VerificationWorkflow(
            report_handler=self.report_handler,
            classifier=self.classifier,
            organization=self.organization,
            processing_delay=processing_delay,
        )

        logger.info(f"Demo session ready for user {self.user.id}")

    def _on_report_submitted(self, report: Report) -> None:
        self.submitted.append(report.id)
        logger.info(f"Report {report.id} submitted; awarded {report.reward} GreenUnits")
