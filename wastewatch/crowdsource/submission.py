"""
Report submission pipeline

Takes a user-selected photo through debounced classification, reward
estimation and an explicit confirmation step, then materializes a pending
report credited to the user.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional

from wastewatch.classification.client import (
    DEFAULT_MEDIA_TYPE,
    ClassificationClient,
    ClassificationResult,
    ImagePayload,
)
from wastewatch.core.config import settings
from wastewatch.core.constants import (
    BASE_REWARD,
    HIGH_REWARD,
    HIGH_REWARD_CONFIDENCE,
    REDUCED_REWARD,
    STANDARD_REWARD,
    STANDARD_REWARD_CONFIDENCE,
    WasteType,
)
from wastewatch.core.exceptions import (
    ClassificationUnavailable,
    EmptySubmission,
    GeolocationUnavailable,
    LowConfidenceOrNoWaste,
    NoPendingConfirmation,
)
from wastewatch.core.geo_utils import Point
from wastewatch.crowdsource.report_handler import (
    Report,
    ReportHandler,
    User,
    new_report_id,
)
from wastewatch.ingestion.geolocation import GeolocationSource

logger = logging.getLogger(__name__)


def estimate_reward(result: Optional[ClassificationResult]) -> int:
    """
    GreenUnits earned for a report, given its classification.

    Args:
        result: Latest classification result, if any

    Returns:
        Reward in GreenUnits
    """
    if result is None or not result.is_waste_present:
        return BASE_REWARD

    if result.confidence_score > HIGH_REWARD_CONFIDENCE:
        return HIGH_REWARD
    if result.confidence_score > STANDARD_REWARD_CONFIDENCE:
        return STANDARD_REWARD
    return REDUCED_REWARD


@dataclass(frozen=True)
class PendingSubmission:
    """Report contents awaiting the user's confirmation."""
    sequence: int
    reward: int
    description: Optional[str] = None
    waste_type: Optional[WasteType] = None
    confidence: Optional[float] = None
    location: Optional[Point] = None
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reward": self.reward,
            "description": self.description,
            "waste_type": self.waste_type.value if self.waste_type else None,
            "confidence": self.confidence,
            "location": self.location.to_dict() if self.location else None,
            "has_image": self.image_url is not None,
        }


@dataclass
class SubmissionDraft:
    """
    In-progress report.

    `image` holds the bytes sent to the classifier and is dropped once a
    result is applied; `preview_url` is the display reference that ends up
    on the report.
    """
    sequence: int = 0
    image: Optional[ImagePayload] = None
    preview_url: Optional[str] = None
    description: Optional[str] = None
    manual_waste_type: Optional[WasteType] = None
    location: Optional[Point] = None
    location_status: Optional[str] = None
    classification: Optional[ClassificationResult] = None
    classification_error: Optional[str] = None
    is_classifying: bool = False
    pending: Optional[PendingSubmission] = None

    @property
    def has_image(self) -> bool:
        return self.preview_url is not None

    @property
    def auto_waste_type(self) -> Optional[WasteType]:
        """Detected type, only when the classification passes the threshold."""
        if self.classification and self.classification.is_acceptable:
            return self.classification.waste_type
        return None

    @property
    def status_message(self) -> str:
        if not self.has_image:
            return "Select an image to begin"
        if self.is_classifying:
            return "Analyzing image..."
        if self.classification_error:
            return self.classification_error
        if self.classification is None:
            return "Ready to analyze"
        if not self.classification.is_acceptable:
            return LowConfidenceOrNoWaste.default_message
        label = self.classification.waste_type.value if self.classification.waste_type else "Waste"
        return f"Detected {label} ({self.classification.confidence_score:.2f}% confidence)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence": self.sequence,
            "has_image": self.has_image,
            "preview_url": self.preview_url,
            "description": self.description,
            "manual_waste_type": self.manual_waste_type.value if self.manual_waste_type else None,
            "auto_waste_type": self.auto_waste_type.value if self.auto_waste_type else None,
            "location": self.location.to_dict() if self.location else None,
            "location_status": self.location_status,
            "is_classifying": self.is_classifying,
            "classification": self.classification.to_dict() if self.classification else None,
            "status_message": self.status_message,
            "reward_estimate": estimate_reward(self.classification),
            "pending_confirmation": self.pending.to_dict() if self.pending else None,
        }


class SubmissionPipeline:
    """
    Drives one user's report draft from photo selection to submission.

    Each image selection gets a new sequence number. Classification runs in a
    task started after a debounce delay; a newer selection cancels that task,
    and a result is applied only if its sequence still matches the current
    selection.
    """

    def __init__(
        self,
        user: User,
        report_handler: ReportHandler,
        classifier: ClassificationClient,
        debounce_seconds: Optional[float] = None,
        on_report_submitted: Optional[Callable[[Report], None]] = None
    ):
        """
        Initialize submission pipeline.

        Args:
            user: User submitting reports
            report_handler: Registry the reports are stored in
            classifier: Image classification service
            debounce_seconds: Delay between selection and classification
            on_report_submitted: Called once per successful submission
        """
        self.user = user
        self.report_handler = report_handler
        self.classifier = classifier
        self.debounce_seconds = (
            settings.classification_debounce_seconds
            if debounce_seconds is None else debounce_seconds
        )
        self.on_report_submitted = on_report_submitted

        self._sequence = 0
        self._draft = SubmissionDraft()
        self._task: Optional[asyncio.Task] = None

    @property
    def draft(self) -> SubmissionDraft:
        return self._draft

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def reward_estimate(self) -> int:
        return estimate_reward(self._draft.classification)

    def select_image(
        self,
        data: bytes,
        media_type: str = DEFAULT_MEDIA_TYPE
    ) -> int:
        """
        Store a newly selected image and schedule its classification.

        Must be called from a running event loop.

        Args:
            data: Raw image bytes
            media_type: Image MIME type

        Returns:
            Sequence number of this selection
        """
        if not data:
            raise ValueError("Image data is empty")

        self._cancel_classification()
        self._sequence += 1

        payload = ImagePayload(data=data, media_type=media_type)
        self._draft = replace(
            self._draft,
            sequence=self._sequence,
            image=payload,
            preview_url=payload.to_data_url(),
            classification=None,
            classification_error=None,
            is_classifying=True,
            pending=None,
        )

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._debounced_classify(self._sequence))

        logger.debug(f"Image selected (selection {self._sequence}, {len(data)} bytes)")
        return self._sequence

    async def _debounced_classify(self, sequence: int) -> None:
        await asyncio.sleep(self.debounce_seconds)
        await self._classify(sequence)

    async def classify(
        self,
        sequence: Optional[int] = None
    ) -> Optional[ClassificationResult]:
        """
        Classify the selected image now, skipping any pending debounce.

        Args:
            sequence: Selection the request belongs to (defaults to current)

        Returns:
            The applied result, or None if unavailable or superseded
        """
        self._cancel_classification()
        if sequence is None:
            sequence = self._sequence
        return await self._classify(sequence)

    async def _classify(self, sequence: int) -> Optional[ClassificationResult]:
        payload = self._draft.image
        if sequence != self._sequence or payload is None:
            return None

        self._draft.is_classifying = True
        error: Optional[str] = None
        result: Optional[ClassificationResult] = None

        try:
            result = await self.classifier.classify(payload.data, payload.media_type)
        except ClassificationUnavailable as e:
            error = e.message
        except Exception as e:
            # Untrusted collaborator: any failure means "unavailable"
            logger.warning(f"Classifier raised {type(e).__name__}: {e}")
            error = str(e) or type(e).__name__

        if sequence != self._sequence:
            logger.debug(f"Discarding stale classification for selection {sequence}")
            return None

        draft = self._draft
        draft.is_classifying = False
        # A confirmation requested before the result no longer matches the draft
        draft.pending = None

        if result is None:
            draft.classification_error = f"Classification unavailable: {error}"
            logger.warning(f"Classification unavailable for selection {sequence}: {error}")
            return None

        draft.classification = result
        draft.classification_error = None
        draft.image = None

        logger.info(
            f"Selection {sequence} classified: present={result.is_waste_present} "
            f"confidence={result.confidence_score:.1f} type={result.waste_type}"
        )
        return result

    async def wait_for_classification(self) -> Optional[ClassificationResult]:
        """Wait until the current selection's classification settles."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        return self._draft.classification

    def update_details(
        self,
        description: Optional[str] = None,
        waste_type: Optional[WasteType] = None,
        location: Optional[Point] = None
    ) -> SubmissionDraft:
        """Edit the draft's note, manual waste type override, and location."""
        if description is not None:
            self._draft.description = description.strip() or None
        if waste_type is not None:
            self._draft.manual_waste_type = waste_type
        if location is not None:
            self._draft.location = location
            self._draft.location_status = "Location set manually"
        self._draft.pending = None
        return self._draft

    async def capture_location(self, source: GeolocationSource) -> Optional[Point]:
        """
        Attach the current position to the draft.

        Degrades to "no location" when the source is unavailable.
        """
        try:
            position = await source.get_current_position()
        except GeolocationUnavailable as e:
            self._draft.location = None
            self._draft.pending = None
            self._draft.location_status = f"Unable to get location: {e.message}"
            logger.warning(self._draft.location_status)
            return None

        self._draft.location = position.to_point()
        self._draft.pending = None
        self._draft.location_status = "Location acquired"
        return self._draft.location

    def request_submission(
        self,
        description: Optional[str] = None,
        waste_type: Optional[WasteType] = None,
        location: Optional[Point] = None
    ) -> PendingSubmission:
        """
        Validate the draft and hold it for confirmation.

        The reward is fixed here from the classification in effect.

        Raises:
            EmptySubmission: Neither image nor description present
            LowConfidenceOrNoWaste: Auto-classification rejected and no
                manual waste type given
        """
        draft = self._draft

        if description is not None:
            description = description.strip() or None
        else:
            description = draft.description

        manual_type = waste_type or draft.manual_waste_type
        location = location or draft.location

        if not draft.has_image and not description:
            raise EmptySubmission()

        result = draft.classification
        if manual_type is None and result is not None and not result.is_acceptable:
            raise LowConfidenceOrNoWaste(
                is_waste_present=result.is_waste_present,
                confidence_score=result.confidence_score,
            )

        pending = PendingSubmission(
            sequence=self._sequence,
            reward=estimate_reward(result),
            description=description,
            waste_type=manual_type or draft.auto_waste_type,
            confidence=result.confidence_score if result else None,
            location=location,
            image_url=draft.preview_url,
        )
        draft.pending = pending
        return pending

    def confirm(self) -> Report:
        """
        Create the report held for confirmation and credit its reward.

        Raises:
            NoPendingConfirmation: Nothing awaits confirmation
        """
        pending = self._draft.pending
        if pending is None or pending.sequence != self._sequence:
            raise NoPendingConfirmation()

        report = Report(
            id=new_report_id(),
            user_id=self.user.id,
            waste_type=pending.waste_type,
            confidence=pending.confidence,
            location=pending.location,
            description=pending.description,
            image_url=pending.image_url,
        )
        self.report_handler.record_submission(self.user, report, pending.reward)

        self.reset()

        if self.on_report_submitted is not None:
            self.on_report_submitted(report)

        return report

    def cancel(self) -> None:
        """Drop the pending confirmation, keeping the draft."""
        self._draft.pending = None

    def submit(
        self,
        description: Optional[str] = None,
        waste_type: Optional[WasteType] = None,
        location: Optional[Point] = None
    ) -> Report:
        """Validate and submit in one step."""
        self.request_submission(description, waste_type, location)
        return self.confirm()

    def reset(self) -> None:
        """Discard the draft and invalidate any in-flight classification."""
        self._cancel_classification()
        self._sequence += 1
        self._draft = SubmissionDraft(sequence=self._sequence)

    def _cancel_classification(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
