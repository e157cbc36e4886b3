"""
WasteWatch - Crowdsource Module
Report lifecycle: submission by users and verification by organizations.
"""

from wastewatch.crowdsource.report_handler import (
    ReportHandler,
    Report,
    ReportStatus,
    User,
    Organization,
    can_transition,
)
from wastewatch.crowdsource.submission import (
    SubmissionPipeline,
    SubmissionDraft,
    PendingSubmission,
    estimate_reward,
)
from wastewatch.crowdsource.verification import (
    VerificationWorkflow,
    VerificationToken,
    ReviewItem,
)

__all__ = [
    # Report Handler
    "ReportHandler",
    "Report",
    "ReportStatus",
    "User",
    "Organization",
    "can_transition",
    # Submission
    "SubmissionPipeline",
    "SubmissionDraft",
    "PendingSubmission",
    "estimate_reward",
    # Verification
    "VerificationWorkflow",
    "VerificationToken",
    "ReviewItem",
]
