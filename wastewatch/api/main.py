"""
WasteWatch - REST API

FastAPI application exposing report submission, organization review,
leaderboard, and the live nearby-waste map to the UI.

Run with: uvicorn wastewatch.api.main:app --reload
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from wastewatch.analysis.leaderboard import entries_from_users, rank
from wastewatch.api.session import DemoSession
from wastewatch.classification.client import DEFAULT_MEDIA_TYPE
from wastewatch.core.config import settings
from wastewatch.core.constants import WasteType
from wastewatch.core.exceptions import (
    ClassificationUnavailable,
    EmptySubmission,
    GeolocationUnavailable,
    InvalidToken,
    InvalidTransition,
    LowConfidenceOrNoWaste,
    NoPendingConfirmation,
    ReportNotFound,
    WasteWatchError,
)
from wastewatch.core.geo_utils import Point
from wastewatch.core.logging import setup_logging
from wastewatch.crowdsource.report_handler import ReportStatus
from wastewatch.visualization.proximity import build_map_markers

API_VERSION = "0.1.0"

ERROR_STATUS_CODES = {
    ClassificationUnavailable: 503,
    LowConfidenceOrNoWaste: 422,
    EmptySubmission: 400,
    NoPendingConfirmation: 409,
    InvalidTransition: 409,
    InvalidToken: 400,
    ReportNotFound: 404,
    GeolocationUnavailable: 503,
}

setup_logging()

# FastAPI app
app = FastAPI(
    title="WasteWatch",
    description="Waste reporting with AI classification, organization review, and GreenUnits rewards",
    version=API_VERSION,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Pydantic Models
# ============================================================================

class LocationModel(BaseModel):
    """Latitude/longitude pair."""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_point(self) -> Point:
        return Point(latitude=self.lat, longitude=self.lng)


class SubmissionRequest(BaseModel):
    """Report contents supplied with a submission."""
    description: Optional[str] = None
    waste_type: Optional[WasteType] = None
    location: Optional[LocationModel] = None


class TokenConfirmRequest(BaseModel):
    """Scanned verification token payload."""
    token: str


class ReportResponse(BaseModel):
    """Waste report."""
    id: str
    user_id: str
    timestamp: str
    status: str
    waste_type: Optional[str]
    confidence: Optional[float]
    location: Optional[Dict[str, float]]
    description: Optional[str]
    image_url: Optional[str]
    reward: int
    updated_at: Optional[str]
    resolved_at: Optional[str]
    user_name: Optional[str] = None
    user_email: Optional[str] = None


class ReportListResponse(BaseModel):
    """List of waste reports."""
    count: int
    pending_count: int
    reports: List[ReportResponse]


class ReportStatsResponse(BaseModel):
    """Report statistics."""
    total_reports: int
    pending_count: int
    by_status: dict
    by_waste_type: dict
    with_photo: int
    with_location: int
    resolution_rate: float


class AnalysisResponse(BaseModel):
    """Advisory classification of a report's image."""
    report_id: str
    is_waste_present: bool
    confidence_score: float
    waste_type: Optional[str]


class TokenResponse(BaseModel):
    """Field-confirmation token."""
    report_id: str
    action: str
    payload: str
    qr_code_url: str


class UserResponse(BaseModel):
    """Current user."""
    id: str
    name: str
    email: str
    avatar_url: Optional[str]
    green_units: int
    report_count: int
    reports: List[ReportResponse]


class LeaderboardEntryResponse(BaseModel):
    """Ranked participant."""
    rank: int
    id: str
    name: str
    score: int
    avatar_url: Optional[str]


class LeaderboardResponse(BaseModel):
    """Leaderboard."""
    count: int
    entries: List[LeaderboardEntryResponse]


class NearbyResponse(BaseModel):
    """Map markers around a position."""
    center: Dict[str, float]
    radius_meters: float
    count: int
    markers: List[Dict[str, Any]]


class HealthResponse(BaseModel):
    """API health check response."""
    status: str
    version: str
    timestamp: str
    classifier: str


# ============================================================================
# Helper Functions
# ============================================================================

_session: Optional[DemoSession] = None


def get_session() -> DemoSession:
    """Get the process-wide demo session, creating it on first use."""
    global _session
    if _session is None:
        _session = DemoSession()
    return _session


def _report_response(report, owner=None) -> ReportResponse:
    data = report.to_dict()
    if owner is not None:
        data["user_name"] = owner.name
        data["user_email"] = owner.email
    return ReportResponse(**data)


@app.exception_handler(WasteWatchError)
async def handle_domain_error(request: Request, exc: WasteWatchError):
    """Render domain errors as {error_code, message, details}."""
    status_code = 500
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# ============================================================================
# System Routes
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(session: DemoSession = Depends(get_session)):
    """Check API health status."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        classifier=type(session.classifier).__name__,
    )


@app.get("/api/v1/users/me", response_model=UserResponse, tags=["Users"])
async def get_current_user(session: DemoSession = Depends(get_session)):
    """Current user with GreenUnits and reports, newest first."""
    user = session.user
    return UserResponse(
        **user.to_dict(),
        reports=[_report_response(r) for r in reversed(user.reports)],
    )


# ============================================================================
# Draft Routes
# ============================================================================

@app.get("/api/v1/draft", tags=["Submission"])
async def get_draft(
    wait: bool = Query(False, description="Wait for pending classification"),
    session: DemoSession = Depends(get_session),
):
    """Current report draft, classification status and reward estimate."""
    if wait:
        await session.pipeline.wait_for_classification()
    return session.pipeline.draft.to_dict()


@app.post("/api/v1/draft/image", tags=["Submission"])
async def select_image(
    image: UploadFile = File(...),
    session: DemoSession = Depends(get_session),
):
    """
    Select the photo for the draft.

    Classification starts automatically after a short debounce.
    """
    data = await image.read()
    try:
        session.pipeline.select_image(data, image.content_type or DEFAULT_MEDIA_TYPE)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.pipeline.draft.to_dict()


@app.patch("/api/v1/draft", tags=["Submission"])
async def update_draft(
    request: SubmissionRequest,
    session: DemoSession = Depends(get_session),
):
    """Edit the draft's note, manual waste type, or location."""
    session.pipeline.update_details(
        description=request.description,
        waste_type=request.waste_type,
        location=request.location.to_point() if request.location else None,
    )
    return session.pipeline.draft.to_dict()


@app.post("/api/v1/draft/location", tags=["Submission"])
async def capture_location(session: DemoSession = Depends(get_session)):
    """Attach the device's current position to the draft."""
    await session.pipeline.capture_location(session.geolocation)
    return session.pipeline.draft.to_dict()


@app.delete("/api/v1/draft", tags=["Submission"])
async def reset_draft(session: DemoSession = Depends(get_session)):
    """Discard the draft."""
    session.pipeline.reset()
    return session.pipeline.draft.to_dict()


@app.post("/api/v1/draft/confirmation", tags=["Submission"])
async def request_confirmation(
    request: SubmissionRequest,
    session: DemoSession = Depends(get_session),
):
    """Validate the draft and hold it for confirmation."""
    pending = session.pipeline.request_submission(
        description=request.description,
        waste_type=request.waste_type,
        location=request.location.to_point() if request.location else None,
    )
    return pending.to_dict()


@app.post(
    "/api/v1/draft/confirmation/confirm",
    response_model=ReportResponse,
    status_code=201,
    tags=["Submission"],
)
async def confirm_submission(session: DemoSession = Depends(get_session)):
    """Submit the report held for confirmation."""
    report = session.pipeline.confirm()
    return _report_response(report)


@app.delete("/api/v1/draft/confirmation", tags=["Submission"])
async def cancel_confirmation(session: DemoSession = Depends(get_session)):
    """Drop the pending confirmation."""
    session.pipeline.cancel()
    return session.pipeline.draft.to_dict()


# ============================================================================
# Report Routes
# ============================================================================

@app.post("/api/v1/reports", response_model=ReportResponse, status_code=201, tags=["Reports"])
async def submit_report(
    request: SubmissionRequest,
    session: DemoSession = Depends(get_session),
):
    """Submit the current draft in one step."""
    report = session.pipeline.submit(
        description=request.description,
        waste_type=request.waste_type,
        location=request.location.to_point() if request.location else None,
    )
    return _report_response(report)


@app.get("/api/v1/reports", response_model=ReportListResponse, tags=["Review"])
async def list_reports(
    status: Optional[ReportStatus] = Query(None, description="Filter by status"),
    limit: int = Query(default=50, ge=1, le=200),
    session: DemoSession = Depends(get_session),
):
    """Organization review queue, newest first."""
    items = session.workflow.review_queue(status=status)[:limit]
    return ReportListResponse(
        count=len(items),
        pending_count=session.report_handler.get_statistics()["pending_count"],
        reports=[ReportResponse(**item.to_dict()) for item in items],
    )


@app.get("/api/v1/reports/stats/summary", response_model=ReportStatsResponse, tags=["Review"])
async def get_report_stats(session: DemoSession = Depends(get_session)):
    """Statistics for all reports."""
    return ReportStatsResponse(**session.report_handler.get_statistics())


@app.get("/api/v1/reports/{report_id}", response_model=ReportResponse, tags=["Review"])
async def get_report(report_id: str, session: DemoSession = Depends(get_session)):
    """Get a specific report by ID."""
    report = session.report_handler.get_report(report_id)
    return _report_response(report, session.report_handler.owner_of(report))


@app.post("/api/v1/reports/{report_id}/analysis", response_model=AnalysisResponse, tags=["Review"])
async def analyze_report(report_id: str, session: DemoSession = Depends(get_session)):
    """Re-run classification on the report's image. Does not change the report."""
    result = await session.workflow.analyze(report_id)
    return AnalysisResponse(report_id=report_id, **result.to_dict())


@app.post("/api/v1/reports/{report_id}/accept", response_model=ReportResponse, tags=["Review"])
async def accept_report(report_id: str, session: DemoSession = Depends(get_session)):
    """Accept a pending report."""
    report = await session.workflow.accept(report_id)
    return _report_response(report, session.report_handler.owner_of(report))


@app.post("/api/v1/reports/{report_id}/reject", response_model=ReportResponse, tags=["Review"])
async def reject_report(report_id: str, session: DemoSession = Depends(get_session)):
    """Reject a pending report."""
    report = await session.workflow.reject(report_id)
    return _report_response(report, session.report_handler.owner_of(report))


@app.get(
    "/api/v1/reports/{report_id}/verification-token",
    response_model=TokenResponse,
    tags=["Review"],
)
async def get_verification_token(report_id: str, session: DemoSession = Depends(get_session)):
    """Issue the scannable field-confirmation token for a report."""
    token = session.workflow.issue_verification_token(report_id)
    return TokenResponse(**token.to_dict())


@app.post("/api/v1/verification-tokens/confirm", response_model=ReportResponse, tags=["Review"])
async def confirm_verification_token(
    request: TokenConfirmRequest,
    session: DemoSession = Depends(get_session),
):
    """Apply a scanned token, marking the report cleaned."""
    report = session.workflow.confirm_verification_token(request.token)
    return _report_response(report, session.report_handler.owner_of(report))


# ============================================================================
# Leaderboard & Map Routes
# ============================================================================

@app.get("/api/v1/leaderboard", response_model=LeaderboardResponse, tags=["Leaderboard"])
async def get_leaderboard(session: DemoSession = Depends(get_session)):
    """Participants ranked by GreenUnits."""
    ranked = rank(entries_from_users(session.report_handler.users))
    return LeaderboardResponse(
        count=len(ranked),
        entries=[LeaderboardEntryResponse(**r.to_dict()) for r in ranked],
    )


@app.get("/api/v1/map/nearby", response_model=NearbyResponse, tags=["Map"])
async def get_nearby(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_meters: Optional[float] = Query(default=None, gt=0, le=5000),
    count: Optional[int] = Query(default=None, ge=0, le=100),
    include_reports: bool = Query(True, description="Overlay the user's located reports"),
    session: DemoSession = Depends(get_session),
):
    """Simulated waste around a position, regenerated on every call."""
    radius = radius_meters if radius_meters is not None else settings.nearby_radius_meters
    center = Point(latitude=lat, longitude=lng)

    items = session.simulator.generate_nearby(center, radius, count)
    reports = session.user.reports if include_reports else []
    markers = build_map_markers(items, reports)

    return NearbyResponse(
        center=center.to_dict(),
        radius_meters=radius,
        count=len(items),
        markers=markers,
    )


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
